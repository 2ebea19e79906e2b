"""Replace links to RTMP streams with embedded players."""

import re

from rtmpfilter.alternatives import split_alternatives
from rtmpfilter.config import FilterConfig
from rtmpfilter.embed import Embedder
from rtmpfilter.logging import logger
from rtmpfilter.models import EmbedOptions, MediaReference
from rtmpfilter.playlists import PlaylistResolver
from rtmpfilter.tokens import MediaOpen, Source, join_tokens, tokenize

PLAYLIST_CLASS = "rtmp-playlist"
OPT_OUT_CLASS = "nomediaplugin"
DEFAULT_NAME = "Media Stream (RTMP)"

_OPT_OUT_PATTERN = re.compile(rf'class="[^"]*{OPT_OUT_CLASS}', re.IGNORECASE)
_AUDIO_MARKERS = [r"\.mp3"]
_VIDEO_MARKERS = [r"\.flv", r"\.mp4", r"\.f4v"]


def anchor_pattern(config: FilterConfig) -> re.Pattern[str]:
    """Pattern for RTMP links whose href names an enabled media type.

    Group 1 is the href, group 2 the link text. Playlist links always match.
    """
    markers: list[str] = []
    if config.enable_audio:
        markers.extend(_AUDIO_MARKERS)
    if config.enable_video:
        markers.extend(_VIDEO_MARKERS)

    target = r'playlist=[^"]*'
    if markers:
        target = rf'(?:{target}|[^"]*(?:{"|".join(markers)}))'
    return re.compile(
        rf'<a\s[^>]*href="(rtmp://{target}[^"]*)"[^>]*>([^>]*)</a>',
        re.IGNORECASE | re.DOTALL,
    )


def mark_playlist(markup: str, references: list[MediaReference]) -> str:
    """Tag embedded markup as a playlist and give every source a title."""
    titles: dict[str, str] = {}
    for ref in references:
        titles.setdefault(ref.url, ref.title)

    tokens = tokenize(markup)
    marked = False
    for token in tokens:
        if isinstance(token, MediaOpen) and not marked:
            token.set("class", " ".join([*token.classes, PLAYLIST_CLASS]))
            marked = True
        elif isinstance(token, Source):
            token.set("title", titles.get(token.src) or MediaReference(url=token.src).title)
    return join_tokens(tokens)


class AnchorRewriter:
    """Rewrites ``<a href="rtmp://...">`` links through an embedder.

    Args:
        config: Filter configuration for this pass.
        resolver: Pass-scoped playlist resolver.
        embedder: Embedding capability.
        trusted: Whether the text being filtered is trusted.
    """

    def __init__(
        self,
        config: FilterConfig,
        resolver: PlaylistResolver,
        embedder: Embedder,
        trusted: bool = False,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self.embedder = embedder
        self.trusted = trusted
        self.pattern = anchor_pattern(config)
        self.embedded = 0

    def rewrite(self, text: str) -> str:
        """Return text with every matching RTMP link replaced by a player."""
        if "</a>" not in text.lower():
            return text
        return self.pattern.sub(self._replace, text)

    def _replace(self, match: re.Match[str]) -> str:
        original = match.group(0)
        if _OPT_OUT_PATTERN.search(original):
            logger.debug("Skipping opted-out link {}", match.group(1))
            return original

        name = match.group(2).strip() or DEFAULT_NAME
        parsed = split_alternatives(match.group(1), self.resolver)

        options = EmbedOptions(trusted=self.trusted, fallback_to_blank=True, no_link=parsed.no_link)
        result = self.embedder.embed(parsed.references, name, parsed.width, parsed.height, options)
        if not result:
            logger.debug("Nothing embedded for {}, keeping link", match.group(1))
            return original

        if result.lower().count("<source") > 1:
            result = mark_playlist(result, parsed.references)
        self.embedded += 1
        logger.debug("Embedded {} reference(s) for '{}'", len(parsed.references), name)
        return result
