"""RTMP streaming media filter.

Replaces links to RTMP streams in HTML fragments with VideoJS players, adds
HLS fallbacks and caption tracks to RTMP media tags and turns multi-stream
players into playlists.
"""

import re

from rtmpfilter.anchors import PLAYLIST_CLASS, AnchorRewriter
from rtmpfilter.config import FilterConfig
from rtmpfilter.embed import Embedder, VideoJSEmbedder
from rtmpfilter.logging import logger
from rtmpfilter.media import PROCESSED_ATTRIBUTE, MediaRewriter
from rtmpfilter.models import FilterOptions
from rtmpfilter.playlist_builder import (
    PLAYLIST_TAG_CLASS,
    ClientModuleLoader,
    PageRequirements,
    PlaylistBuilder,
)
from rtmpfilter.playlists import PlaylistLookup, PlaylistResolver

_CLOSING_TAGS = ("</a>", "</video>", "</audio>")

# A link to an RTMP stream; rewritten links leave none behind.
RTMP_LINK_PATTERN = re.compile(r"""<a\s[^>]*\bhref\s*=\s*["']rtmp://""", re.IGNORECASE)

# A media tag not yet rewritten by this filter with an RTMP source before its close tag.
UNPROCESSED_MEDIA_PATTERN = re.compile(
    rf"""<(video|audio)\b(?![^>]*\b{re.escape(PROCESSED_ATTRIBUTE)}\b)[^>]*>"""
    r"""(?:(?!</\1).)*?(?<![\w-])src\s*=\s*["']rtmp://""",
    re.IGNORECASE | re.DOTALL,
)

_MEDIA_CLASS_PATTERN = re.compile(r'<(?:video|audio)\b[^>]*\bclass="([^"]*)"', re.IGNORECASE)


def needs_filtering(text: str) -> bool:
    """Cheap checks for an RTMP link or an unprocessed RTMP media tag."""
    lowered = text.lower()
    if not any(tag in lowered for tag in _CLOSING_TAGS):
        return False
    if RTMP_LINK_PATTERN.search(text):
        return True
    return UNPROCESSED_MEDIA_PATTERN.search(text) is not None


def has_unbuilt_playlist(text: str) -> bool:
    """True when a media tag is marked as a playlist but not yet restructured."""
    for match in _MEDIA_CLASS_PATTERN.finditer(text):
        classes = match.group(1).split()
        if PLAYLIST_CLASS in classes and PLAYLIST_TAG_CLASS not in classes:
            return True
    return False


class RtmpFilter:
    """Text filter for one course context.

    Args:
        config: Filter configuration, read once per request.
        course_id: Course whose named playlists links may reference.
        embedder: Embedding capability (default: VideoJSEmbedder).
        lookup: Playlist store lookup (default: the SQLite store).
        loader: Client module loader (default: a fresh PageRequirements).
    """

    def __init__(
        self,
        config: FilterConfig,
        *,
        course_id: int = 0,
        embedder: Embedder | None = None,
        lookup: PlaylistLookup | None = None,
        loader: ClientModuleLoader | None = None,
    ) -> None:
        self.config = config
        self.course_id = course_id
        self.embedder = embedder or VideoJSEmbedder(default_width=config.default_width)
        self.lookup = lookup
        self.loader = loader if loader is not None else PageRequirements()

    def filter(self, text: str, options: FilterOptions | None = None) -> str:
        """Filter an HTML fragment; returns it unchanged when nothing applies."""
        if not isinstance(text, str) or not text:
            return text
        if not needs_filtering(text):
            logger.debug("No RTMP links or unprocessed RTMP media, skipping")
            return text

        options = options or FilterOptions()
        trusted = options.trusted_content or self.config.allow_object_embed
        resolver = PlaylistResolver(self.course_id, self.lookup)

        try:
            filtered = AnchorRewriter(self.config, resolver, self.embedder, trusted).rewrite(text)
            filtered = MediaRewriter(self.config).rewrite(filtered)
            if has_unbuilt_playlist(filtered):
                filtered = PlaylistBuilder(self.config, self.loader).build(filtered)
        except ValueError as e:
            logger.warning("Could not filter RTMP media, leaving text unchanged: {}", e)
            return text
        return filtered


def filter_text(
    text: str,
    config: FilterConfig | None = None,
    options: FilterOptions | None = None,
    **kwargs: object,
) -> str:
    """Filter text with a one-off RtmpFilter.

    Keyword arguments are passed to RtmpFilter.
    """
    if config is None:
        from rtmpfilter.config import load_config

        config = load_config()
    return RtmpFilter(config, **kwargs).filter(text, options)  # type: ignore[arg-type]
