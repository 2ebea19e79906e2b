"""Rewrite ``<video>``/``<audio>`` tags that carry RTMP sources.

The text is tokenized and folded one token at a time. A media open tag starts
a context that collects its children until the matching close tag; the whole
group is then rewritten (or left untouched) and emitted.

For each RTMP source of an enabled type the group gains, in order:

1. the source itself in player form (``format_rtmp``),
2. an HLS fallback source when enabled and the stream is not FLV,
3. a caption track when default captions are on and the tag is a video or a
   playlist.

Rewritten tags carry ``data-rtmp-filtered`` and are left alone on later passes.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

from rtmpfilter.anchors import PLAYLIST_CLASS
from rtmpfilter.config import FilterConfig
from rtmpfilter.dialect import (
    derive_caption_url,
    derive_hls,
    format_rtmp,
    has_hls_fallback,
    is_formatted,
)
from rtmpfilter.logging import logger
from rtmpfilter.models import SourceURL
from rtmpfilter.tokens import (
    MediaClose,
    MediaOpen,
    Source,
    Text,
    Token,
    join_tokens,
    make_source,
    make_track,
    tokenize,
)

_MAX_WIDTH_STYLE = re.compile(r"max-width:\s*(\d+)px", re.IGNORECASE)

# Set on every media tag this rewriter has configured.
PROCESSED_ATTRIBUTE = "data-rtmp-filtered"

# Fixed-width wrapper ending right before a media tag.
_WRAPPER_CAP = re.compile(
    r'(<div\b[^>]*\bstyle="[^"]*)max-width:\s*\d+px;?([^"]*"[^>]*>\s*)$', re.IGNORECASE
)


def player_setup(kind: str, config: FilterConfig, width: int, height: int) -> dict[str, Any]:
    """Player configuration for the ``data-setup`` attribute.

    RTMP needs the flash tech, so it is tried before html5.
    """
    setup: dict[str, Any] = {"language": config.language}
    if kind == "audio":
        setup.update(
            {"fluid": True, "controlBar": {"fullscreenToggle": False}, "aspectRatio": "1:0"}
        )
    elif not config.limit_size:
        setup["fluid"] = True
    setup["techOrder"] = ["flash", "html5"]
    if config.limit_size:
        setup["width"] = width
        setup["height"] = height
    return setup


def tag_size(tag: MediaOpen, config: FilterConfig) -> tuple[int, int]:
    """Width and height for a media tag: inline attributes, max-width style, or defaults."""
    try:
        width, height = int(tag.get("width")), int(tag.get("height"))
        if width > 0 and height > 0:
            return width, height
    except ValueError:
        pass

    style = _MAX_WIDTH_STYLE.search(tag.get("style"))
    if style and int(style.group(1)) > 0:
        width = int(style.group(1))
        return width, round(width * config.default_height / config.default_width)

    return config.default_width, config.default_height


def is_rtmp(src: str) -> bool:
    return src[:7].lower() == "rtmp://"


def widen_wrapper(output: list[Token]) -> None:
    """Let a fixed-width container directly around a media tag fill its parent."""
    if output and isinstance(output[-1], Text):
        output[-1] = Text(_WRAPPER_CAP.sub(r"\1width:100%;\2", output[-1].raw, count=1))


@dataclass
class MediaTagContext:
    """Open media tag and the children collected so far."""

    tag: MediaOpen
    children: list[Token] = field(default_factory=list)

    @property
    def kind(self) -> str:
        return self.tag.kind

    @property
    def is_playlist(self) -> bool:
        return PLAYLIST_CLASS in self.tag.classes


@dataclass
class RewriteState:
    """Fold accumulator: emitted tokens plus the open media tag, if any."""

    output: list[Token] = field(default_factory=list)
    context: MediaTagContext | None = None
    rewritten: int = 0


class MediaRewriter:
    """Applies player configuration and source derivations to media tags."""

    def __init__(self, config: FilterConfig) -> None:
        self.config = config
        self.extensions = config.enabled_extensions()

    def rewrite(self, text: str) -> str:
        """Return text with every RTMP media tag rewritten."""
        state = RewriteState()
        for token in tokenize(text):
            state = self.step(state, token)
        if state.context is not None:
            # Unclosed tag: emit as found.
            state.output.extend([state.context.tag, *state.context.children])
            state.context = None
        logger.debug("Rewrote {} media tag(s)", state.rewritten)
        return join_tokens(state.output)

    def step(self, state: RewriteState, token: Token) -> RewriteState:
        """Advance the fold by one token."""
        if isinstance(token, MediaOpen):
            if state.context is not None:
                state.output.extend([state.context.tag, *state.context.children])
            state.context = MediaTagContext(tag=token)
        elif isinstance(token, MediaClose) and state.context is not None:
            context, state.context = state.context, None
            if self.wants(context):
                if not self.config.limit_size:
                    widen_wrapper(state.output)
                state.output.extend(self.rewrite_group(context))
                state.rewritten += 1
            else:
                state.output.extend([context.tag, *context.children])
            state.output.append(token)
        elif state.context is not None:
            state.context.children.append(token)
        else:
            state.output.append(token)
        return state

    def is_enabled(self, source: Source) -> bool:
        """True for unformatted RTMP sources of an enabled media type."""
        src = source.src
        if not is_rtmp(src) or is_formatted(src):
            return False
        return SourceURL(src, source.type).extension in self.extensions

    def wants(self, context: MediaTagContext) -> bool:
        if PROCESSED_ATTRIBUTE in context.tag.attrs:
            return False
        return any(isinstance(c, Source) and self.is_enabled(c) for c in context.children)

    def configure_tag(self, context: MediaTagContext) -> MediaOpen:
        """Set cross-origin policy, CSS classes and player configuration."""
        tag = context.tag
        width, height = tag_size(tag, self.config)

        configured = (
            self.config.audio_css_class if context.kind == "audio" else self.config.video_css_class
        ).split()
        tag.set("class", " ".join(configured + [c for c in tag.classes if c not in configured]))
        tag.set("crossorigin", "anonymous")
        tag.set("data-setup", json.dumps(player_setup(context.kind, self.config, width, height)))
        if not self.config.limit_size:
            tag.set("style", "width:100%;")
        tag.set(PROCESSED_ATTRIBUTE, "1")
        return tag

    def expand_source(self, source: Source, context: MediaTagContext) -> list[Token]:
        """RTMP source, then its HLS fallback and caption track as configured."""
        formatted = format_rtmp(SourceURL(source.src, source.type, source.get("title")))
        source.set("src", formatted.src)
        source.set("type", formatted.type)
        expanded: list[Token] = [source]

        hls = derive_hls(formatted, self.config)
        if self.config.hls_fallback and has_hls_fallback(formatted):
            expanded.append(make_source(hls.src, hls.type))
        if self.config.default_cc and (context.kind == "video" or context.is_playlist):
            caption = derive_caption_url(hls, self.config)
            expanded.append(
                make_track(caption, self.config.caption_srclang, self.config.caption_label)
            )
        return expanded

    def rewrite_group(self, context: MediaTagContext) -> list[Token]:
        tokens: list[Token] = [self.configure_tag(context)]
        for child in context.children:
            if isinstance(child, Source) and self.is_enabled(child):
                tokens.extend(self.expand_source(child, context))
            else:
                tokens.append(child)
        logger.debug("Rewrote <{}> id={}", context.kind, context.tag.get("id") or "-")
        return tokens
