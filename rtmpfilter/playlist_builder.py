"""Turn multi-source media tags into a player plus a track list.

A playlist tag keeps only its first stream inline (with that stream's HLS
fallback and the first caption track). Every stream becomes an entry in a
list placed after the player::

    <video id="X-video-playlist" class="video-js rtmp-playlist video-playlist" ...>
      <source src="rtmp://host/vod/&mp4:a.mp4" type="rtmp/mp4" title="a.mp4" />
      ...
    </video><div id="X-video-playlist-vjs-playlist" class="vjs-playlist"><ul>
      <li><a class="vjs-track currentTrack" data-index="0" data-src="rtmp://host/vod/&mp4:a.mp4">a.mp4</a></li>
      <li><a class="vjs-track" data-index="1" data-src="rtmp://host/vod/&flv:b.flv">b.flv</a></li>
    </ul></div>

The client module switches sources, captions and continuous play from the
``data-src`` values.
Tags that already carry the ``video-playlist`` class are left as they are.
"""

import html
import itertools
import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from rtmpfilter.anchors import PLAYLIST_CLASS
from rtmpfilter.config import FilterConfig
from rtmpfilter.logging import logger
from rtmpfilter.media import is_rtmp, player_setup
from rtmpfilter.models import MediaReference, media_extension
from rtmpfilter.tokens import (
    MediaClose,
    MediaOpen,
    Source,
    Text,
    Token,
    Track,
    escape_attr,
    join_tokens,
    tokenize,
)

PLAYLIST_ID_SUFFIX = "-video-playlist"
PLAYLIST_TAG_CLASS = "video-playlist"
CLIENT_MODULE = "filter_rtmp/videojs_playlist"


class ClientModuleLoader(Protocol):
    """Host hook that asks the rendered page to load a client module."""

    def load_module(self, name: str, params: dict[str, str]) -> None: ...


@dataclass
class PageRequirements:
    """Collects client module requests for the page being rendered."""

    modules: list[tuple[str, dict[str, str]]] = field(default_factory=list)

    def load_module(self, name: str, params: dict[str, str]) -> None:
        if (name, params) not in self.modules:
            self.modules.append((name, params))
            logger.debug("Requested client module {} with {}", name, params)


def is_built(tag: MediaOpen) -> bool:
    """True for a tag this builder has already restructured."""
    return PLAYLIST_TAG_CLASS in tag.classes or tag.get("id").endswith(PLAYLIST_ID_SUFFIX)


def client_params(config: FilterConfig) -> dict[str, str]:
    """Parameters the playlist client module needs to rebuild sources."""
    return {
        "httprotocol": config.protocol,
        "hlsfallback": "1" if config.hls_fallback else "0",
        "hlsurl": config.hls_suffix,
        "defaultcc": "1" if config.default_cc else "0",
    }


@dataclass
class PlaylistEntry:
    index: int
    src: str
    title: str

    def render(self) -> str:
        css = "vjs-track currentTrack" if self.index == 0 else "vjs-track"
        return (
            f'<li><a class="{css}" data-index="{self.index}" '
            f'data-src="{escape_attr("data-src", self.src)}">{html.escape(self.title)}</a></li>'
        )


@dataclass
class PlaylistContext:
    """State for one playlist tag while its children are consumed."""

    tag: MediaOpen
    inline: list[Token] = field(default_factory=list)
    entries: list[PlaylistEntry] = field(default_factory=list)
    sources_kept: int = 0
    fallbacks_kept: int = 0
    tracks_kept: int = 0
    # Open from the kept stream until the next stream source.
    fallback_open: bool = False


class PlaylistBuilder:
    """Restructures playlist-marked media tags.

    Args:
        config: Filter configuration for this pass.
        loader: Receives the client module request when a playlist is built.
    """

    def __init__(self, config: FilterConfig, loader: ClientModuleLoader) -> None:
        self.config = config
        self.loader = loader
        self.extensions = config.enabled_extensions()
        self._ids: Iterator[int] = itertools.count(1)
        self.built = 0

    def build(self, text: str) -> str:
        """Return text with every playlist tag restructured."""
        output: list[Token] = []
        context: PlaylistContext | None = None

        for token in tokenize(text):
            if isinstance(token, MediaOpen):
                if context is not None:
                    output.extend([context.tag, *context.inline])
                    context = None
                if PLAYLIST_CLASS in token.classes and not is_built(token):
                    context = PlaylistContext(tag=token)
                else:
                    output.append(token)
            elif context is None:
                output.append(token)
            elif isinstance(token, MediaClose):
                output.extend(self.finish(context, token))
                context = None
            else:
                self.consume(context, token)

        if context is not None:
            output.extend([context.tag, *context.inline])

        if self.built:
            self.loader.load_module(CLIENT_MODULE, client_params(self.config))
        return join_tokens(output)

    def consume(self, context: PlaylistContext, token: Token) -> None:
        """Keep the first stream, its own fallback and the first track inline."""
        if isinstance(token, Source) and self.is_stream(token):
            title = token.get("title") or MediaReference(url=token.src).title
            context.entries.append(PlaylistEntry(len(context.entries), token.src, title))
            context.fallback_open = context.sources_kept == 0
            if context.sources_kept == 0:
                context.inline.append(token)
                context.sources_kept += 1
        elif isinstance(token, Source) and token.src.lower().startswith(("http://", "https://")):
            if context.fallback_open and context.fallbacks_kept == 0:
                context.inline.append(token)
                context.fallbacks_kept += 1
        elif isinstance(token, Track):
            if context.tracks_kept == 0:
                context.inline.append(token)
                context.tracks_kept += 1
        else:
            context.inline.append(token)

    def is_stream(self, source: Source) -> bool:
        return is_rtmp(source.src) and media_extension(source.src) in self.extensions

    def convert_tag(self, tag: MediaOpen) -> MediaOpen:
        """Give the tag its playlist id and class; audio tags become video tags."""
        base_id = tag.get("id") or f"rtmp_playlist_{next(self._ids)}"
        tag.set("id", f"{base_id}{PLAYLIST_ID_SUFFIX}")
        if PLAYLIST_TAG_CLASS not in tag.classes:
            tag.set("class", " ".join([*tag.classes, PLAYLIST_TAG_CLASS]))

        if tag.name == "audio":
            tag.name = "video"
            try:
                current: dict[str, Any] = json.loads(tag.get("data-setup") or "{}")
            except ValueError:
                current = {}
            width = current.get("width", self.config.default_width)
            height = current.get("height", self.config.default_height)
            tag.set("data-setup", json.dumps(player_setup("video", self.config, width, height)))
        return tag

    def finish(self, context: PlaylistContext, close: MediaClose) -> list[Token]:
        if not context.entries:
            return [context.tag, *context.inline, close]
        tag = self.convert_tag(context.tag)

        items = "".join(entry.render() for entry in context.entries)
        listing = Text(
            f'<div id="{escape_attr("id", tag.get("id"))}-vjs-playlist" class="vjs-playlist">'
            f"<ul>{items}</ul></div>"
        )
        self.built += 1
        logger.debug("Built playlist {} with {} tracks", tag.get("id"), len(context.entries))
        return [tag, *context.inline, MediaClose(kind=tag.name), listing]
