"""Default media embedding: RTMP references to VideoJS markup.

Renders::

    <div class="mediaplugin mediaplugin_videojs">
    <div style="max-width:400px;"><video id="id_videojs_1" class="video-js" preload="auto"
        controls="true" data-setup="{...}" title="Lecture"><source src="rtmp://..." type="video/mp4" />
        Lecture</video></div>
    </div>

An ``<audio>`` tag is used when every reference is an mp3 stream. When the
embed is declined without ``fallback_to_blank`` a plain link (opted out of
further filtering) is returned instead.
"""

import html
import itertools
import json
import re
from collections.abc import Sequence
from typing import Protocol

from rtmpfilter.models import CONTAINER_MIMETYPES, EmbedOptions, MediaReference

_TAGS = re.compile(r"<[^>]*>")


class Embedder(Protocol):
    """Turns media references into player markup; "" means declined."""

    def embed(
        self,
        references: Sequence[MediaReference],
        name: str,
        width: int,
        height: int,
        options: EmbedOptions,
    ) -> str: ...


class VideoJSEmbedder:
    """Embedder producing VideoJS-style ``<video>``/``<audio>`` markup."""

    def __init__(
        self,
        default_width: int = 400,
        id_prefix: str = "id_videojs_",
        css_class: str = "video-js",
    ) -> None:
        self.default_width = default_width
        self.id_prefix = id_prefix
        self.css_class = css_class
        self._ids = itertools.count(1)

    def embed(
        self,
        references: Sequence[MediaReference],
        name: str,
        width: int,
        height: int,
        options: EmbedOptions,
    ) -> str:
        playable = [ref for ref in references if ref.extension in CONTAINER_MIMETYPES]
        if not playable:
            if options.fallback_to_blank or not references:
                return ""
            return self._link(references[0], name, options)

        size = f' width="{width}" height="{height}"' if width and height else ""
        max_width = width or self.default_width
        tag = "audio" if all(ref.extension == "mp3" for ref in playable) else "video"
        setup = {"language": "en", "fluid": True}
        data_setup = html.escape(json.dumps(setup), quote=True)
        title = self._title(name, options)

        sources = "".join(self._source(ref) for ref in playable)
        fallback = "" if options.no_link else self._label(name, options)

        return (
            '<div class="mediaplugin mediaplugin_videojs">\n'
            f'<div style="max-width:{max_width}px;">'
            f'<{tag} id="{self.id_prefix}{next(self._ids)}" class="{self.css_class}"{size} '
            f'preload="auto" controls="true" data-setup="{data_setup}" title="{title}">'
            f"{sources}{fallback}</{tag}></div>\n"
            "</div>"
        )

    def _source(self, reference: MediaReference) -> str:
        mimetype = CONTAINER_MIMETYPES[reference.extension or ""]
        src = reference.url.replace('"', "&quot;")
        return f'<source src="{src}" type="{mimetype}" />'

    def _title(self, name: str, options: EmbedOptions) -> str:
        # Untrusted names lose any markup before being placed in an attribute.
        if not options.trusted:
            name = _TAGS.sub("", name)
        return html.escape(html.unescape(name), quote=True)

    def _label(self, name: str, options: EmbedOptions) -> str:
        if options.trusted:
            return name
        return html.escape(html.unescape(_TAGS.sub("", name)), quote=False)

    def _link(self, reference: MediaReference, name: str, options: EmbedOptions) -> str:
        label = self._label(name, options)
        href = reference.url.replace('"', "&quot;")
        return f'<a class="mediafallbacklink nomediaplugin" href="{href}">{label}</a>'
