"""Split combined RTMP URL expressions into media references.

A link's href may carry several ``#``-separated alternatives::

    rtmp://host/app/clip.mp4#rtmp://host/app/clip.flv, Low bandwidth#d=640x360
    rtmp://playlist=Week 1 lectures

Each alternative is ``url[, name]``. ``d=WxH`` sets the player size and
``rtmp://playlist=NAME`` expands to the lines of a stored playlist.
"""

import html
import re
from dataclasses import replace
from urllib.parse import urlsplit

from rtmpfilter.logging import logger
from rtmpfilter.models import MediaReference, ParsedAlternatives
from rtmpfilter.playlists import PlaylistResolver

PLAYLIST_PATTERN = re.compile(r"^rtmp://playlist=(.+)")
SIZE_PATTERN = re.compile(r"^d=(\d{1,4})x(\d{1,4})$", re.IGNORECASE)

_RTMP_SCHEME = re.compile(r"^rtmp://", re.IGNORECASE)
_HTTP_SCHEME = re.compile(r"^http://")
_URL_CHARS = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")
_HOST = re.compile(r"^[A-Za-z0-9\-.]+(:\d{1,5})?$")


def clean_url(url: str) -> str:
    """Return url if it is a well-formed http(s) URL, else an empty string."""
    url = url.strip()
    if not url or not _URL_CHARS.match(url):
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    if parts.scheme.lower() not in ("http", "https"):
        return ""
    if not parts.netloc or not _HOST.match(parts.netloc.rsplit("@", 1)[-1]):
        return ""
    return url


def parse_alternative(item: str) -> MediaReference | None:
    """Parse one ``url[, name]`` alternative; None when the URL is unusable."""
    url, _, name = item.partition(",")
    url = html.unescape(url.strip())
    name = name.strip()

    # Validate as http, then put the rtmp scheme back.
    url = _RTMP_SCHEME.sub("http://", url, count=1)
    url = clean_url(url)
    if not url:
        logger.debug("Dropping unusable media URL: {}", item)
        return None
    url = _HTTP_SCHEME.sub("rtmp://", url, count=1)

    return MediaReference(url=url, name=html.unescape(name) if name else "")


def split_alternatives(combined_url: str, resolver: PlaylistResolver) -> ParsedAlternatives:
    """Split a combined URL expression into references, size and link options.

    Args:
        combined_url: The href value of a matched anchor.
        resolver: Pass-scoped playlist resolver.

    Returns:
        ParsedAlternatives with references in input order.
    """
    result = ParsedAlternatives()
    expanded: list[str] = []

    for part in (p.strip() for p in combined_url.split("#")):
        playlist = PLAYLIST_PATTERN.match(part)
        if playlist:
            # Editor content is entity-encoded; the stored name is not.
            record = resolver.resolve(html.unescape(playlist.group(1)))
            if record is None:
                continue
            expanded.extend(record.lines)
            # Client-side playlist replaces the link, so none is left visible.
            result.no_link = True
            continue

        size = SIZE_PATTERN.match(part)
        if size:
            result.width = int(size.group(1))
            result.height = int(size.group(2))
            continue

        expanded.append(part)

    for item in expanded:
        reference = parse_alternative(item)
        if reference is not None:
            result.references.append(reference)

    if result.width and result.height:
        result.references = [
            replace(ref, width=result.width, height=result.height) for ref in result.references
        ]
    return result
