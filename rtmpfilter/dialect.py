"""RTMP, HLS and caption URL derivation.

Each step takes the previous step's output::

    rtmp://host/vod/folder/clip.mp4                          video/mp4
    rtmp://host/vod/&mp4:folder/clip.mp4                     rtmp/mp4       (format_rtmp)
    https://host/vod/_definst_/mp4:folder/clip.mp4/playlist.m3u8  video/mp4 (derive_hls, wse)
    https://host/vod/mp4:folder/clip.mp4.m3u8                video/mp4      (derive_hls, fms)
    https://host/vod/_definst_/folder/clip.vtt                              (derive_caption_url, wse)
    https://host/vod/folder/vtt/clip.vtt                                    (derive_caption_url, fms)

The RTMP form does not depend on the server dialect; only the HLS and
caption forms do.
"""

import re
from dataclasses import replace

from rtmpfilter.config import FilterConfig
from rtmpfilter.models import CODECS, SourceURL

CODEC_TOKEN_PATTERN = re.compile(r"&(mp4|flv|mp3):")
_APPLICATION_PREFIX = re.compile(r"^(rtmp://[^/]+/[^/]+/)", re.IGNORECASE)
_BARE_CODEC = re.compile(r"^(?:mp4|flv|mp3):")
_RTMP_SCHEME = re.compile(r"^rtmp", re.IGNORECASE)
_LAST_EXTENSION = re.compile(
    r"(\.(?:mp4|f4v|flv|mp3))(?!.*\.(?:mp4|f4v|flv|mp3))", re.IGNORECASE
)
_STREAM_CODEC = re.compile(r"(?<=/)(?:mp4|flv|mp3):")
_VTT_FILENAME = re.compile(r"(/[^/]*\.vtt)$")

WSE_INSTANCE = "_definst_/"


def is_formatted(url: str) -> bool:
    """True when an RTMP URL already carries an ``&codec:`` stream prefix."""
    return CODEC_TOKEN_PATTERN.search(url) is not None


def rtmp_mimetype(codec: str) -> str:
    return "rtmp/x-flv" if codec == "flv" else f"rtmp/{codec}"


def format_rtmp(source: SourceURL) -> SourceURL:
    """Rewrite a raw RTMP source into the form the flash tech plays.

    Inserts ``&codec:`` after the application segment, switches the MIME type
    to ``rtmp/...`` and turns ``+`` and ``%20`` into spaces. Sources without a
    known extension are returned unchanged.
    """
    ext = source.extension
    codec = CODECS.get(ext) if ext else None
    if codec is None:
        return source

    url = source.src
    if not is_formatted(url):
        prefix = _APPLICATION_PREFIX.match(url)
        if prefix:
            stream = url[prefix.end() :]
            token = "&" if _BARE_CODEC.match(stream) else f"&{codec}:"
            url = prefix.group(1) + token + stream

    mimetype = rtmp_mimetype(codec)
    if codec == "mp3" and "+" in url:
        # Encoded-space mp3 streams only play through the mp4 demuxer.
        mimetype = "rtmp/mp4"

    url = url.replace("+", " ").replace("%20", " ")
    return replace(source, src=url, type=mimetype)


def derive_hls(source: SourceURL, config: FilterConfig) -> SourceURL:
    """Derive the HTTP (HLS) equivalent of a formatted RTMP source.

    The result is computed for ``.flv`` too (as mp4) so captions can be
    located, but it must not be emitted as a playable source.
    """
    ext = source.extension
    codec = CODECS.get(ext) if ext else None

    url = _RTMP_SCHEME.sub(config.protocol, source.src, count=1)
    separator = "" if config.hls_urlfmt == "fms" else WSE_INSTANCE

    def _token(match: re.Match[str]) -> str:
        stream_codec = "mp4" if match.group(1) == "flv" else match.group(1)
        return f"{separator}{stream_codec}:"

    url = CODEC_TOKEN_PATTERN.sub(_token, url, count=1)
    url = _LAST_EXTENSION.sub(lambda m: m.group(1) + config.hls_suffix, url, count=1)

    mimetype = "audio/mp3" if codec == "mp3" else "video/mp4"
    return replace(source, src=url, type=mimetype, title="")


def has_hls_fallback(source: SourceURL) -> bool:
    """FLV streams have no HTTP fallback."""
    return source.extension != "flv"


def derive_caption_url(hls: SourceURL, config: FilterConfig) -> str:
    """Derive the WebVTT caption URL that sits beside an HLS source."""
    suffix = re.escape(config.hls_suffix)
    url = re.sub(rf"\.(?:mp4|f4v|flv|mp3){suffix}$", ".vtt", hls.src, flags=re.IGNORECASE)
    url = _STREAM_CODEC.sub("", url, count=1)
    if config.hls_urlfmt == "fms":
        url = _VTT_FILENAME.sub(r"/vtt\1", url)
    return url
