"""rtmpfilter - RTMP streaming media filter for rich-text HTML."""

from rtmpfilter.config import FilterConfig, load_config
from rtmpfilter.filter import RtmpFilter, filter_text
from rtmpfilter.models import FilterOptions, MediaReference, PlaylistRecord

try:
    from rtmpfilter._version import __version__
except ImportError:
    __version__ = "0.0.0.dev0"

__all__ = [
    "FilterConfig",
    "FilterOptions",
    "MediaReference",
    "PlaylistRecord",
    "RtmpFilter",
    "filter_text",
    "load_config",
    "__version__",
]
