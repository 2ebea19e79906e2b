"""Data models for rtmpfilter."""

import re
from dataclasses import dataclass, field
from typing import Any

# Extensions the filter knows how to stream, mapped to the RTMP codec token.
CODECS = {"mp4": "mp4", "f4v": "mp4", "flv": "flv", "mp3": "mp3"}

# Container MIME types used when embedding a raw RTMP URL.
CONTAINER_MIMETYPES = {
    "mp4": "video/mp4",
    "f4v": "video/mp4",
    "flv": "video/x-flv",
    "mp3": "audio/mp3",
}

EXTENSION_PATTERN = re.compile(r"\.(mp4|f4v|flv|mp3)", re.IGNORECASE)
FILENAME_PATTERN = re.compile(r"([^/&:]*\.(?:mp4|f4v|flv|mp3))", re.IGNORECASE)


def media_extension(url: str) -> str | None:
    """Return the last known media extension in a URL (lowercase), if any."""
    found = EXTENSION_PATTERN.findall(url)
    if not found:
        return None
    ext: str = found[-1].lower()
    return ext


@dataclass(frozen=True)
class MediaReference:
    """One raw RTMP URL with optional display name and size."""

    url: str
    name: str = ""
    width: int = 0
    height: int = 0

    @property
    def extension(self) -> str | None:
        return media_extension(self.url)

    @property
    def title(self) -> str:
        """Display title: explicit name, else the media file name, else the URL."""
        if self.name:
            return self.name
        match = FILENAME_PATTERN.search(self.url)
        if match:
            return match.group(1)
        return self.url


@dataclass
class ParsedAlternatives:
    """Result of splitting a combined URL expression."""

    references: list[MediaReference] = field(default_factory=list)
    width: int = 0
    height: int = 0
    no_link: bool = False

    @property
    def names(self) -> list[str]:
        return [ref.name for ref in self.references]


@dataclass
class PlaylistRecord:
    """Named playlist owned by the playlist store."""

    course_id: int
    name: str
    urls: str = ""  # newline-separated list of "url[, name]" lines

    @property
    def lines(self) -> list[str]:
        """Raw URL lines, trimmed, in stored order."""
        return [line.strip() for line in self.urls.split("\n")]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for YAML."""
        return {"course": self.course_id, "name": self.name, "list": [line for line in self.lines if line]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistRecord":
        """Deserialize from YAML."""
        items = data.get("list") or []
        text = items if isinstance(items, str) else "\n".join(str(item) for item in items)
        return cls(course_id=int(data.get("course", 0)), name=str(data["name"]), urls=text)


@dataclass
class SourceURL:
    """One <source> element: URL, MIME type and optional title."""

    src: str
    type: str
    title: str = ""

    @property
    def extension(self) -> str | None:
        return media_extension(self.src)


@dataclass(frozen=True)
class EmbedOptions:
    """Options handed to the embedding capability."""

    trusted: bool = False
    fallback_to_blank: bool = True
    no_link: bool = False


@dataclass(frozen=True)
class FilterOptions:
    """Per-call options supplied by the host."""

    trusted_content: bool = False


class RtmpFilterError(Exception):
    """Base class for rtmpfilter errors."""

    pass


class PlaylistStoreError(RtmpFilterError):
    """Raised when the playlist store cannot be read."""

    pass


class InvalidSettingError(RtmpFilterError, ValueError):
    """Raised when an unknown configuration option is written."""

    pass
