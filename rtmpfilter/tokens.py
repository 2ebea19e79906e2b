"""Tokenizer for media markup.

Splits HTML into a flat sequence of typed tokens: media open tags
(``<video>``/``<audio>``), ``<source>`` and ``<track>`` tags, media close tags
and the text between them. Tags that are never modified render back to their
original bytes, so joining the tokens of untouched text reproduces it exactly.
"""

import html
import re
from dataclasses import dataclass, field

TOKEN_PATTERN = re.compile(
    r"(<(?:video|audio|source|track)\b[^>]*>|</(?:video|audio)\s*>)", re.IGNORECASE
)
_TAG_NAME = re.compile(r"^</?([a-zA-Z]+)")
_ATTR_PATTERN = re.compile(
    r"""([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?"""
)

# Attributes whose values are URLs handed to the player verbatim.
_URL_ATTRIBUTES = {"src", "data-src"}


def escape_attr(name: str, value: str) -> str:
    """Escape an attribute value for double-quoted output.

    URL attributes keep a literal ``&`` because the flash tech splits RTMP
    URLs on it.
    """
    if name in _URL_ATTRIBUTES:
        return value.replace('"', "&quot;")
    return (
        value.replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def parse_attributes(raw: str) -> dict[str, str | None]:
    """Parse the attributes of a single tag; valueless attributes map to None."""
    body = _TAG_NAME.sub("", raw, count=1).rstrip(">").rstrip().rstrip("/")
    attrs: dict[str, str | None] = {}
    for match in _ATTR_PATTERN.finditer(body):
        name = match.group(1).lower()
        if name in attrs:
            continue
        value = next((g for g in match.group(2, 3, 4) if g is not None), None)
        attrs[name] = html.unescape(value) if value is not None else None
    return attrs


def render_tag(name: str, attrs: dict[str, str | None], self_closing: bool = False) -> str:
    """Render a start tag from its name and ordered attributes."""
    parts = [f"<{name}"]
    for key, value in attrs.items():
        parts.append(key if value is None else f'{key}="{escape_attr(key, value)}"')
    return " ".join(parts) + (" />" if self_closing else ">")


@dataclass
class Text:
    raw: str

    def __str__(self) -> str:
        return self.raw


@dataclass
class Tag:
    """A start tag; renders to raw until an attribute is changed."""

    name: str
    attrs: dict[str, str | None]
    raw: str = ""
    self_closing: bool = False
    changed: bool = field(default=False, compare=False)

    @classmethod
    def parse(cls, raw: str) -> "Tag":
        match = _TAG_NAME.match(raw)
        if match is None:
            raise ValueError(f"Not a tag: {raw!r}")
        return cls(
            name=match.group(1).lower(),
            attrs=parse_attributes(raw),
            raw=raw,
            self_closing=raw.rstrip(">").rstrip().endswith("/"),
        )

    def get(self, key: str, default: str = "") -> str:
        value = self.attrs.get(key)
        return default if value is None else value

    def set(self, key: str, value: str | None) -> None:
        self.attrs[key] = value
        self.changed = True

    def remove(self, key: str) -> None:
        if key in self.attrs:
            del self.attrs[key]
            self.changed = True

    @property
    def classes(self) -> list[str]:
        return self.get("class").split()

    def __str__(self) -> str:
        if self.changed or not self.raw:
            return render_tag(self.name, self.attrs, self.self_closing)
        return self.raw


@dataclass
class MediaOpen(Tag):
    """``<video>`` or ``<audio>`` start tag."""

    @property
    def kind(self) -> str:
        return self.name


@dataclass
class Source(Tag):
    """``<source>`` tag."""

    @property
    def src(self) -> str:
        return self.get("src")

    @property
    def type(self) -> str:
        return self.get("type")


@dataclass
class Track(Tag):
    """``<track>`` tag."""


@dataclass
class MediaClose:
    """``</video>`` or ``</audio>``."""

    kind: str
    raw: str = ""

    def __str__(self) -> str:
        return self.raw or f"</{self.kind}>"


Token = Text | MediaOpen | Source | Track | MediaClose

_TAG_TYPES: dict[str, type[Tag]] = {
    "video": MediaOpen,
    "audio": MediaOpen,
    "source": Source,
    "track": Track,
}


def tokenize(text: str) -> list[Token]:
    """Split text into media tokens, keeping every byte."""
    tokens: list[Token] = []
    for i, piece in enumerate(TOKEN_PATTERN.split(text)):
        if not piece:
            continue
        if i % 2 == 0:
            tokens.append(Text(piece))
            continue
        if piece.startswith("</"):
            tokens.append(MediaClose(kind=piece[2:].rstrip(">").strip().lower(), raw=piece))
            continue
        name = _TAG_NAME.match(piece).group(1).lower()  # type: ignore[union-attr]
        tokens.append(_TAG_TYPES[name].parse(piece))
    return tokens


def join_tokens(tokens: list[Token]) -> str:
    """Render tokens back into text."""
    return "".join(str(token) for token in tokens)


def make_source(src: str, type_: str, title: str = "") -> Source:
    """Build a new ``<source src type [title] />`` tag."""
    attrs: dict[str, str | None] = {"src": src, "type": type_}
    if title:
        attrs["title"] = title
    return Source(name="source", attrs=attrs, self_closing=True)


def make_track(src: str, srclang: str, label: str) -> Track:
    """Build a default caption ``<track>`` tag."""
    return Track(
        name="track",
        attrs={"kind": "captions", "src": src, "srclang": srclang, "label": label, "default": ""},
    )
