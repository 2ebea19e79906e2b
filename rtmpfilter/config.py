"""Configuration loading for rtmpfilter.

Settings live in the ``settings`` table of the store (``~/.rtmpfilter/store.db``)
as flat name/value strings. They can be seeded from a TOML file::

    [filter]
    enable_audio = true
    enable_video = true
    hls_fallback = true
    default_cc = false
    https = true
    hls_urlfmt = "wse"        # or "fms"
    default_width = 640
    default_height = 360
    limit_size = true
    video_css_class = "video-js vjs-big-play-centered"
    audio_css_class = "video-js"

Stored values that cannot be parsed fall back to the defaults below.
"""

import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from rtmpfilter.logging import logger
from rtmpfilter.models import InvalidSettingError

# Token the player needs on every media tag class attribute.
REQUIRED_CSS_CLASS = "video-js"

HLS_SUFFIXES = {"fms": ".m3u8", "wse": "/playlist.m3u8"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
_MAX_DIMENSION = 4096


class FilterConfig(BaseModel):  # type: ignore[misc]
    """Filter configuration, read-only for the duration of a pass.

    Attributes:
        enable_audio: Filter .mp3 links and sources.
        enable_video: Filter .mp4/.f4v/.flv links and sources.
        hls_fallback: Append an HTTP (HLS) fallback source after each RTMP source.
        default_cc: Append a WebVTT caption track by default.
        https: Use https instead of http for fallback and caption URLs.
        hls_urlfmt: Streaming server URL dialect, "fms" or "wse".
        default_width: Player width unless a tag overrides it.
        default_height: Player height unless a tag overrides it.
        limit_size: When False the player fills its container.
        video_css_class: Classes applied to <video> tags.
        audio_css_class: Classes applied to <audio> tags.
    """

    model_config = ConfigDict(frozen=True)

    enable_audio: bool = True
    enable_video: bool = True
    hls_fallback: bool = True
    default_cc: bool = True
    https: bool = True
    hls_urlfmt: Literal["fms", "wse"] = "wse"
    default_width: int = 400
    default_height: int = 300
    limit_size: bool = True
    video_css_class: str = REQUIRED_CSS_CLASS
    audio_css_class: str = REQUIRED_CSS_CLASS
    language: str = "en"
    caption_srclang: str = "en"
    caption_label: str = "English"
    allow_object_embed: bool = False

    @field_validator(
        "enable_audio",
        "enable_video",
        "hls_fallback",
        "default_cc",
        "https",
        "limit_size",
        "allow_object_embed",
        mode="before",
    )  # type: ignore[untyped-decorator]
    @classmethod
    def parse_flag(cls, v: Any, info: ValidationInfo) -> Any:
        """Accept 1/0, true/false, yes/no, on/off; anything else means the default."""
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return v != 0
        text = str(v).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        return cls.model_fields[info.field_name].default

    @field_validator("default_width", "default_height", mode="before")  # type: ignore[untyped-decorator]
    @classmethod
    def parse_dimension(cls, v: Any, info: ValidationInfo) -> int:
        """Dimensions must be integers in 1..4096; otherwise the default is used."""
        default: int = cls.model_fields[info.field_name].default
        try:
            number = int(str(v).strip())
        except (TypeError, ValueError):
            return default
        if not 0 < number <= _MAX_DIMENSION:
            return default
        return number

    @field_validator("hls_urlfmt", mode="before")  # type: ignore[untyped-decorator]
    @classmethod
    def parse_urlfmt(cls, v: Any) -> str:
        """Unknown dialects fall back to wse."""
        text = str(v).strip().lower()
        return text if text in HLS_SUFFIXES else "wse"

    @field_validator("video_css_class", "audio_css_class", "language", "caption_srclang", "caption_label", mode="before")  # type: ignore[untyped-decorator]
    @classmethod
    def parse_text(cls, v: Any, info: ValidationInfo) -> str:
        text = " ".join(str(v).split()) if v is not None else ""
        return text or cls.model_fields[info.field_name].default

    @property
    def protocol(self) -> str:
        """Scheme used for HLS fallback and caption URLs."""
        return "https" if self.https else "http"

    @property
    def hls_suffix(self) -> str:
        """Suffix appended after the container extension for HLS URLs."""
        return HLS_SUFFIXES[self.hls_urlfmt]

    def enabled_extensions(self) -> set[str]:
        """Media extensions this configuration filters."""
        extensions: set[str] = set()
        if self.enable_audio:
            extensions.add("mp3")
        if self.enable_video:
            extensions.update({"flv", "mp4", "f4v"})
        return extensions


def get_config_dir() -> Path:
    """Get or create config directory."""
    config_dir = Path.home() / ".rtmpfilter"
    config_dir.mkdir(exist_ok=True)
    return config_dir


def setting_names() -> list[str]:
    """Names of all recognised configuration options."""
    return list(FilterConfig.model_fields)


def _with_required_class(value: str) -> str:
    tokens = value.split()
    if REQUIRED_CSS_CLASS in tokens:
        return value
    return " ".join([REQUIRED_CSS_CLASS, *tokens])


def load_config(
    settings: dict[str, str] | None = None,
    save: Callable[[str, object], None] | None = None,
) -> FilterConfig:
    """Load configuration from the settings store.

    The video and audio CSS class settings are back-filled in the store when
    they lack the class the player requires.

    Args:
        settings: Raw settings to use instead of reading the store.
        save: Writer used for the back-fill (default: the store).

    Returns:
        Validated FilterConfig.
    """
    from rtmpfilter import store

    if settings is None:
        settings = store.get_settings()
    if save is None:
        save = store.set_setting

    known = {k: v for k, v in settings.items() if k in FilterConfig.model_fields}
    config: FilterConfig = FilterConfig.model_validate(known)

    updates: dict[str, str] = {}
    for name in ("video_css_class", "audio_css_class"):
        current = getattr(config, name)
        fixed = _with_required_class(current)
        if fixed != current:
            logger.info("Back-filling {} with '{}'", name, REQUIRED_CSS_CLASS)
            save(name, fixed)
            updates[name] = fixed
    if updates:
        config = config.model_copy(update=updates)
    return config


def save_setting(name: str, value: object) -> None:
    """Validate an option name and write it to the store.

    Raises:
        InvalidSettingError: If name is not a configuration option.
    """
    from rtmpfilter import store

    if name not in FilterConfig.model_fields:
        available = ", ".join(setting_names())
        raise InvalidSettingError(f"Unknown setting '{name}'. Available: {available}")
    store.set_setting(name, value)


def import_settings(path: Path | str) -> dict[str, Any]:
    """Write the [filter] table of a TOML file into the store.

    Returns:
        The settings that were written.

    Raises:
        InvalidSettingError: If the file names an unknown option.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)
    values: dict[str, Any] = data.get("filter", {})
    for name, value in values.items():
        save_setting(name, value)
    logger.info("Imported {} settings from {}", len(values), path)
    return values
