"""YAML import and export of named playlists.

Layout::

    playlists:
    - course: 12
      name: Week 1
      list:
      - rtmp://media.example.edu/vod/intro.mp4, Introduction
      - rtmp://media.example.edu/vod/talk.mp3
"""

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from rtmpfilter.logging import logger
from rtmpfilter.models import PlaylistRecord


def playlists_to_yaml(playlists: list[PlaylistRecord]) -> str:
    """Serialize playlists to a YAML document."""
    data = {"playlists": [p.to_dict() for p in playlists]}
    result: str = yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return result


def _record(index: int, entry: Any) -> PlaylistRecord:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ValueError(f"Invalid YAML: playlist #{index + 1} has no name")
    try:
        return PlaylistRecord.from_dict(entry)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid YAML: playlist '{entry['name']}': {e}") from e


def yaml_to_playlists(yaml_content: str) -> list[PlaylistRecord]:
    """Parse playlists from a YAML document.

    Raises:
        ValueError: If the document has no ``playlists`` list or an entry is unusable.
    """
    data = yaml.safe_load(yaml_content)
    if not isinstance(data, dict) or "playlists" not in data:
        raise ValueError("Invalid YAML: missing 'playlists' key")
    entries = data["playlists"] or []
    if not isinstance(entries, list):
        raise ValueError("Invalid YAML: 'playlists' must be a list")
    return [_record(i, entry) for i, entry in enumerate(entries)]


def save_yaml(path: Path | str, playlists: list[PlaylistRecord]) -> None:
    """Write playlists to a YAML file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(playlists_to_yaml(playlists), encoding="utf-8")
    logger.debug("Wrote {} playlists to {}", len(playlists), path)


def load_yaml(path: Path | str) -> list[PlaylistRecord]:
    """Read playlists from a YAML file."""
    playlists = yaml_to_playlists(Path(path).read_text(encoding="utf-8"))
    logger.debug("Read {} playlists from {}", len(playlists), path)
    return playlists
