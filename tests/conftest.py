"""Shared pytest fixtures for rtmpfilter tests."""

from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from rtmpfilter.config import FilterConfig
from rtmpfilter.filter import RtmpFilter
from rtmpfilter.models import PlaylistRecord
from rtmpfilter.playlist_builder import PageRequirements

COURSE_ID = 7


@pytest.fixture
def temp_store_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Use a temporary directory for the SQLite store during tests."""
    with patch("rtmpfilter.store.get_config_dir", return_value=tmp_path):
        yield tmp_path


@pytest.fixture
def config() -> FilterConfig:
    """Default configuration: audio and video on, HLS fallback and captions on, wse, https."""
    return FilterConfig()


@pytest.fixture
def playlists() -> dict[tuple[int, str], PlaylistRecord]:
    """In-memory playlist store keyed by (course, name)."""
    return {
        (COURSE_ID, "MyList"): PlaylistRecord(
            course_id=COURSE_ID,
            name="MyList",
            urls="rtmp://media.example.edu/vod/week1/intro.mp4, Introduction\n"
            "rtmp://media.example.edu/vod/week1/talk.mp3\n",
        ),
        (COURSE_ID, "Tom & Jerry"): PlaylistRecord(
            course_id=COURSE_ID,
            name="Tom & Jerry",
            urls="rtmp://media.example.edu/vod/cartoon.flv, Cartoon",
        ),
    }


@pytest.fixture
def lookup(
    playlists: dict[tuple[int, str], PlaylistRecord],
) -> Callable[[int, str], PlaylistRecord | None]:
    """Playlist lookup backed by the in-memory store."""

    def _lookup(course_id: int, name: str) -> PlaylistRecord | None:
        return playlists.get((course_id, name))

    return _lookup


@pytest.fixture
def requirements() -> PageRequirements:
    return PageRequirements()


@pytest.fixture
def make_filter(
    lookup: Callable[[int, str], PlaylistRecord | None],
    requirements: PageRequirements,
) -> Callable[..., RtmpFilter]:
    """Build an RtmpFilter with the in-memory playlist store.

    Keyword arguments override FilterConfig defaults.
    """

    def _make(**settings: object) -> RtmpFilter:
        return RtmpFilter(
            FilterConfig(**settings),
            course_id=COURSE_ID,
            lookup=lookup,
            loader=requirements,
        )

    return _make
