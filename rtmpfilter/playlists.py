"""Named playlist lookup with a per-pass cache."""

from collections.abc import Callable

from rtmpfilter.logging import logger
from rtmpfilter.models import PlaylistRecord

PlaylistLookup = Callable[[int, str], PlaylistRecord | None]


class PlaylistResolver:
    """Resolves playlist names for one course during one filter pass.

    Hits and misses are both remembered, so each (course, name) pair is
    looked up at most once. Build a new resolver for every pass so stored
    playlist edits are picked up by the next request.
    """

    def __init__(self, course_id: int, lookup: PlaylistLookup | None = None) -> None:
        if lookup is None:
            from rtmpfilter.store import get_playlist_record

            lookup = get_playlist_record
        self.course_id = course_id
        self._lookup = lookup
        self._cache: dict[str, PlaylistRecord | None] = {}

    def resolve(self, name: str) -> PlaylistRecord | None:
        """Return the playlist record for name, or None if there is none."""
        key = f"{self.course_id}:{name}"
        if key in self._cache:
            logger.debug("Playlist cache hit for {}", key)
            return self._cache[key]

        try:
            record = self._lookup(self.course_id, name)
        except Exception as e:
            # Playlists are optional; any store failure means no playlist.
            logger.debug("Playlist lookup failed for {}: {}", key, e)
            record = None

        if record is None:
            logger.debug("No playlist named {}", key)
        self._cache[key] = record
        return record

    def __len__(self) -> int:
        return len(self._cache)
