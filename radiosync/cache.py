import logging
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional

from .models import DownstreamTrack

logger = logging.getLogger(__name__)

EvictionCallback = Callable[[DownstreamTrack], None]


class TrackCache:
    """
    Fixed-size set of tracks already in the playlist, ordered by recency.

    Membership is by track id. When an insert pushes the size past capacity
    the least recently added track is dropped and handed to on_evicted.
    """

    def __init__(self, capacity: int, on_evicted: Optional[EvictionCallback] = None):
        if capacity < 1:
            raise ValueError("cache capacity must be a positive integer")
        self.capacity = capacity
        self.on_evicted = on_evicted
        self._entries: "OrderedDict[str, DownstreamTrack]" = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def contains(self, track_id: str) -> bool:
        return track_id in self._entries

    def add(self, track: DownstreamTrack) -> bool:
        """Returns False if the track was already cached."""
        if track.id in self._entries:
            return False
        self._entries[track.id] = track
        if len(self._entries) > self.capacity:
            _, evicted = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted} from cache")
            if self.on_evicted:
                self.on_evicted(evicted)
        return True

    def prime(self, tracks: Iterable[DownstreamTrack]):
        """Seed from tracks already in the playlist, oldest first. Never evicts remotely."""
        for track in list(tracks)[-self.capacity:]:
            if track.id not in self._entries:
                self._entries[track.id] = track
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def tracks(self) -> List[DownstreamTrack]:
        return list(self._entries.values())
