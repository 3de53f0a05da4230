import math
import re
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from .errors import WindowError

ARTIST_SEPARATORS = re.compile(r"\s+(?:\+|&|feat\.?|ft\.?)\s+", re.IGNORECASE)


class UpstreamItem(BaseModel):
    """One slot of the live feed, with the feed's raw time encodings."""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    artist: str = ""
    type: str = ""
    start_time: str = ""  # /Date(1405971945000+0200)/
    duration: str = ""    # PT6M10S

    def is_music(self) -> bool:
        return self.type == "Music"

    def artist_name(self) -> str:
        """First credited artist, which is what the search API matches best."""
        return ARTIST_SEPARATORS.split(self.artist.strip(), maxsplit=1)[0]

    def __str__(self):
        return f"{self.artist} - {self.title}"


class Window(BaseModel):
    items: List[UpstreamItem] = Field(default_factory=list)

    def previous(self) -> UpstreamItem:
        if len(self.items) > 0:
            return self.items[0]
        raise WindowError("previous item not found")

    def current(self) -> UpstreamItem:
        if len(self.items) > 1:
            return self.items[1]
        raise WindowError("current item not found")

    def next(self) -> UpstreamItem:
        if len(self.items) > 2:
            return self.items[2]
        raise WindowError("next item not found")

    def current_and_next(self) -> List[UpstreamItem]:
        if len(self.items) < 3:
            raise WindowError(f"window only contains {len(self.items)} items")
        return self.items[1:3]


class Position(BaseModel):
    elapsed_s: float
    total_s: float

    @property
    def remaining_s(self) -> float:
        return self.total_s - self.elapsed_s

    def __str__(self):
        def mmss(seconds: float) -> str:
            minutes, secs = divmod(int(seconds), 60)
            return f"{minutes % 60:02d}:{secs:02d}"
        return f"{mmss(self.elapsed_s)}/{mmss(self.total_s)}"

    def symbol(self, scale: int = 10) -> str:
        """Progress bar such as '===-------'."""
        elapsed, remaining = scale, 0
        if self.total_s > 0:
            ratio = self.elapsed_s / self.total_s
            if 0 < ratio < 1:
                elapsed = math.ceil(ratio * scale)
                remaining = scale - elapsed
            elif ratio <= 0:
                elapsed, remaining = 0, scale
        return "=" * elapsed + "-" * remaining


class DownstreamTrack(BaseModel):
    id: str
    name: str = ""
    uri: str = ""

    def __str__(self):
        return f"{self.name} ({self.id})"


class Playlist(BaseModel):
    id: str
    name: str
    total: int = 0
    tracks: List[DownstreamTrack] = Field(default_factory=list)

    def __str__(self):
        return f"{self.name} ({self.id}) [{self.total} songs]"


class SyncCycleResult(BaseModel):
    eligible: List[UpstreamItem] = Field(default_factory=list)  # music items, window order
    matched: List[UpstreamItem] = Field(default_factory=list)   # present downstream after the cycle
    added: List[DownstreamTrack] = Field(default_factory=list)
    finished_at: Optional[float] = None

    @property
    def fully_matched(self) -> bool:
        return len(self.matched) == len(self.eligible)
