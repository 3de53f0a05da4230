import math
import re
import time
from typing import Optional

from .errors import ParseError
from .models import Position, UpstreamItem

START_TIME_RE = re.compile(r"^/Date\((\d+)[+-]\d+\)/$")
DURATION_RE = re.compile(
    r"^PT(?:(\d+(?:\.\d+)?)H)?(?:(\d+(?:\.\d+)?)M)?(?:(\d+(?:\.\d+)?)S)?$",
    re.IGNORECASE,
)


def parse_start_time(raw: str) -> float:
    """
    Parses '/Date(1405971945000+0200)/' into epoch seconds.
    The millisecond timestamp is UTC already, the offset is informational.
    """
    match = START_TIME_RE.match(raw or "")
    if not match:
        raise ParseError("start time", raw)
    return float(int(match.group(1)) // 1000)


def parse_duration(raw: str) -> float:
    """Parses an ISO-8601 style duration such as 'PT6M10S' into seconds."""
    match = DURATION_RE.match(raw or "")
    if not match or not any(match.groups()):
        raise ParseError("duration", raw)
    hours, minutes, seconds = (float(g) if g else 0.0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def clamp_position(elapsed_s: float, total_s: float) -> Position:
    # Feed latency or a skewed clock can put us past the end or before the start
    elapsed_s = min(elapsed_s, total_s)
    elapsed_s = max(elapsed_s, 0.0)
    return Position(elapsed_s=elapsed_s, total_s=total_s)


def calculate_position(item: UpstreamItem, now: Optional[float] = None) -> Position:
    start = parse_start_time(item.start_time)
    total = parse_duration(item.duration)
    if now is None:
        now = time.time()
    return clamp_position(math.floor(now) - start, total)
