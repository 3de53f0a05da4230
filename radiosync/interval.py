import logging
import time
from typing import Callable

from .models import SyncCycleResult, Window
from .position import calculate_position, parse_duration

logger = logging.getLogger(__name__)

# Floor for adaptive waits, so a feed that hasn't advanced yet can't make us spin
MIN_INTERVAL_SECONDS = 5


class IntervalStrategy:
    def next_interval(self, window: Window, result: SyncCycleResult) -> float:
        raise NotImplementedError


class FixedInterval(IntervalStrategy):
    def __init__(self, interval_s: float):
        self.interval_s = interval_s

    def next_interval(self, window: Window, result: SyncCycleResult) -> float:
        return self.interval_s

    def __str__(self):
        return f"every {self.interval_s:.0f}s"


class AdaptiveInterval(IntervalStrategy):
    """
    Sleeps until the last reconciled item of the window should have finished:
    the remaining time of the current item plus the full duration of every
    matched item after it. Any unmatched music item forfeits the adaptive
    interval for that cycle, since its timing can't be trusted.
    """

    def __init__(self, fallback_s: float, clock: Callable[[], float] = time.time):
        self.fallback_s = fallback_s
        self.clock = clock

    def next_interval(self, window: Window, result: SyncCycleResult) -> float:
        if not result.fully_matched:
            logger.info(
                f"{len(result.matched)}/{len(result.eligible)} tracks were matched. "
                f"Falling back to regular interval"
            )
            return self.fallback_s
        if not result.matched:
            return self.fallback_s

        current = window.current()
        total = 0.0
        for item in result.matched:
            if item == current:
                total += calculate_position(item, now=self.clock()).remaining_s
            else:
                total += parse_duration(item.duration)
        return max(total, MIN_INTERVAL_SECONDS)

    def __str__(self):
        return "adaptive"


def make_interval_strategy(adaptive: bool, interval_s: float) -> IntervalStrategy:
    if adaptive:
        return AdaptiveInterval(interval_s)
    return FixedInterval(interval_s)
