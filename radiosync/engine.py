import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from .cache import TrackCache
from .errors import InitializationError, RadioSyncError
from .interval import IntervalStrategy
from .models import DownstreamTrack, Playlist, SyncCycleResult, UpstreamItem, Window
from .position import calculate_position
from .retry import RetryPolicy, retry


class SyncOrchestrator:
    """
    Reconciles the radio's current/next items into the Spotify playlist.

    Owns the track cache and the playlist snapshot. One cycle runs at a time;
    every network step goes through retry() with either the startup or the
    per-cycle budget.
    """

    def __init__(
        self,
        radio,
        spotify,
        cache_size: int,
        interval: IntervalStrategy,
        fallback_interval_s: float,
        startup_retry: RetryPolicy,
        cycle_retry: RetryPolicy,
        delete_evicted: bool = False,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.radio = radio
        self.spotify = spotify
        self.cache_size = cache_size
        self.interval = interval
        self.fallback_interval_s = fallback_interval_s
        self.startup_retry = startup_retry
        self.cycle_retry = cycle_retry
        self.delete_evicted = delete_evicted
        self.log = logger or logging.getLogger(__name__)
        self.sleep = sleep

        self.playlist: Optional[Playlist] = None
        self.cache: Optional[TrackCache] = None
        self.running = True
        self.last_result: Optional[SyncCycleResult] = None
        self.last_successful_sync = 0.0
        self.next_sync_at = 0.0
        self._evicted: List[DownstreamTrack] = []

    def _retry_logger(self, what: str):
        def on_retry(exc: Exception, attempt: int, delay: float):
            self.log.warning(f"{what} failed: {exc}. Retrying in {delay:.1f}s (attempt {attempt})")
        return on_retry

    async def _retry(self, what: str, operation, policy: RetryPolicy):
        return await retry(operation, policy, on_retry=self._retry_logger(what), sleep=self.sleep)

    # Initialization

    async def init_playlist(self):
        try:
            self.playlist = await self._retry(
                "Get playlist",
                lambda: self.spotify.get_or_create_playlist(self.radio.name),
                self.startup_retry,
            )
        except Exception as e:
            raise InitializationError(f"Failed to initialize playlist: {e}") from e
        self.log.info(f"Playlist: {self.playlist}")

    async def init_cache(self):
        try:
            tracks = await self._retry(
                "Get recent tracks",
                lambda: self.spotify.recent_tracks(self.playlist, self.cache_size),
                self.startup_retry,
            )
        except Exception as e:
            raise InitializationError(f"Failed to init cache: {e}") from e
        self.cache = TrackCache(self.cache_size)
        self.cache.prime(tracks)
        if self.delete_evicted:
            self.log.info("Deleting evicted tracks from playlist")
            self.cache.on_evicted = self._evicted.append
        self.log.info(f"Size: {len(self.cache)}/{self.cache.capacity}")

    async def initialize(self):
        self.log.info("Initializing Spotify playlist")
        await self.init_playlist()
        self.log.info("Initializing cache")
        await self.init_cache()
        self.log.info(f"Syncing {self.interval}")

    # Cycle

    async def delete_evicted_tracks(self):
        """Best effort: a failed delete is logged and the track is forgotten."""
        while self._evicted:
            track = self._evicted.pop(0)
            try:
                await self._retry(
                    "Delete track",
                    lambda: self.spotify.delete_track(self.playlist, track),
                    self.cycle_retry,
                )
            except Exception as e:
                self.log.error(f"Failed to delete track: {track} ({e})")
                continue
            self.log.info(f"Deleted evicted track: {track}")

    def log_current_item(self, window: Window):
        try:
            current = window.current()
            position = calculate_position(current)
        except RadioSyncError as e:
            self.log.warning(f"Failed to get current track: {e}")
            return
        self.log.info(
            f"{self.radio.name} is currently playing: {current} ({position}) [{position.symbol(10)}]"
        )

    async def reconcile(self, item: UpstreamItem, result: SyncCycleResult):
        self.log.info(f"Searching for: {item}")
        if not item.is_music():
            self.log.info(f"Not music, skipping: {item}")
            return
        result.eligible.append(item)

        try:
            tracks = await self._retry(
                "Search",
                lambda: self.spotify.search_artist_track(item.artist_name(), item.title),
                self.cycle_retry,
            )
        except Exception as e:
            self.log.error(f"Search failed: {item} ({e})")
            return
        if not tracks:
            self.log.warning(f"Track not found: {item}")
            return

        track = tracks[0]
        if self.cache.contains(track.id):
            self.log.info(f"Already added: {track}")
            result.matched.append(item)
            return

        try:
            await self._retry(
                "Add track",
                lambda: self.spotify.add_track(self.playlist, track),
                self.cycle_retry,
            )
        except Exception as e:
            self.log.error(f"Failed to add: {track} ({e})")
            return
        self.cache.add(track)
        result.matched.append(item)
        result.added.append(track)
        self.log.info(f"Added track: {track}")

        await self.delete_evicted_tracks()

    async def run(self) -> float:
        """Runs one cycle and returns the number of seconds until the next one."""
        self.log.info("Running sync")
        window = await self._retry("Retrieving radio playlist", self.radio.fetch_window, self.cycle_retry)
        self.log_current_item(window)

        result = SyncCycleResult()
        for item in window.current_and_next():
            await self.reconcile(item, result)
        result.finished_at = time.time()
        self.last_result = result
        self.log.info(f"Cache size: {len(self.cache)}/{self.cache.capacity}")

        try:
            return self.interval.next_interval(window, result)
        except RadioSyncError as e:
            self.log.warning(f"Could not compute adaptive interval: {e}")
            return self.fallback_interval_s

    async def run_once(self) -> float:
        try:
            duration = await self.run()
            self.last_successful_sync = time.time()
        except Exception as e:
            self.log.error(f"Sync failed: {e}")
            duration = self.fallback_interval_s
        self.next_sync_at = time.time() + duration
        self.log.info(f"Next sync in {duration:.0f}s")
        return duration

    async def run_forever(self):
        while self.running:
            duration = await self.run_once()
            await self.sleep(duration)

    def stop(self):
        self.running = False
