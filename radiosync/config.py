from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from .retry import RetryPolicy

class Settings(BaseSettings):
    # Radio
    RADIO_NAME: Optional[str] = None
    RADIO_ID: Optional[str] = None
    NRK_BASE_URL: str = "http://v7.psapi.nrk.no"

    # Spotify
    SPOTIFY_TOKEN_PATH: str = ".token.json"
    SPOTIFY_CLIENT_ID: Optional[str] = None
    SPOTIFY_CLIENT_SECRET: Optional[str] = None
    SPOTIFY_API_URL: str = "https://api.spotify.com/v1"
    SPOTIFY_ACCOUNTS_URL: str = "https://accounts.spotify.com"
    AUTH_LISTEN: str = ":8080"

    # Sync Logic
    SYNC_INTERVAL_SECONDS: int = 300
    ADAPTIVE_INTERVAL: bool = False
    CACHE_SIZE: int = 100
    DELETE_EVICTED: bool = False

    # Retries
    STARTUP_RETRY_BUDGET_SECONDS: int = 300
    CYCLE_RETRY_BUDGET_SECONDS: int = 60
    RETRY_INITIAL_DELAY_SECONDS: float = 0.5
    RETRY_MULTIPLIER: float = 1.5
    RETRY_MAX_DELAY_SECONDS: float = 60.0
    RETRY_JITTER: float = 0.5

    # System
    LOG_LEVEL: str = "INFO"
    HTTP_SERVER_ENABLED: bool = False
    HTTP_SERVER_PORT: int = 8081
    HTTP_SERVER_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def retry_policy(self, budget_s: float) -> RetryPolicy:
        return RetryPolicy(
            max_elapsed_s=budget_s,
            initial_delay_s=self.RETRY_INITIAL_DELAY_SECONDS,
            multiplier=self.RETRY_MULTIPLIER,
            max_delay_s=self.RETRY_MAX_DELAY_SECONDS,
            jitter=self.RETRY_JITTER,
        )

    @property
    def startup_retry(self) -> RetryPolicy:
        return self.retry_policy(self.STARTUP_RETRY_BUDGET_SECONDS)

    @property
    def cycle_retry(self) -> RetryPolicy:
        return self.retry_policy(self.CYCLE_RETRY_BUDGET_SECONDS)

settings = Settings()
