from typing import Optional


class RadioSyncError(Exception):
    pass


class ConfigError(RadioSyncError):
    pass


class ParseError(RadioSyncError):
    """Malformed metadata on a single feed item. Never retried."""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Failed to parse {field}: {value!r}")


class WindowError(RadioSyncError):
    """The feed window is too short to identify the current/next items."""


class SpotifyError(RadioSyncError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InitializationError(RadioSyncError):
    pass


# Errors caused by bad data rather than a flaky network.
NON_RETRYABLE = (ParseError, WindowError)
