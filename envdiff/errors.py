"""Exception types raised by the comparison pipeline."""

from __future__ import annotations


class EnvdiffError(Exception):
    """Base class for all envdiff errors."""


class ConfigurationError(EnvdiffError):
    """Raised when the run cannot start, e.g. no page paths are configured."""


class RetryExhaustedError(EnvdiffError):
    """Raised when every attempt of a retried operation has failed.

    Attributes:
        attempts: Total number of attempts made.
        last_error: The exception raised by the final attempt.
        history: Exceptions from every failed attempt, oldest first.
    """

    def __init__(self, attempts: int, last_error: BaseException, history: list[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(f"Failed after {attempts} attempt(s). Last error: {last_error}")


class CaptureError(EnvdiffError):
    """A page could not be captured after exhausting all attempts."""

    def __init__(self, url: str, attempts: int, message: str):
        self.url = url
        self.attempts = attempts
        self.message = message
        super().__init__(f"Failed to load {url} after {attempts} attempts: {message}")


class MissingArtifactError(EnvdiffError):
    """An image expected on disk before diffing is absent."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Expected image not found: {path}")


class ImageTimeoutError(EnvdiffError):
    """Images did not finish loading in time and the run treats that as fatal."""
