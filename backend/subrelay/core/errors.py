"""Error taxonomy for the translation pipeline.

Provider errors are window-local and recoverable through the split-retry
protocol; cache errors are fatal for the whole run; checkpoint write errors
are only logged.
"""

from typing import Optional


class TranslationError(Exception):
    """Base class for all pipeline errors."""


class ProviderError(TranslationError):
    """Error returned by a translation backend."""

    code = "provider_error"
    retryable = True

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.code}: {self.message}"
        return f"{self.code}: {self.message}"


class TransportError(ProviderError):
    """Network failure or timeout while talking to the backend."""

    code = "network_error"


class RateLimitError(ProviderError):
    """Backend rejected the request because of rate limiting."""

    code = "rate_limit"


class AuthError(ProviderError):
    """Invalid or missing credentials."""

    code = "invalid_key"
    retryable = False


class ResponseShapeError(ProviderError):
    """Malformed reply or a reply whose units do not match the request."""

    code = "desync"


class SplitDepthExceededError(TranslationError):
    """A window kept failing after the maximum number of halvings."""

    def __init__(self, depth: int, unit_ids: list[int]):
        first, last = (unit_ids[0], unit_ids[-1]) if unit_ids else (None, None)
        super().__init__(
            f"window with units {first}..{last} still failing after {depth} splits"
        )
        self.depth = depth
        self.unit_ids = unit_ids


class CacheError(TranslationError):
    """Storage failure in the translation cache. Aborts the whole run."""


class CheckpointWriteError(TranslationError):
    """Checkpoint could not be persisted. Translation continues."""


class QualityGateFailure(TranslationError):
    """High-severity lint issues found in a top-level window."""

    def __init__(self, window_index: int, high_severity_count: int):
        super().__init__(
            f"window {window_index + 1}: {high_severity_count} HIGH severity issues"
        )
        self.window_index = window_index
        self.high_severity_count = high_severity_count
