"""Deadline tracking for long-running provisioning chains."""

import time

from tpibox.core.errors import ProvisionTimeoutError


class Deadline:
    """Absolute point in time after which a provisioning chain is cancelled.

    A single deadline is threaded through download, decompression, hashing,
    cache transfers and the flash dispatch. Each streamed chunk calls
    ``check()``, so cancellation reaches in-flight reads at chunk granularity.
    """

    def __init__(self, timeout: float | None, clock=time.monotonic):
        self._clock = clock
        self.timeout = timeout
        self._expires_at = None if timeout is None else clock() + timeout

    @classmethod
    def never(cls) -> "Deadline":
        """Deadline that never expires."""
        return cls(None)

    def remaining(self) -> float | None:
        """Seconds left, or None for no limit. Never negative."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self, phase: str | None = None) -> None:
        """Raise ProvisionTimeoutError if the deadline has passed."""
        if self.expired():
            raise ProvisionTimeoutError(
                f"operation timed out after {self.timeout:g}s", phase=phase
            )

    def request_timeout(self, cap: float | None = None) -> float | None:
        """Timeout suitable for a single blocking network call."""
        remaining = self.remaining()
        if remaining is None:
            return cap
        if cap is None:
            return max(remaining, 0.001)
        return max(min(remaining, cap), 0.001)
