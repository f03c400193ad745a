"""Tests for the error hierarchy and deadline tracking."""

import pytest

from tpibox.core.deadline import Deadline
from tpibox.core.errors import (
    BMCError,
    CacheError,
    FlashError,
    IntegrityError,
    NetworkError,
    ProvisionTimeoutError,
    TpiboxError,
)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTpiboxError:
    def test_plain_message(self):
        assert str(TpiboxError("boom")) == "boom"

    def test_node_and_phase_rendering(self):
        error = FlashError("write failed", node=3, phase="flash")
        assert str(error) == "node 3: flash failed: write failed"

    def test_with_context_keeps_existing_phase(self):
        error = IntegrityError("mismatch", phase="verify")
        assert error.with_context(node=2, phase="download") is error
        assert error.node == 2
        assert error.phase == "verify"

    def test_hierarchy(self):
        assert issubclass(BMCError, NetworkError)
        assert issubclass(ProvisionTimeoutError, NetworkError)
        assert not issubclass(CacheError, NetworkError)
        assert BMCError("bad", status_code=500).status_code == 500


class TestDeadline:
    def test_never_expires(self):
        deadline = Deadline.never()
        assert deadline.remaining() is None
        assert not deadline.expired()
        deadline.check("download")
        assert deadline.request_timeout(30.0) == 30.0

    def test_remaining_tracks_clock(self):
        clock = FakeClock()
        deadline = Deadline(10.0, clock=clock)

        clock.now += 4.0
        assert deadline.remaining() == pytest.approx(6.0)
        assert deadline.request_timeout(30.0) == pytest.approx(6.0)
        assert deadline.request_timeout(2.0) == pytest.approx(2.0)

    def test_check_raises_after_expiry(self):
        clock = FakeClock()
        deadline = Deadline(1.0, clock=clock)
        clock.now += 1.5

        assert deadline.expired()
        assert deadline.remaining() == 0.0
        with pytest.raises(ProvisionTimeoutError) as exc_info:
            deadline.check("flash")
        assert exc_info.value.phase == "flash"
