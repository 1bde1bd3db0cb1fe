"""
Run Circuit Breaker - one audit run stops probing a target that is shedding load.

States:
- closed: probes are sent
- open: after N consecutive rate-limited (429) or unanswered probes, probes
  are skipped until the cooldown has elapsed
- half_open: one trial probe is let through; its answer closes or reopens

Every AuditRunner owns its own breaker, so a run that backs off never makes
another run (or a later one) skip probes.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from labaudit.config import Settings, settings
from labaudit.logger import logger


class BreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerPolicy:
    """When to open and how long to stay open."""
    failure_threshold: int = 5
    cooldown_seconds: float = 30.0

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "BreakerPolicy":
        return cls(
            failure_threshold=source.CIRCUIT_FAILURE_THRESHOLD,
            cooldown_seconds=float(source.CIRCUIT_COOLDOWN_SECONDS)
        )


class RunCircuitBreaker:
    """Backoff state for the probes of one run against one target."""

    def __init__(
        self,
        target: str,
        policy: Optional[BreakerPolicy] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.target = target
        self.policy = policy or BreakerPolicy.from_settings()
        self._clock = clock
        self.state = BreakerState.CLOSED
        self.consecutive_failures = 0
        self.skipped = 0
        self._opened_at: Optional[float] = None

    def allow(self) -> Tuple[bool, str]:
        """Whether the next probe may be sent, and why not when it may not."""
        if self.state == BreakerState.CLOSED:
            return True, ""

        if self.state == BreakerState.OPEN:
            waited = self._clock() - self._opened_at
            if waited >= self.policy.cooldown_seconds:
                logger.info(f"Circuit [{self.target}]: cooldown over, sending a trial probe")
                self.state = BreakerState.HALF_OPEN
                return True, ""
            self.skipped += 1
            return False, f"circuit_open ({self.policy.cooldown_seconds - waited:.0f}s of cooldown left)"

        # Half open: the trial probe is still in flight
        self.skipped += 1
        return False, "circuit_open (waiting for the trial probe)"

    def record_success(self):
        if self.state != BreakerState.CLOSED:
            logger.info(f"Circuit [{self.target}]: target answered again, closing")
        self.state = BreakerState.CLOSED
        self.consecutive_failures = 0
        self._opened_at = None

    def record_failure(self):
        self.consecutive_failures += 1

        if self.state == BreakerState.HALF_OPEN:
            self._open("trial probe failed")
        elif self.state == BreakerState.CLOSED and self.consecutive_failures >= self.policy.failure_threshold:
            self._open(f"{self.consecutive_failures} consecutive failures")

    def _open(self, reason: str):
        self.state = BreakerState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            f"Circuit [{self.target}]: opened after {reason}, "
            f"pausing probes for {self.policy.cooldown_seconds:g}s"
        )

    def get_status(self) -> dict:
        return {
            "target": self.target,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "skipped_probes": self.skipped,
            "failure_threshold": self.policy.failure_threshold,
            "cooldown_seconds": self.policy.cooldown_seconds
        }
