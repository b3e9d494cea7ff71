"""Apply a SyncResult to the system clock."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from netclock.clock.system_clock import AbstractSystemClock, SystemClock
from netclock.time.sync_result import SyncResult

logger = logging.getLogger(__name__)


class AdjustmentMode(str, Enum):
    """How a result is applied to the local clock."""

    PRINT_ONLY = "print"
    STEP = "step"
    SLEW = "slew"


class AdjustmentStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ClockAdjustment:
    """Outcome of one ``ClockAdjuster.apply`` call."""

    mode: AdjustmentMode
    status: AdjustmentStatus
    delta_ns: int
    """Signed correction that was (or would have been) applied."""

    @property
    def applied(self) -> bool:
        return self.status is AdjustmentStatus.APPLIED


class ClockAdjuster:
    """
    Steps or slews the system clock toward a query result.

    Performs at most one clock mutation per ``apply`` call and never retries;
    permission failures surface as ``ClockPermissionError``.
    """

    def __init__(self, clock: Optional[AbstractSystemClock] = None):
        self.clock = clock or SystemClock()

    def apply(self, result: SyncResult, mode: AdjustmentMode) -> ClockAdjustment:
        """
        Apply *result* according to *mode*.

        The server time is projected to the current local reading, so time
        spent between the query and this call is not lost.

        Args:
            result: Validated query result
            mode: PRINT_ONLY, STEP or SLEW

        Returns:
            ClockAdjustment describing what was done.
        """
        mode = AdjustmentMode(mode)
        if mode is AdjustmentMode.PRINT_ONLY:
            return ClockAdjustment(mode=mode, status=AdjustmentStatus.SKIPPED, delta_ns=result.clock_delta_ns)

        now = self.clock.now_ns()
        target = result.server_time_ns + (now - result.local_time_ns)
        delta = target - now

        if mode is AdjustmentMode.STEP:
            logger.debug("Stepping clock by %dns", delta)
            self.clock.set_absolute(target)
        else:
            logger.debug("Slewing clock by %dns", delta)
            self.clock.slew_toward(delta)

        return ClockAdjustment(mode=mode, status=AdjustmentStatus.APPLIED, delta_ns=delta)
