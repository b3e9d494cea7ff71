"""System clock mutation: stepping and slewing."""

from netclock.clock.clock_adjuster import AdjustmentMode, AdjustmentStatus, ClockAdjuster, ClockAdjustment
from netclock.clock.system_clock import AbstractSystemClock, SystemClock, to_timeval

__all__ = [
    "AbstractSystemClock",
    "AdjustmentMode",
    "AdjustmentStatus",
    "ClockAdjuster",
    "ClockAdjustment",
    "SystemClock",
    "to_timeval",
]
