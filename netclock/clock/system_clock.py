"""Access to the operating system wall clock.

Stepping uses ``clock_settime(CLOCK_REALTIME)`` from the standard library.
Slewing calls ``adjtime(2)`` from libc via ctypes; the kernel applies the
correction gradually (on Linux at most 500 ppm) and the call returns at once.
Both need root or ``CAP_SYS_TIME``.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import errno
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from netclock.exceptions import ClockAdjustmentError, ClockPermissionError

logger = logging.getLogger(__name__)

_MICROSECONDS = 1_000_000


class _Timeval(ctypes.Structure):
    _fields_ = [
        ("tv_sec", ctypes.c_long),
        ("tv_usec", ctypes.c_long),
    ]


def to_timeval(delta_ns: int) -> Tuple[int, int]:
    """Split a signed nanosecond delta into ``(tv_sec, tv_usec)`` with ``0 <= tv_usec < 1e6``.

    -0.9 s becomes ``(-1, 100000)``, the normalized form ``adjtime`` expects.
    """
    return divmod(delta_ns // 1000, _MICROSECONDS)


class AbstractSystemClock(ABC):
    """The clock capability ``ClockAdjuster`` depends on."""

    def now_ns(self) -> int:
        """Current wall clock time in Unix nanoseconds."""
        return time.time_ns()

    @abstractmethod
    def set_absolute(self, target_ns: int) -> None:
        """Step the clock to *target_ns* (Unix nanoseconds)."""

    @abstractmethod
    def slew_toward(self, delta_ns: int) -> None:
        """Ask the OS to gradually apply a signed correction of *delta_ns*."""


class SystemClock(AbstractSystemClock):
    """The real system clock. Mutations need elevated privilege."""

    def __init__(self, libc: Optional[Any] = None):
        """
        Args:
            libc: Loaded C library exposing ``adjtime``; loaded on first slew when omitted
        """
        self._libc = libc

    def set_absolute(self, target_ns: int) -> None:
        if not hasattr(time, "clock_settime_ns"):
            raise ClockAdjustmentError("clock_settime is not available on this platform")
        logger.debug("clock_settime(CLOCK_REALTIME, %d)", target_ns)
        try:
            time.clock_settime_ns(time.CLOCK_REALTIME, target_ns)
        except PermissionError as exc:
            raise ClockPermissionError("clock_settime") from exc
        except OSError as exc:
            raise ClockAdjustmentError(f"Failed to set time with clock_settime: {exc}") from exc

    def slew_toward(self, delta_ns: int) -> None:
        adjtime = self._load_adjtime()
        seconds, micros = to_timeval(delta_ns)
        delta = _Timeval(seconds, micros)
        logger.debug("adjtime(%d s, %d us)", seconds, micros)
        if adjtime(ctypes.byref(delta), None) != 0:
            err = ctypes.get_errno()
            if err == errno.EPERM:
                raise ClockPermissionError("adjtime")
            if err == errno.EINVAL:
                raise ClockAdjustmentError(f"adjtime rejected a correction of {delta_ns / 1e9:.6f}s (too large)")
            raise ClockAdjustmentError(f"Failed to set time with adjtime: {os.strerror(err)}")

    def _load_adjtime(self):
        if self._libc is None:
            try:
                self._libc = ctypes.CDLL(ctypes.util.find_library("c"), use_errno=True)
            except (OSError, TypeError) as exc:
                raise ClockAdjustmentError(f"Cannot load the C library for adjtime: {exc}") from exc
        try:
            adjtime = self._libc.adjtime
        except AttributeError as exc:
            raise ClockAdjustmentError("adjtime is not available on this platform") from exc
        adjtime.argtypes = [ctypes.POINTER(_Timeval), ctypes.POINTER(_Timeval)]
        adjtime.restype = ctypes.c_int
        return adjtime
