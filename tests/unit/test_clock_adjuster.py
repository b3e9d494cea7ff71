"""Unit tests for ClockAdjuster with a fake system clock."""

import pytest

from netclock.clock.clock_adjuster import AdjustmentMode, AdjustmentStatus, ClockAdjuster
from netclock.exceptions import ClockPermissionError
from netclock.time.sync_result import SyncResult
from tests.utils import BASE_NS, MS, FakeClock

SECOND = 1_000_000_000


def _sntp_result(offset_ns=SECOND):
    return SyncResult(
        server="time.example",
        source="sntp",
        server_time_ns=BASE_NS + offset_ns,
        local_time_ns=BASE_NS,
        offset_ns=offset_ns,
        delay_ns=20 * MS,
    )


def _rfc868_result(delta_ns):
    return SyncResult(server="time.example", source="rfc868", server_time_ns=BASE_NS + delta_ns, local_time_ns=BASE_NS)


def test_mode_values():
    assert AdjustmentMode.PRINT_ONLY == "print"
    assert AdjustmentMode.STEP == "step"
    assert AdjustmentMode.SLEW == "slew"


def test_print_only_never_touches_clock():
    clock = FakeClock()
    adjustment = ClockAdjuster(clock).apply(_sntp_result(), AdjustmentMode.PRINT_ONLY)

    assert adjustment.status is AdjustmentStatus.SKIPPED
    assert adjustment.applied is False
    assert adjustment.delta_ns == SECOND
    assert clock.set_calls == []
    assert clock.slew_calls == []


def test_print_only_skips_even_when_clock_would_fail():
    clock = FakeClock(error=ClockPermissionError("clock_settime"))
    adjustment = ClockAdjuster(clock).apply(_sntp_result(), AdjustmentMode.PRINT_ONLY)
    assert adjustment.status is AdjustmentStatus.SKIPPED


def test_step_projects_server_time_to_now():
    # Half a second passed between the query and the adjustment
    clock = FakeClock(now_ns=BASE_NS + 500 * MS)
    adjustment = ClockAdjuster(clock).apply(_sntp_result(), AdjustmentMode.STEP)

    assert clock.set_calls == [BASE_NS + 1500 * MS]
    assert clock.slew_calls == []
    assert adjustment.status is AdjustmentStatus.APPLIED
    assert adjustment.delta_ns == SECOND


def test_slew_requests_signed_delta():
    clock = FakeClock(now_ns=BASE_NS + 200 * MS)
    adjustment = ClockAdjuster(clock).apply(_sntp_result(offset_ns=-300 * MS), AdjustmentMode.SLEW)

    assert clock.slew_calls == [-300 * MS]
    assert clock.set_calls == []
    assert adjustment.applied is True
    assert adjustment.mode is AdjustmentMode.SLEW


def test_step_with_rfc868_result():
    clock = FakeClock(now_ns=BASE_NS)
    ClockAdjuster(clock).apply(_rfc868_result(-7 * SECOND), AdjustmentMode.STEP)
    assert clock.set_calls == [BASE_NS - 7 * SECOND]


def test_permission_error_propagates():
    clock = FakeClock(error=ClockPermissionError("clock_settime"))
    with pytest.raises(ClockPermissionError, match="CAP_SYS_TIME"):
        ClockAdjuster(clock).apply(_sntp_result(), AdjustmentMode.STEP)


def test_slew_permission_error_propagates():
    clock = FakeClock(error=ClockPermissionError("adjtime"))
    with pytest.raises(ClockPermissionError) as exc_info:
        ClockAdjuster(clock).apply(_sntp_result(), AdjustmentMode.SLEW)
    assert exc_info.value.operation == "adjtime"


def test_mode_accepts_string():
    clock = FakeClock()
    adjustment = ClockAdjuster(clock).apply(_sntp_result(), "slew")
    assert adjustment.mode is AdjustmentMode.SLEW
    assert clock.slew_calls == [SECOND]
