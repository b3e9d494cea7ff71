"""One clock synchronization run: query a time server, then apply the result."""

from dataclasses import dataclass
from typing import Optional

from netclock.clock.clock_adjuster import ClockAdjuster, ClockAdjustment
from netclock.logging import NETCLOCK_LOGGER
from netclock.settings import NetClockSettings
from netclock.time.sync_result import SyncResult
from netclock.time.time_sources import TimeSource


@dataclass(frozen=True)
class SyncReport:
    result: SyncResult
    adjustment: ClockAdjustment


class ClockSynchronizer:
    """
    Runs the query-then-adjust sequence once.

    At most one network round trip and one clock mutation happen per ``run``;
    the clock is only touched after the reply has been fully validated, and
    every error propagates to the caller unchanged.
    """

    def __init__(
        self,
        settings: NetClockSettings,
        time_source: Optional[TimeSource] = None,
        adjuster: Optional[ClockAdjuster] = None,
    ):
        self.settings = settings
        self.time_source = time_source or TimeSource.from_settings(settings)
        self.adjuster = adjuster or ClockAdjuster()

    def query(self) -> SyncResult:
        """Perform the single network round trip."""
        settings = self.settings
        NETCLOCK_LOGGER.info(
            f"Querying {settings.host}:{settings.effective_port} via {self.time_source.get_source_name()} "
            f"(timeout {settings.timeout}s)"
        )
        result = self.time_source.query(settings.host, timeout=settings.timeout, port=settings.effective_port)
        NETCLOCK_LOGGER.info(f"Clock delta {result.clock_delta_ns / 1e9:+.6f}s from {result.server}")
        return result

    def apply(self, result: SyncResult) -> ClockAdjustment:
        """Apply a validated result with the configured mode."""
        adjustment = self.adjuster.apply(result, self.settings.mode)
        NETCLOCK_LOGGER.info(f"Clock adjustment {adjustment.status.value} (mode {adjustment.mode.value})")
        return adjustment

    def run(self) -> SyncReport:
        result = self.query()
        return SyncReport(result=result, adjustment=self.apply(result))
