"""Uniform result of one time query, independent of the wire protocol."""

from dataclasses import dataclass
from typing import Optional

from netclock.constants import NANOSECONDS


@dataclass(frozen=True)
class SyncResult:
    """Remote time as observed by the local clock during one query."""

    server: str
    """Host name or address that was queried."""

    source: str
    """Protocol that produced the result (sntp, rfc868)."""

    server_time_ns: int
    """Best estimate of true time, in Unix nanoseconds, at ``local_time_ns``."""

    local_time_ns: int
    """Local clock reading at which ``server_time_ns`` was valid."""

    offset_ns: Optional[int] = None
    """Clock offset (positive = local clock behind). SNTP only."""

    delay_ns: Optional[int] = None
    """Round-trip delay. SNTP only."""

    dispersion_ns: Optional[int] = None
    """Root dispersion plus half the delay, for display. SNTP only."""

    stratum: Optional[int] = None
    leap: Optional[int] = None
    precision: Optional[int] = None
    """Server clock precision as a log2 seconds exponent."""
    poll: Optional[int] = None
    reference: Optional[str] = None

    @property
    def clock_delta_ns(self) -> int:
        """Signed correction to add to the local clock."""
        if self.offset_ns is not None:
            return self.offset_ns
        return self.server_time_ns - self.local_time_ns

    @property
    def offset_s(self) -> Optional[float]:
        return _to_seconds(self.offset_ns)

    @property
    def delay_s(self) -> Optional[float]:
        return _to_seconds(self.delay_ns)

    @property
    def dispersion_s(self) -> Optional[float]:
        return _to_seconds(self.dispersion_ns)


def _to_seconds(value_ns: Optional[int]) -> Optional[float]:
    if value_ns is None:
        return None
    return value_ns / NANOSECONDS
