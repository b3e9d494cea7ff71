"""Network time retrieval: wire codecs and protocol clients."""

from netclock.time.rfc868_client import Rfc868Client, Transport
from netclock.time.sntp_client import SntpClient, measure_clock_precision_ns
from netclock.time.sync_result import SyncResult
from netclock.time.time_sources import TimeProtocol, TimeSource

__all__ = [
    "Rfc868Client",
    "SntpClient",
    "SyncResult",
    "TimeProtocol",
    "TimeSource",
    "Transport",
    "measure_clock_precision_ns",
]
