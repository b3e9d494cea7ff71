"""Protocol selection for time queries."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from netclock.constants import DEFAULT_TIMEOUT_S, NTP_PORT, TIME_PORT
from netclock.time.rfc868_client import Rfc868Client, Transport
from netclock.time.sntp_client import SntpClient
from netclock.time.sync_result import SyncResult

if TYPE_CHECKING:
    from netclock.settings import NetClockSettings


class TimeProtocol(str, Enum):
    """Wire protocol used to fetch the remote time."""

    SNTP = "sntp"
    RFC868 = "rfc868"

    @property
    def default_port(self) -> int:
        return NTP_PORT if self is TimeProtocol.SNTP else TIME_PORT


class TimeSource:
    """
    Protocol-agnostic front for the SNTP and RFC 868 clients.

    Holds one client per protocol and dispatches on ``protocol``; callers only
    see ``query(...) -> SyncResult``.
    """

    def __init__(
        self,
        protocol: TimeProtocol = TimeProtocol.SNTP,
        transport: Transport = Transport.TCP,
        sntp_client: Optional[SntpClient] = None,
        rfc868_client: Optional[Rfc868Client] = None,
    ):
        """
        Initialize time source.

        Args:
            protocol: Which wire protocol to use
            transport: Socket transport for RFC 868 (SNTP is always UDP)
            sntp_client: Client override, mainly for tests
            rfc868_client: Client override, mainly for tests
        """
        self.protocol = TimeProtocol(protocol)
        self.transport = Transport(transport)
        self.sntp_client = sntp_client or SntpClient()
        self.rfc868_client = rfc868_client or Rfc868Client()

    @classmethod
    def from_settings(cls, settings: "NetClockSettings") -> "TimeSource":
        return cls(protocol=settings.protocol, transport=settings.transport)

    def get_source_name(self) -> str:
        return self.protocol.value

    def query(self, host: str, timeout: float = DEFAULT_TIMEOUT_S, port: Optional[int] = None) -> SyncResult:
        """
        Query *host* once with the configured protocol.

        Args:
            host: Time server
            timeout: Seconds to wait for the reply
            port: Server port (default 123 for SNTP, 37 for RFC 868)

        Returns:
            SyncResult from the selected client; errors propagate unchanged.
        """
        if port is None:
            port = self.protocol.default_port

        if self.protocol is TimeProtocol.SNTP:
            return self.sntp_client.query(host, timeout=timeout, port=port)
        return self.rfc868_client.query(host, timeout=timeout, port=port, transport=self.transport)
