"""Minimal SNTP client (RFC 4330, RFC 5905 client mode).

One request, one reply, no retries. The request's transmit timestamp is the
local clock reading T1 taken just before sending; the server echoes it back as
the originate timestamp, and a reply that does not echo it bit-for-bit is
rejected as stale or spoofed.
"""

from __future__ import annotations

import functools
import logging
import socket
import time
from typing import Callable, Optional

import ntplib

from netclock.constants import (
    DEFAULT_TIMEOUT_S,
    NTP_LEAP_ALARM,
    NTP_MODE_CLIENT,
    NTP_MODE_SERVER,
    NTP_PACKET_SIZE,
    NTP_PORT,
    NTP_VERSION,
)
from netclock.exceptions import (
    KissOfDeathError,
    MalformedReplyError,
    NetworkError,
    NetworkTimeoutError,
    OriginateMismatchError,
    ProtocolError,
    UnexpectedModeError,
)
from netclock.time.sync_result import SyncResult
from netclock.time.timestamp_codec import (
    NtpPacket,
    NtpTimestamp,
    absolute_to_ntp,
    decode_ntp,
    encode_ntp,
    ntp_to_absolute,
)

logger = logging.getLogger(__name__)

# Large enough for a header plus extension fields, which are ignored.
_RECV_BUFFER_SIZE = 1024


@functools.lru_cache(maxsize=None)
def measure_clock_precision_ns(samples: int = 8) -> int:
    """Return the local wall clock precision (rho) in nanoseconds.

    Smallest observed step between two consecutive ``time.time_ns()`` readings
    that differ. Measured once per process.
    """
    best = None
    for _ in range(samples):
        start = time.time_ns()
        end = time.time_ns()
        while end == start:
            end = time.time_ns()
        step = end - start
        if best is None or step < best:
            best = step
    return best


def describe_reference(packet: NtpPacket) -> str:
    """Human-readable reference identifier: a source code for stratum 0/1, an address otherwise."""
    if packet.stratum <= 1:
        return packet.kiss_code
    try:
        return ntplib.ref_id_to_text(packet.reference_id, packet.stratum)
    except ntplib.NTPException:
        return f"0x{packet.reference_id:08x}"


class SntpClient:
    """Single-shot SNTP query over UDP."""

    def __init__(
        self,
        clock: Callable[[], int] = time.time_ns,
        socket_factory: Callable[..., socket.socket] = socket.socket,
        precision_ns: Optional[int] = None,
    ):
        """
        Initialize the client.

        Args:
            clock: Local wall clock in Unix nanoseconds, read for T1 and T4
            socket_factory: Callable with the ``socket.socket`` signature
            precision_ns: Local clock precision used as the delay floor
                (measured on first use when omitted)
        """
        self._clock = clock
        self._socket_factory = socket_factory
        self._precision_ns = precision_ns

    @property
    def precision_ns(self) -> int:
        if self._precision_ns is None:
            self._precision_ns = measure_clock_precision_ns()
        return self._precision_ns

    @staticmethod
    def build_request(transmit: NtpTimestamp) -> bytes:
        """Build a version 4 client-mode request carrying *transmit* as its transmit timestamp."""
        return encode_ntp(NtpPacket(version=NTP_VERSION, mode=NTP_MODE_CLIENT, transmit_timestamp=transmit))

    def query(self, host: str, timeout: float = DEFAULT_TIMEOUT_S, port: int = NTP_PORT) -> SyncResult:
        """
        Perform one SNTP exchange with *host*.

        Args:
            host: Server host name or IPv4 address
            timeout: Seconds to wait for the reply
            port: Server UDP port

        Returns:
            SyncResult with offset, delay and dispersion populated.

        Raises:
            NetworkTimeoutError: No reply within *timeout*.
            NetworkError: Resolution or socket failure.
            MalformedReplyError: Reply shorter than a full header.
            ProtocolError: Reply failed validation.
        """
        with self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(timeout)
            try:
                sock.connect((host, port))
            except OSError as exc:
                raise NetworkError(f"Failed to connect to time server {host}: {exc}", host=host) from exc

            t1 = self._clock()
            transmit = absolute_to_ntp(t1)
            request = self.build_request(transmit)
            try:
                sock.send(request)
                data = sock.recv(_RECV_BUFFER_SIZE)
            except socket.timeout as exc:
                raise NetworkTimeoutError(f"No reply from {host} within {timeout}s", host=host) from exc
            except OSError as exc:
                raise NetworkError(f"NTP exchange with {host} failed: {exc}", host=host) from exc
            t4 = self._clock()

        logger.debug("TX %d bytes to %s:%d  RX %d bytes", len(request), host, port, len(data))
        packet = self.validate_reply(data, transmit)
        return self.compute_result(host, packet, t1, t4)

    @staticmethod
    def validate_reply(data: bytes, transmit: NtpTimestamp) -> NtpPacket:
        """Decode *data* and check it answers the request that carried *transmit*."""
        if len(data) < NTP_PACKET_SIZE:
            raise MalformedReplyError(f"NTP reply has {len(data)} bytes, expected at least {NTP_PACKET_SIZE}")
        packet = decode_ntp(data[:NTP_PACKET_SIZE])

        if packet.stratum == 0:
            raise KissOfDeathError(packet.kiss_code)
        if packet.mode != NTP_MODE_SERVER:
            raise UnexpectedModeError(packet.mode, ntplib.mode_to_text(packet.mode))
        if packet.originate_timestamp != transmit:
            raise OriginateMismatchError(transmit, packet.originate_timestamp)
        if packet.transmit_timestamp.is_zero():
            raise ProtocolError("NTP reply has a zero transmit timestamp")
        if packet.leap == NTP_LEAP_ALARM:
            raise ProtocolError(f"Server clock is not synchronized ({ntplib.leap_to_text(packet.leap)})")
        return packet

    def compute_result(self, host: str, packet: NtpPacket, t1: int, t4: int) -> SyncResult:
        """Combine local T1/T4 with the reply's T2/T3 into a SyncResult."""
        t2 = ntp_to_absolute(packet.receive_timestamp, pivot_ns=t1)
        t3 = ntp_to_absolute(packet.transmit_timestamp, pivot_ns=t4)

        offset = ((t2 - t1) + (t3 - t4)) // 2
        delay = max((t4 - t1) - (t3 - t2), self.precision_ns)
        dispersion = packet.root_dispersion_ns + delay // 2

        logger.debug(
            "stratum=%d leap=%d precision=%d offset=%dns delay=%dns",
            packet.stratum,
            packet.leap,
            packet.precision,
            offset,
            delay,
        )
        return SyncResult(
            server=host,
            source="sntp",
            server_time_ns=t4 + offset,
            local_time_ns=t4,
            offset_ns=offset,
            delay_ns=delay,
            dispersion_ns=dispersion,
            stratum=packet.stratum,
            leap=packet.leap,
            precision=packet.precision,
            poll=packet.poll,
            reference=describe_reference(packet),
        )
