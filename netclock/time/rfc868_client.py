"""RFC 868 Time Protocol client.

The server answers with 4 bytes: seconds since 1900-01-01, big-endian. Over TCP
the server writes the value and closes the connection; over UDP the client
sends an empty datagram and the server replies with one datagram.

The reply carries no round-trip information and no request echo, so the result
has no offset/delay and cannot be checked against spoofing.
"""

from __future__ import annotations

import logging
import socket
import time
from enum import Enum
from typing import Callable

from netclock.constants import DEFAULT_TIMEOUT_S, RFC868_PACKET_SIZE, TIME_PORT
from netclock.exceptions import MalformedReplyError, NetworkError, NetworkTimeoutError
from netclock.time.sync_result import SyncResult
from netclock.time.timestamp_codec import decode_rfc868

logger = logging.getLogger(__name__)


class Transport(str, Enum):
    """Socket transport for RFC 868 queries."""

    TCP = "tcp"
    UDP = "udp"


class Rfc868Client:
    """Single-shot RFC 868 query over TCP or UDP."""

    def __init__(
        self,
        clock: Callable[[], int] = time.time_ns,
        socket_factory: Callable[..., socket.socket] = socket.socket,
    ):
        self._clock = clock
        self._socket_factory = socket_factory

    def query(
        self,
        host: str,
        timeout: float = DEFAULT_TIMEOUT_S,
        port: int = TIME_PORT,
        transport: Transport = Transport.TCP,
    ) -> SyncResult:
        """
        Fetch the server time from *host*.

        Raises:
            NetworkTimeoutError: No (complete) reply within *timeout*.
            NetworkError: Connection or socket failure.
            MalformedReplyError: Short reply, or zero seconds over UDP.
        """
        sock_type = socket.SOCK_STREAM if transport is Transport.TCP else socket.SOCK_DGRAM
        with self._socket_factory(socket.AF_INET, sock_type) as sock:
            sock.settimeout(timeout)
            try:
                sock.connect((host, port))
            except socket.timeout as exc:
                raise NetworkTimeoutError(f"Timed out connecting to time server {host}", host=host) from exc
            except OSError as exc:
                raise NetworkError(f"Failed to connect to time server {host}: {exc}", host=host) from exc

            try:
                if transport is Transport.TCP:
                    data = self._read_stream(sock)
                else:
                    data = self._read_datagram(sock)
            except socket.timeout as exc:
                raise NetworkTimeoutError(f"No reply from {host} within {timeout}s", host=host) from exc
            except OSError as exc:
                raise NetworkError(f"Failed to receive reply from {host}: {exc}", host=host) from exc
            local_time = self._clock()

        logger.debug("RX %d bytes from %s:%d over %s", len(data), host, port, transport.value)
        if len(data) != RFC868_PACKET_SIZE:
            raise MalformedReplyError(
                f"Server returned a bad response (expected length {RFC868_PACKET_SIZE}, got {len(data)})"
            )
        if transport is Transport.UDP and data == b"\x00" * RFC868_PACKET_SIZE:
            # Some servers answer 0 over UDP to signal an error
            raise MalformedReplyError("Server returned a zero timestamp")

        return SyncResult(
            server=host,
            source="rfc868",
            server_time_ns=decode_rfc868(data),
            local_time_ns=local_time,
        )

    @staticmethod
    def _read_stream(sock) -> bytes:
        """Read up to 4 bytes, stopping early if the server closes the connection."""
        data = b""
        while len(data) < RFC868_PACKET_SIZE:
            chunk = sock.recv(RFC868_PACKET_SIZE - len(data))
            if not chunk:
                break
            data += chunk
        return data

    @staticmethod
    def _read_datagram(sock) -> bytes:
        sock.send(b"")
        # One spare byte so oversized datagrams are detected rather than truncated silently
        return sock.recv(RFC868_PACKET_SIZE + 1)
