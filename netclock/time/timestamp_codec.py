"""NTP and RFC 868 wire formats: packet layout and timestamp conversion.

This module contains **only** pure functions and value types, no I/O and no
state. All absolute times are integer nanoseconds since the Unix epoch
(``time.time_ns()`` scale), so every timestamp taken from the wire or from the
local clock is compared in the same representation.

NTP packet (RFC 5905 section 7.3), big-endian, 48 bytes::

   0                   1                   2                   3
   0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1
  +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
  |LI | VN  |Mode |    Stratum    |     Poll      |   Precision   |
  +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
  |                  Root Delay (16.16 seconds)                   |
  |                Root Dispersion (16.16 seconds)                |
  |                     Reference Identifier                      |
  |                 Reference Timestamp (64 bits)                 |
  |                 Originate Timestamp (64 bits)                 |
  |                  Receive Timestamp (64 bits)                  |
  |                  Transmit Timestamp (64 bits)                 |
  +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+

Timestamps are 32-bit seconds since 1900-01-01 plus a 32-bit binary fraction.
The seconds field wraps every 2**32 seconds (the first wrap is in February
2036); :func:`ntp_to_absolute` picks the era closest to a pivot time.

RFC 868 replies are a single 32-bit big-endian count of seconds since
1900-01-01 with no fraction. They wrap in 2036 as well and carry no era
information, so no disambiguation is attempted.
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from typing import NamedTuple, Optional

from netclock.constants import (
    NANOSECONDS,
    NTP_ERA_SECONDS,
    NTP_PACKET_SIZE,
    NTP_UNIX_DELTA,
    RFC868_PACKET_SIZE,
)
from netclock.exceptions import MalformedReplyError

# LI/VN/Mode byte, stratum, poll, precision, root delay, root dispersion,
# reference id, then four (seconds, fraction) timestamp pairs.
_NTP_STRUCT = struct.Struct("!BBbbIII8I")
_RFC868_STRUCT = struct.Struct("!I")

# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


class NtpTimestamp(NamedTuple):
    """64-bit NTP timestamp kept as its two raw wire words."""

    seconds: int
    fraction: int

    def is_zero(self) -> bool:
        return self.seconds == 0 and self.fraction == 0


ZERO_TIMESTAMP = NtpTimestamp(0, 0)


@dataclass(frozen=True)
class NtpPacket:
    """Decoded NTP header. Raw integer fields are kept exactly as on the wire."""

    leap: int = 0
    version: int = 0
    mode: int = 0
    stratum: int = 0
    poll: int = 0
    precision: int = 0
    root_delay: int = 0
    root_dispersion: int = 0
    reference_id: int = 0
    reference_timestamp: NtpTimestamp = ZERO_TIMESTAMP
    originate_timestamp: NtpTimestamp = ZERO_TIMESTAMP
    receive_timestamp: NtpTimestamp = ZERO_TIMESTAMP
    transmit_timestamp: NtpTimestamp = ZERO_TIMESTAMP

    @property
    def root_delay_ns(self) -> int:
        return short_to_ns(self.root_delay)

    @property
    def root_dispersion_ns(self) -> int:
        return short_to_ns(self.root_dispersion)

    @property
    def kiss_code(self) -> str:
        """Reference identifier read as the four ASCII characters of a kiss code."""
        return reference_id_to_ascii(self.reference_id)


# ---------------------------------------------------------------------------
# NTP packets
# ---------------------------------------------------------------------------


def encode_ntp(packet: NtpPacket) -> bytes:
    """Serialize *packet* to its 48-byte wire form."""
    if not 0 <= packet.leap <= 3:
        raise ValueError(f"leap indicator out of range: {packet.leap}")
    if not 0 <= packet.version <= 7:
        raise ValueError(f"version out of range: {packet.version}")
    if not 0 <= packet.mode <= 7:
        raise ValueError(f"mode out of range: {packet.mode}")

    li_vn_mode = packet.leap << 6 | packet.version << 3 | packet.mode
    return _NTP_STRUCT.pack(
        li_vn_mode,
        packet.stratum,
        packet.poll,
        packet.precision,
        packet.root_delay,
        packet.root_dispersion,
        packet.reference_id,
        *packet.reference_timestamp,
        *packet.originate_timestamp,
        *packet.receive_timestamp,
        *packet.transmit_timestamp,
    )


def decode_ntp(data: bytes) -> NtpPacket:
    """Parse a 48-byte NTP packet.

    Raises:
        MalformedReplyError: if *data* is not exactly 48 bytes long.
    """
    if len(data) != NTP_PACKET_SIZE:
        raise MalformedReplyError(f"NTP reply has {len(data)} bytes, expected {NTP_PACKET_SIZE}")

    (
        li_vn_mode,
        stratum,
        poll,
        precision,
        root_delay,
        root_dispersion,
        reference_id,
        ref_s,
        ref_f,
        orig_s,
        orig_f,
        recv_s,
        recv_f,
        xmt_s,
        xmt_f,
    ) = _NTP_STRUCT.unpack(data)

    return NtpPacket(
        leap=(li_vn_mode >> 6) & 0b11,
        version=(li_vn_mode >> 3) & 0b111,
        mode=li_vn_mode & 0b111,
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=root_delay,
        root_dispersion=root_dispersion,
        reference_id=reference_id,
        reference_timestamp=NtpTimestamp(ref_s, ref_f),
        originate_timestamp=NtpTimestamp(orig_s, orig_f),
        receive_timestamp=NtpTimestamp(recv_s, recv_f),
        transmit_timestamp=NtpTimestamp(xmt_s, xmt_f),
    )


def reference_id_to_ascii(reference_id: int) -> str:
    raw = reference_id.to_bytes(4, "big").rstrip(b"\x00")
    return raw.decode("ascii", errors="replace")


# ---------------------------------------------------------------------------
# Timestamp conversion
# ---------------------------------------------------------------------------


def absolute_to_ntp(ns: int) -> NtpTimestamp:
    """Convert Unix nanoseconds to an NTP timestamp.

    The conversion is exact in the other direction: for any ``ns``,
    ``ntp_to_absolute(absolute_to_ntp(ns), pivot_ns=ns) == ns``.
    """
    seconds, remainder = divmod(ns, NANOSECONDS)
    fraction = (remainder << 32) // NANOSECONDS
    return NtpTimestamp((seconds + NTP_UNIX_DELTA) % NTP_ERA_SECONDS, fraction)


def ntp_to_absolute(ts: NtpTimestamp, pivot_ns: Optional[int] = None) -> int:
    """Convert an NTP timestamp to Unix nanoseconds.

    Args:
        ts: Raw NTP timestamp.
        pivot_ns: Time used to pick the NTP era; the era placing the result
            closest to the pivot wins. Defaults to the current wall clock.

    Returns:
        Nanoseconds since the Unix epoch, rounded to the nearest nanosecond.
    """
    if pivot_ns is None:
        pivot_ns = time.time_ns()

    era_zero = ts.seconds - NTP_UNIX_DELTA
    pivot_s = pivot_ns // NANOSECONDS
    era = (pivot_s - era_zero + NTP_ERA_SECONDS // 2) // NTP_ERA_SECONDS
    seconds = era_zero + era * NTP_ERA_SECONDS

    fraction_ns = (ts.fraction * NANOSECONDS + (1 << 31)) >> 32
    return seconds * NANOSECONDS + fraction_ns


def short_to_ns(value: int) -> int:
    """Convert an unsigned 16.16 NTP short value (root delay/dispersion) to nanoseconds."""
    return (value * NANOSECONDS) >> 16


# ---------------------------------------------------------------------------
# RFC 868
# ---------------------------------------------------------------------------


def decode_rfc868(data: bytes) -> int:
    """Decode a 4-byte RFC 868 reply to Unix nanoseconds.

    No era disambiguation is applied: the protocol wraps in 2036.

    Raises:
        MalformedReplyError: if *data* is not exactly 4 bytes long.
    """
    if len(data) != RFC868_PACKET_SIZE:
        raise MalformedReplyError(f"RFC 868 reply has {len(data)} bytes, expected {RFC868_PACKET_SIZE}")
    (seconds,) = _RFC868_STRUCT.unpack(data)
    return (seconds - NTP_UNIX_DELTA) * NANOSECONDS


def encode_rfc868(ns: int) -> bytes:
    """Encode Unix nanoseconds as an RFC 868 reply (whole seconds, era wrapped)."""
    return _RFC868_STRUCT.pack((ns // NANOSECONDS + NTP_UNIX_DELTA) % NTP_ERA_SECONDS)
