"""Exception hierarchy for netclock.

Every error carries the process exit code the CLI maps it to, so scripting
callers can tell network, protocol and permission failures apart.
"""

from typing import Optional

from netclock.constants import (
    EXIT_CLOCK_ERROR,
    EXIT_NETWORK_ERROR,
    EXIT_PERMISSION_ERROR,
    EXIT_PROTOCOL_ERROR,
)


class NetClockError(Exception):
    """Base class for all netclock errors."""

    exit_code = 1


class NetworkError(NetClockError):
    """Host unreachable, connection refused, or name resolution failed."""

    exit_code = EXIT_NETWORK_ERROR

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host


class NetworkTimeoutError(NetworkError):
    """No reply arrived within the configured timeout."""


class MalformedReplyError(NetClockError):
    """Reply has the wrong length or cannot be decoded."""

    exit_code = EXIT_PROTOCOL_ERROR


class ProtocolError(NetClockError):
    """Reply decoded but failed protocol validation."""

    exit_code = EXIT_PROTOCOL_ERROR


class KissOfDeathError(ProtocolError):
    """Server answered with stratum 0 and a kiss code (e.g. ``RATE``, ``DENY``)."""

    def __init__(self, code: str):
        super().__init__(f"Server sent kiss-of-death reply (code {code!r})")
        self.code = code


class OriginateMismatchError(ProtocolError):
    """Reply's originate timestamp does not echo the request's transmit timestamp."""

    def __init__(self, expected, received):
        super().__init__(
            f"Reply originate timestamp {received.seconds}.{received.fraction:08x} does not match "
            f"request transmit timestamp {expected.seconds}.{expected.fraction:08x}"
        )
        self.expected = expected
        self.received = received


class UnexpectedModeError(ProtocolError):
    """Reply carries a mode other than server."""

    def __init__(self, mode: int, description: str):
        super().__init__(f"Unexpected NTP mode {mode} ({description}) in reply")
        self.mode = mode


class ClockAdjustmentError(NetClockError):
    """The operating system refused or does not support the clock change."""

    exit_code = EXIT_CLOCK_ERROR


class ClockPermissionError(ClockAdjustmentError):
    """Caller lacks the privilege to change the system clock."""

    exit_code = EXIT_PERMISSION_ERROR

    def __init__(self, operation: str):
        super().__init__(
            f"Permission denied while calling {operation}: setting the system clock requires "
            "root or the CAP_SYS_TIME capability (use -p to only print the time)"
        )
        self.operation = operation
