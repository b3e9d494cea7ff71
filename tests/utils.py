from netclock.clock.system_clock import AbstractSystemClock
from netclock.time.timestamp_codec import NtpPacket, absolute_to_ntp, decode_ntp, encode_ntp

# 2023-11-14T22:13:20Z
BASE_NS = 1_700_000_000 * 1_000_000_000
MS = 1_000_000


class FakeSocket:
    """Stands in for a connected socket; replies are queued or computed from each send."""

    def __init__(self, chunks=None, responder=None, connect_error=None, recv_error=None):
        self.chunks = list(chunks or [])
        self.responder = responder
        self.connect_error = connect_error
        self.recv_error = recv_error
        self.sent = []
        self.timeout = None
        self.address = None
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False

    def settimeout(self, timeout):
        self.timeout = timeout

    def connect(self, address):
        if self.connect_error is not None:
            raise self.connect_error
        self.address = address

    def send(self, data):
        self.sent.append(bytes(data))
        if self.responder is not None:
            self.chunks.append(self.responder(bytes(data)))
        return len(data)

    def recv(self, bufsize):
        if self.recv_error is not None:
            raise self.recv_error
        if not self.chunks:
            return b""
        return self.chunks.pop(0)[:bufsize]

    def close(self):
        self.closed = True


class FakeSocketFactory:
    def __init__(self, sock):
        self.sock = sock
        self.calls = []

    def __call__(self, family, sock_type):
        self.calls.append((family, sock_type))
        return self.sock


class FakeClock(AbstractSystemClock):
    """Records clock mutations instead of performing them."""

    def __init__(self, now_ns=BASE_NS, error=None):
        self._now_ns = now_ns
        self.error = error
        self.set_calls = []
        self.slew_calls = []

    def now_ns(self):
        return self._now_ns

    def set_absolute(self, target_ns):
        if self.error is not None:
            raise self.error
        self.set_calls.append(target_ns)

    def slew_toward(self, delta_ns):
        if self.error is not None:
            raise self.error
        self.slew_calls.append(delta_ns)


def sequence_clock(*readings):
    """Clock callable returning *readings* in order."""
    return iter(readings).__next__


def make_ntp_reply(request: bytes, receive_ns: int, transmit_ns: int, **overrides) -> bytes:
    """Build a well-formed server reply to *request*; keyword arguments replace packet fields."""
    fields = dict(
        leap=0,
        version=4,
        mode=4,
        stratum=2,
        poll=6,
        precision=-20,
        root_delay=0x00000800,
        root_dispersion=0x00000400,
        reference_id=0xC0000201,  # 192.0.2.1
        reference_timestamp=absolute_to_ntp(receive_ns - 60 * 1_000_000_000),
        originate_timestamp=decode_ntp(request).transmit_timestamp,
        receive_timestamp=absolute_to_ntp(receive_ns),
        transmit_timestamp=absolute_to_ntp(transmit_ns),
    )
    fields.update(overrides)
    return encode_ntp(NtpPacket(**fields))
