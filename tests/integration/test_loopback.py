"""End-to-end queries against throwaway SNTP / RFC 868 servers on 127.0.0.1."""

import socket
import threading
import time

import pytest

from netclock.exceptions import KissOfDeathError, NetworkTimeoutError
from netclock.time.rfc868_client import Transport
from netclock.time.timestamp_codec import encode_rfc868
from netclock.time.time_sources import TimeProtocol, TimeSource
from tests.utils import make_ntp_reply

SERVER_AHEAD_NS = 2_000_000_000


def _serve_udp(sock, build_reply):
    try:
        request, address = sock.recvfrom(1024)
        reply = build_reply(request)
        if reply is not None:
            sock.sendto(reply, address)
    except OSError:
        pass


@pytest.fixture
def udp_server():
    """Start a one-shot UDP server; yields a function taking a reply builder and returning the port."""
    sockets = []
    threads = []

    def start(build_reply):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("127.0.0.1", 0))
        sock.settimeout(5.0)
        thread = threading.Thread(target=_serve_udp, args=(sock, build_reply), daemon=True)
        thread.start()
        sockets.append(sock)
        threads.append(thread)
        return sock.getsockname()[1]

    yield start

    for sock in sockets:
        sock.close()
    for thread in threads:
        thread.join(timeout=5.0)


def _sntp_reply(request, **overrides):
    now = time.time_ns() + SERVER_AHEAD_NS
    return make_ntp_reply(request, now, now, **overrides)


def test_sntp_round_trip(udp_server):
    port = udp_server(_sntp_reply)
    result = TimeSource(TimeProtocol.SNTP).query("127.0.0.1", timeout=2.0, port=port)

    assert result.offset_s == pytest.approx(SERVER_AHEAD_NS / 1e9, abs=0.1)
    assert 0 < result.delay_ns < 1_000_000_000
    assert result.stratum == 2


def test_sntp_kiss_of_death(udp_server):
    port = udp_server(lambda request: _sntp_reply(request, stratum=0, reference_id=int.from_bytes(b"RATE", "big")))
    with pytest.raises(KissOfDeathError) as exc_info:
        TimeSource(TimeProtocol.SNTP).query("127.0.0.1", timeout=2.0, port=port)
    assert exc_info.value.code == "RATE"


def test_sntp_timeout(udp_server):
    port = udp_server(lambda request: None)
    started = time.monotonic()
    with pytest.raises(NetworkTimeoutError):
        TimeSource(TimeProtocol.SNTP).query("127.0.0.1", timeout=0.3, port=port)
    assert time.monotonic() - started < 3.0


def test_rfc868_udp(udp_server):
    port = udp_server(lambda request: encode_rfc868(time.time_ns() + 10 * 1_000_000_000))
    result = TimeSource(TimeProtocol.RFC868, Transport.UDP).query("127.0.0.1", timeout=2.0, port=port)
    assert result.clock_delta_ns / 1e9 == pytest.approx(10, abs=1.5)


def test_rfc868_tcp():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5.0)
    port = listener.getsockname()[1]

    def serve():
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            conn.sendall(encode_rfc868(time.time_ns() - 30 * 1_000_000_000))

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        result = TimeSource(TimeProtocol.RFC868).query("127.0.0.1", timeout=2.0, port=port)
    finally:
        thread.join(timeout=5.0)
        listener.close()

    assert result.source == "rfc868"
    assert result.offset_ns is None
    assert result.clock_delta_ns / 1e9 == pytest.approx(-30, abs=1.5)
