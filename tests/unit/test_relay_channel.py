"""Tests for the loopback relay channel, using real sockets."""

from __future__ import annotations

import socket
import threading
from collections.abc import Callable, Iterator

import pytest

from consolewarden.errors import RelayError, RelayNotConnected
from consolewarden.relay.channel import RelayChannel
from consolewarden.relay.line import DEFAULT_TAG, RelayLine


@pytest.fixture
def received() -> list[RelayLine]:
    return []


@pytest.fixture
def channel(received: list[RelayLine]) -> Iterator[RelayChannel]:
    ch = RelayChannel(on_receive=received.append)
    yield ch
    ch.stop()


def _connect(port: int) -> socket.socket:
    sock = socket.create_connection(("127.0.0.1", port), timeout=5)
    return sock


def test_port_is_zero_before_start(channel: RelayChannel):
    assert channel.port == 0
    assert not channel.connected


def test_start_assigns_stable_port(channel: RelayChannel):
    channel.start()
    port = channel.wait_until_bound(interval=0.01, timeout=5)
    assert port != 0
    assert channel.port == port
    assert channel.port == port


def test_start_twice_raises(channel: RelayChannel):
    channel.start()
    with pytest.raises(RelayError):
        channel.start()


def test_receives_tagged_lines(
    channel: RelayChannel, received: list[RelayLine], wait_for: Callable[..., bool]
):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as peer:
        assert wait_for(lambda: channel.connected)
        peer.sendall(b"7Server started\nCWarn\r\nzno tag\n")
        assert wait_for(lambda: len(received) == 3)

    assert received[0] == RelayLine(0x7, "Server started")
    assert received[1] == RelayLine(0xC, "Warn")
    assert received[2] == RelayLine(DEFAULT_TAG, "no tag")


def test_partial_line_waits_for_newline(
    channel: RelayChannel, received: list[RelayLine], wait_for: Callable[..., bool]
):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as peer:
        peer.sendall(b"2hal")
        assert wait_for(lambda: channel.connected)
        assert received == []
        peer.sendall(b"f done\n")
        assert wait_for(lambda: len(received) == 1)

    assert received[0] == RelayLine(0x2, "half done")


def test_send_writes_line_to_peer(channel: RelayChannel, wait_for: Callable[..., bool]):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as peer:
        assert wait_for(lambda: channel.connected)
        channel.send("say hello")
        reader = peer.makefile("rb")
        assert reader.readline() == b"say hello\n"
        reader.close()


def test_send_without_peer_raises_not_connected(channel: RelayChannel):
    with pytest.raises(RelayNotConnected):
        channel.send("nobody home")

    channel.start()
    channel.wait_until_bound(interval=0.01)
    with pytest.raises(RelayNotConnected):
        channel.send("still nobody")


def test_second_peer_is_rejected(
    channel: RelayChannel, received: list[RelayLine], wait_for: Callable[..., bool]
):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as first, _connect(port) as second:
        assert wait_for(lambda: channel.connected)
        # The extra connection is closed by the channel: reads hit EOF
        assert second.recv(1) == b""
        first.sendall(b"1from first\n")
        assert wait_for(lambda: len(received) == 1)

    assert received == [RelayLine(0x1, "from first")]


def test_peer_disconnect_clears_connected(
    channel: RelayChannel, wait_for: Callable[..., bool]
):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    peer = _connect(port)
    assert wait_for(lambda: channel.connected)
    peer.close()
    assert wait_for(lambda: not channel.connected)


def test_handler_error_does_not_end_receive_loop(wait_for: Callable[..., bool]):
    seen: list[RelayLine] = []

    def handler(line: RelayLine) -> None:
        if line.payload == "boom":
            raise RuntimeError("handler failure")
        seen.append(line)

    channel = RelayChannel(on_receive=handler)
    channel.start()
    try:
        port = channel.wait_until_bound(interval=0.01)
        with _connect(port) as peer:
            peer.sendall(b"7boom\n7after\n")
            assert wait_for(lambda: len(seen) == 1)
        assert seen[0].payload == "after"
    finally:
        channel.stop()


def test_stop_is_idempotent_and_safe_before_start():
    channel = RelayChannel()
    channel.stop()
    channel.stop()
    with pytest.raises(RelayError):
        channel.start()


def test_stop_closes_listener_and_peer(channel: RelayChannel, wait_for: Callable[..., bool]):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as peer:
        assert wait_for(lambda: channel.connected)
        channel.stop()
        assert not channel.connected
        peer.settimeout(5)
        assert peer.recv(1) == b""

    with pytest.raises(OSError):
        _connect(port).close()
    channel.stop()


def test_wait_until_bound_fails_after_stop():
    channel = RelayChannel()
    channel.stop()
    with pytest.raises(RelayError):
        channel.wait_until_bound(interval=0.01, timeout=1)


def test_wait_until_bound_reports_bind_failure():
    channel = RelayChannel(host="203.0.113.1")  # TEST-NET-3, never local
    channel.start()
    with pytest.raises(RelayError):
        channel.wait_until_bound(interval=0.01, timeout=5)


def test_concurrent_sends_do_not_interleave(
    channel: RelayChannel, wait_for: Callable[..., bool]
):
    channel.start()
    port = channel.wait_until_bound(interval=0.01)

    with _connect(port) as peer:
        assert wait_for(lambda: channel.connected)

        def sender(n: int) -> None:
            for i in range(25):
                channel.send(f"{n}-{i}-" + "x" * 100)

        threads = [threading.Thread(target=sender, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        reader = peer.makefile("rb")
        lines = [reader.readline() for _ in range(100)]
        reader.close()

    assert all(line.endswith(b"x" * 100 + b"\n") for line in lines)
