"""Single-peer loopback TCP channel carrying newline-delimited relay lines."""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable

from consolewarden.errors import RelayError, RelayNotConnected
from consolewarden.relay.line import RelayLine, decode_line

logger = logging.getLogger(__name__)


class RelayChannel:
    """Listens on an OS-assigned loopback port and talks to exactly one peer.

    Threading model:
    - ``relay-accept`` thread: binds, publishes the port, accepts peers.
      Only the first peer is kept; later connections are closed at once.
    - ``relay-receive`` thread: reads lines from the peer and calls
      ``on_receive`` for each one.

    ``stop()`` shuts the sockets down underneath both threads, which is
    what ends them.
    """

    def __init__(
        self,
        on_receive: Callable[[RelayLine], None] | None = None,
        host: str = "127.0.0.1",
    ) -> None:
        self._on_receive = on_receive
        self._host = host
        self._listener: socket.socket | None = None
        self._peer: socket.socket | None = None
        self._accepted = False
        self._connected = False
        self._started = False
        self._stopped = False
        self._port = 0
        self._bind_error: OSError | None = None
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()

    @property
    def port(self) -> int:
        """Bound port, or 0 while the bind has not completed."""
        return self._port

    @property
    def connected(self) -> bool:
        """Whether a peer is connected and live."""
        return self._connected

    def start(self) -> None:
        """Begin binding and accepting in the background. Returns immediately."""
        with self._lock:
            if self._started:
                raise RelayError("Relay channel already started")
            if self._stopped:
                raise RelayError("Relay channel is stopped")
            self._started = True

        thread = threading.Thread(target=self._serve, name="relay-accept", daemon=True)
        thread.start()

    def wait_until_bound(self, interval: float = 0.2, timeout: float | None = 10.0) -> int:
        """Poll until the port is assigned and return it.

        Raises RelayError if the bind failed, the channel was stopped, or
        *timeout* seconds elapsed.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._port == 0:
            if self._bind_error is not None:
                raise RelayError(f"Relay channel failed to bind: {self._bind_error}")
            if self._stopped:
                raise RelayError("Relay channel stopped before binding")
            if deadline is not None and time.monotonic() >= deadline:
                raise RelayError(f"Relay channel did not bind within {timeout}s")
            time.sleep(interval)
        return self._port

    def send(self, text: str) -> None:
        """Write *text* plus a newline to the connected peer."""
        with self._lock:
            peer = self._peer if self._connected else None
        if peer is None:
            raise RelayNotConnected("Relay peer is not connected")

        data = (text + "\n").encode("utf-8")
        with self._send_lock:
            try:
                peer.sendall(data)
            except OSError as exc:
                raise RelayError(f"Failed to send to relay peer: {exc}") from exc

    def stop(self) -> None:
        """Close the listener and any peer. Safe to call at any time, repeatedly."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._connected = False
            listener, self._listener = self._listener, None
            peer, self._peer = self._peer, None

        for sock in (peer, listener):
            if sock is not None:
                _close_socket(sock)
        logger.debug("Relay channel stopped")

    def _serve(self) -> None:
        try:
            listener = socket.create_server((self._host, 0))
        except OSError as exc:
            logger.error("Relay channel failed to bind on %s: %s", self._host, exc)
            self._bind_error = exc
            return

        with self._lock:
            if self._stopped:
                listener.close()
                return
            self._listener = listener
            self._port = listener.getsockname()[1]
        logger.info("Relay channel listening on %s:%d", self._host, self._port)

        while True:
            try:
                conn, addr = listener.accept()
            except OSError:
                break

            with self._lock:
                keep = not self._accepted and not self._stopped
                if keep:
                    self._accepted = True
                    self._peer = conn
                    self._connected = True

            if not keep:
                logger.warning(
                    "Rejecting extra relay connection from %s:%d", addr[0], addr[1]
                )
                _close_socket(conn)
                continue

            logger.info("Relay peer connected from %s:%d", addr[0], addr[1])
            receiver = threading.Thread(
                target=self._receive_loop,
                args=(conn,),
                name="relay-receive",
                daemon=True,
            )
            receiver.start()

    def _receive_loop(self, conn: socket.socket) -> None:
        reader = conn.makefile("rb")
        try:
            for raw in reader:
                text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                self._dispatch(decode_line(text))
        except OSError as exc:
            logger.debug("Relay receive ended: %s", exc)
        finally:
            reader.close()
            with self._lock:
                self._connected = False
                if self._peer is conn:
                    self._peer = None
            _close_socket(conn)
            logger.info("Relay peer disconnected")

    def _dispatch(self, line: RelayLine) -> None:
        if self._on_receive is None:
            return
        try:
            self._on_receive(line)
        except Exception:
            logger.exception("Relay line handler failed")


def _close_socket(sock: socket.socket) -> None:
    # shutdown() wakes threads blocked in accept()/recv() on Linux, close() alone does not
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    sock.close()
