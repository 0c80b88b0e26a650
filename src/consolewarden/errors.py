"""Domain exceptions shared across the supervisor."""

from __future__ import annotations

from pathlib import Path


class WardenError(Exception):
    """Base class for all supervisor errors."""


class ConfigError(WardenError):
    """Configuration file or environment value could not be used."""


class InvalidPort(WardenError):
    """A port argument is not an unsigned 16-bit integer."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid port: {value!r}")
        self.value = value


class UnsupportedPlatform(WardenError):
    """The host OS has no known server executable."""


class ExecutableNotFound(WardenError):
    """The server executable does not exist at the configured path."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"Executable file not found: {path}")
        self.path = Path(path)


class ProcessAlreadyRunning(WardenError):
    """A launch was attempted while the previous child is still alive."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"Server process {pid} is still running")
        self.pid = pid


class RelayError(WardenError):
    """The relay channel failed to bind, send, or was used after stop."""


class RelayNotConnected(RelayError):
    """No peer is connected to the relay channel."""


class HandlerUnavailable(WardenError):
    """A native termination-notification facility is missing on this runtime."""


class ShuttingDown(WardenError):
    """A session was requested after the supervisor started exiting."""

    def __init__(self) -> None:
        super().__init__("The supervisor is shutting down")
