"""Host platform detection and the process exit codes used per platform."""

from __future__ import annotations

import enum
import sys

from consolewarden.errors import UnsupportedPlatform


class Platform(enum.Enum):
    """Platforms with a known server executable."""

    WINDOWS = "windows"
    LINUX = "linux"


class ExitReason(enum.Enum):
    """Why the supervisor is exiting."""

    OPERATOR_EXIT = "operator_exit"
    SERVER_EXITED = "server_exited"
    INVALID_PORT = "invalid_port"
    FILE_NOT_FOUND = "file_not_found"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    FAULT = "fault"


# Windows system error codes
_WINDOWS_CODES = {
    ExitReason.INVALID_PORT: 87,  # ERROR_INVALID_PARAMETER
    ExitReason.FILE_NOT_FOUND: 2,  # ERROR_FILE_NOT_FOUND
}

# errno values
_UNIX_CODES = {
    ExitReason.INVALID_PORT: 22,  # EINVAL
    ExitReason.FILE_NOT_FOUND: 2,  # ENOENT
}

_COMMON_CODES = {
    ExitReason.OPERATOR_EXIT: 0,
    ExitReason.SERVER_EXITED: 1,
    ExitReason.UNSUPPORTED_PLATFORM: 1,
    ExitReason.FAULT: 1,
}


def detect_platform(name: str | None = None) -> Platform:
    """Map ``sys.platform`` (or *name*) to a supported Platform."""
    name = name or sys.platform
    if name == "win32":
        return Platform.WINDOWS
    if name.startswith("linux"):
        return Platform.LINUX
    raise UnsupportedPlatform(f"Unsupported platform: {name}")


def exit_code(reason: ExitReason, platform: Platform | None = None) -> int:
    """Return the process exit code for *reason* on *platform*.

    Platform-specific codes fall back to 1 when the platform is unknown.
    """
    if reason in _COMMON_CODES:
        return _COMMON_CODES[reason]
    if platform is Platform.WINDOWS:
        return _WINDOWS_CODES[reason]
    if platform is Platform.LINUX:
        return _UNIX_CODES[reason]
    return 1
