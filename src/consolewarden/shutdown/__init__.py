"""Single-shot shutdown coordination and platform exit hooks."""

from consolewarden.shutdown.coordinator import ExitCoordinator, ExitState, get_coordinator
from consolewarden.shutdown.handlers import default_handlers, install_exit_handlers

__all__ = [
    "ExitCoordinator",
    "ExitState",
    "default_handlers",
    "get_coordinator",
    "install_exit_handlers",
]
