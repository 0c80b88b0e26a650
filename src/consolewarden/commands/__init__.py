"""Local operator commands, handled by the supervisor and never forwarded."""

from consolewarden.commands.base import Command
from consolewarden.commands.service import CommandService

__all__ = ["Command", "CommandService"]
