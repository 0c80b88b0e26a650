"""Session data models."""

from __future__ import annotations

import enum
import time
import uuid
from dataclasses import dataclass, field


class SessionState(enum.Enum):
    """Lifecycle state of a supervised session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    ENDING = "ending"


class SessionOutcome(enum.Enum):
    """Why the operator-input loop ended."""

    OPERATOR_EXIT = "operator_exit"
    SERVER_EXITED = "server_exited"


@dataclass
class Session:
    """One run of the server process with its dedicated relay channel."""

    client_port: int
    relay_port: int = 0
    pid: int | None = None
    state: SessionState = SessionState.IDLE
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
