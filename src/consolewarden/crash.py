"""Crash dumps for unexpected faults in the startup path."""

from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def crash_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{now:%Y-%m-%dT%H-%M-%SZ}-crash.txt"


def write_crash_dump(exc: BaseException, directory: Path, now: datetime | None = None) -> Path:
    """Write the formatted traceback of *exc* to a timestamped file in *directory*."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / crash_filename(now)
    text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    path.write_text(text, encoding="utf-8")
    logger.critical("Crash dump written to %s", path)
    return path
