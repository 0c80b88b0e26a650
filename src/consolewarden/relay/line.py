"""Relay wire format — one hex tag character followed by the payload."""

from __future__ import annotations

import string
from dataclasses import dataclass

# Gray, the colour of plain server log output
DEFAULT_TAG = 0x7


@dataclass(frozen=True)
class RelayLine:
    """A single line received from the server process."""

    tag: int
    payload: str


def decode_line(text: str) -> RelayLine:
    """Split *text* into its tag and payload.

    The first character is read as a hexadecimal digit. Anything else
    (including an empty line) yields DEFAULT_TAG; the payload is always
    everything after the first character.
    """
    head = text[:1]
    # str.isdigit / int(..., 16) accept non-ASCII digits, the wire format does not
    if head and head in string.hexdigits:
        tag = int(head, 16)
    else:
        tag = DEFAULT_TAG
    return RelayLine(tag=tag, payload=text[1:])
