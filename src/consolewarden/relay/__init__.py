"""Loopback line relay between the supervisor and its server process."""

from consolewarden.relay.channel import RelayChannel
from consolewarden.relay.line import DEFAULT_TAG, RelayLine, decode_line

__all__ = ["DEFAULT_TAG", "RelayChannel", "RelayLine", "decode_line"]
