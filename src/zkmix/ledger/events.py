"""Deposit event decoding from program log lines."""

import base64
import binascii
import logging
import struct
from dataclasses import dataclass
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

LOG_PREFIX = "Program data: "

# First 8 bytes of every emitted DepositEvent payload.
DEPOSIT_EVENT_DISCRIMINATOR = bytes([120, 248, 61, 83, 31, 142, 107, 144])

# commitment (32) | leaf_index (u32 LE) | depositor (32)
_EVENT_LAYOUT = struct.Struct("<32sI32s")


@dataclass(frozen=True)
class DepositEvent:
    """A deposit as recorded on-chain."""

    commitment: bytes
    leaf_index: int
    depositor: bytes

    def encode(self) -> bytes:
        """Payload bytes (discriminator included) as the program emits them."""
        return DEPOSIT_EVENT_DISCRIMINATOR + _EVENT_LAYOUT.pack(
            self.commitment, self.leaf_index, self.depositor
        )

    def to_log_line(self) -> str:
        return LOG_PREFIX + base64.b64encode(self.encode()).decode("ascii")


def decode_deposit_log(line: str) -> Optional[DepositEvent]:
    """
    Decode one log line.

    Returns None for lines that are not deposit events: a different prefix,
    invalid base64, a foreign discriminator, or a short payload. Other
    programs share the log stream, so none of these are errors.
    """
    if not line.startswith(LOG_PREFIX):
        return None

    try:
        payload = base64.b64decode(line[len(LOG_PREFIX):], validate=True)
    except (binascii.Error, ValueError):
        logger.debug("Skipping log line with invalid base64 payload")
        return None

    if len(payload) < 8 or payload[:8] != DEPOSIT_EVENT_DISCRIMINATOR:
        return None

    body = payload[8:]
    if len(body) < _EVENT_LAYOUT.size:
        logger.debug(f"Skipping truncated deposit event ({len(body)} bytes)")
        return None

    commitment, leaf_index, depositor = _EVENT_LAYOUT.unpack_from(body)
    return DepositEvent(commitment=commitment, leaf_index=leaf_index, depositor=depositor)


def decode_deposit_logs(lines: Iterable[str]) -> List[DepositEvent]:
    """Decode every deposit event found in ``lines``."""
    events = []
    for line in lines:
        event = decode_deposit_log(line)
        if event is not None:
            events.append(event)
    return events
