"""Per-direction frame extraction from accumulated capture bytes.

This module turns one direction's buffer into complete decoded packets plus
the bytes to carry over to the next chunk. Extraction is a pure function of
the buffer: the caller owns the state and replaces it with the returned
remainder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from duml_trace.const import SYNC_BYTE
from duml_trace.exceptions import DATA_PREVIEW_LENGTH
from duml_trace.protocol.duml_protocol import DumlProtocol
from duml_trace.protocol.packet_types import DecodedPacket, DecodeFailure, PacketCodec

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    """Transfer direction as seen from the capturing host."""

    RX = "RX"
    TX = "TX"


@dataclass(frozen=True)
class DirectionBuffer:
    """Accumulated, not yet decoded bytes of one direction.

    Invariant: a non-empty buffer starts with the sync byte. The reassembler
    trims incoming data before the first append and ``extract_frames`` drops
    remainders that do not start with it.
    """

    direction: Direction
    data: bytes = b""

    def __len__(self) -> int:
        return len(self.data)

    @property
    def empty(self) -> bool:
        return not self.data

    def append(self, chunk: bytes) -> DirectionBuffer:
        return DirectionBuffer(self.direction, self.data + chunk)


@dataclass(frozen=True)
class ExtractionResult:
    """Packets decoded in one extraction call and the buffer to keep."""

    packets: list[DecodedPacket]
    remainder: DirectionBuffer
    failure: DecodeFailure | None = field(default=None)


def extract_frames(buffer: DirectionBuffer, codec: PacketCodec = DumlProtocol) -> ExtractionResult:
    r"""Extract complete frames from the start of ``buffer``.

    Algorithm:

    1. Decode the whole remaining buffer
    2. On a decode failure stop and keep the remaining bytes for the next chunk
    3. If the packet is invalid and declares fewer bytes than are available,
       re-decode only the declared bytes (the first decode over-read into the
       next frame)
    4. Accept the packet and advance past its declared length
    5. Repeat while the last accepted packet was valid

    An invalid frame ends the call; realignment happens through the sync-byte
    search on the next chunk. A remainder that does not start with the sync
    byte is noise and is dropped. A frame that does not advance the buffer
    (length 0 or less, only possible with a custom codec) ends the call and
    drops the buffer.

    Example:
        buffer = DirectionBuffer(Direction.RX, frame_a + frame_b)
        result = extract_frames(buffer)
        assert len(result.packets) == 2
        assert result.remainder.empty

    """
    packets: list[DecodedPacket] = []
    remaining = buffer.data
    failure: DecodeFailure | None = None

    while remaining:
        decoded = codec.try_decode(remaining)
        if isinstance(decoded, DecodeFailure):
            logger.debug(
                "%s: waiting for more data (%s, %d bytes buffered)",
                buffer.direction,
                decoded.reason,
                len(remaining),
            )
            failure = decoded
            break

        if not decoded.is_valid() and 0 < decoded.length < len(remaining):
            truncated = codec.try_decode(remaining[: decoded.length])
            if isinstance(truncated, DecodeFailure):
                failure = truncated
                break
            decoded = truncated

        if decoded.length <= 0:
            logger.warning(
                "%s: codec returned a %d byte frame, dropping %d buffered bytes",
                buffer.direction,
                decoded.length,
                len(remaining),
            )
            failure = DecodeFailure("invalid_length", remaining[:DATA_PREVIEW_LENGTH])
            remaining = b""
            break

        packets.append(decoded)
        remaining = remaining[decoded.length :]

        if not decoded.is_valid():
            logger.warning(
                "%s: invalid %d byte frame, stopping extraction for this chunk (%d bytes kept)",
                buffer.direction,
                decoded.length,
                len(remaining),
            )
            break

    if remaining and remaining[0] != SYNC_BYTE:
        logger.warning("%s: discarding %d unsynchronized bytes", buffer.direction, len(remaining))
        remaining = b""

    return ExtractionResult(
        packets=packets,
        remainder=DirectionBuffer(buffer.direction, remaining),
        failure=failure,
    )
