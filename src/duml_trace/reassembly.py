"""Direction-keyed stream reassembly of capture records into DUML packets.

The capture splits frames across transfers at arbitrary boundaries and may
start or resume in the middle of a frame. The reassembler keeps one buffer per
direction, aligns a fresh buffer on the first sync byte, and hands the buffer
to the frame extractor after every appended chunk.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass, field

from duml_trace.config import TraceReaderConfig
from duml_trace.const import SYNC_BYTE
from duml_trace.exceptions import SkippableRecordError
from duml_trace.instrumentation import timed, timed_async
from duml_trace.logging_abstraction import get_logger
from duml_trace.metrics import registry
from duml_trace.protocol.duml_protocol import DumlProtocol
from duml_trace.protocol.frame_extractor import Direction, DirectionBuffer, extract_frames
from duml_trace.protocol.packet_types import DecodedPacket, PacketCodec
from duml_trace.trace_reader import RawChunk

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class TimestampedPacket:
    """A decoded packet tagged with the record that completed it."""

    timestamp: str
    direction: Direction
    packet: DecodedPacket


@dataclass
class ReassemblyStats:
    processed: int = 0
    skipped: int = 0
    skip_reasons: Counter[str] = field(default_factory=Counter)


def classify_direction(token: str, config: TraceReaderConfig) -> Direction | None:
    """Map an analyzer direction token to RX/TX; None when it is neither."""
    if config.inbound_token in token:
        return Direction.RX
    if config.outbound_token in token:
        return Direction.TX
    return None


class StreamReassembler:
    """Turn raw capture records into an ordered sequence of timestamped packets.

    One instance processes one trace; its buffers live for the whole run.

    Example:
        reassembler = StreamReassembler()
        packets = reassembler.reassemble(read_trace(path))
        print(reassembler.stats.processed, reassembler.stats.skipped)

    """

    def __init__(self, config: TraceReaderConfig | None = None, codec: PacketCodec = DumlProtocol) -> None:
        self.config: TraceReaderConfig = config or TraceReaderConfig()
        self.codec: PacketCodec = codec
        self.buffers: dict[Direction, DirectionBuffer] = {d: DirectionBuffer(d) for d in Direction}
        self.stats: ReassemblyStats = ReassemblyStats()

    def _prepare(self, chunk: RawChunk) -> tuple[Direction, bytes]:
        """Classify and sanitize a record, returning its direction and the bytes to append.

        Raises:
            SkippableRecordError: If the record cannot contribute to a buffer

        """
        if chunk.marker != self.config.payload_marker:
            raise SkippableRecordError("not_payload_record", chunk.timestamp)

        direction = classify_direction(chunk.direction_token, self.config)
        if direction is None:
            raise SkippableRecordError("unknown_direction", chunk.timestamp)

        hex_text = _WHITESPACE.sub("", chunk.payload)
        if not hex_text:
            raise SkippableRecordError("empty_payload", chunk.timestamp)
        try:
            data = bytes.fromhex(hex_text)
        except ValueError as e:
            raise SkippableRecordError("invalid_hex", chunk.timestamp) from e

        if self.buffers[direction].empty:
            start = data.find(SYNC_BYTE)
            if start == -1:
                raise SkippableRecordError("no_sync_byte", chunk.timestamp)
            data = data[start:]

        return direction, data

    def feed(self, chunk: RawChunk) -> list[TimestampedPacket]:
        """Process one record and return the packets it completed."""
        try:
            direction, data = self._prepare(chunk)
        except SkippableRecordError as e:
            self._skip(e)
            return []

        buffer = self.buffers[direction].append(data)
        if buffer.empty:
            self._skip(SkippableRecordError("empty_buffer", chunk.timestamp))
            return []

        result = extract_frames(buffer, self.codec)
        self.buffers[direction] = result.remainder
        self.stats.processed += 1

        registry.record_chunk(direction, "processed")
        registry.record_buffer_size(direction, len(result.remainder))
        if result.failure is not None:
            registry.record_decode_failure(direction, result.failure.reason)
        for packet in result.packets:
            registry.record_packet_decoded(direction, packet.is_valid())

        if result.packets:
            logger.debug(
                "%s %s: %d packet(s), %d byte(s) carried over",
                chunk.timestamp,
                direction,
                len(result.packets),
                len(result.remainder),
            )
        return [TimestampedPacket(chunk.timestamp, direction, packet) for packet in result.packets]

    def _skip(self, error: SkippableRecordError) -> None:
        self.stats.skipped += 1
        self.stats.skip_reasons[error.reason] += 1
        registry.record_chunk_skipped(error.reason)
        logger.debug("Skipped record at %s: %s", error.timestamp or "?", error.reason)

    @timed("reassemble")
    def reassemble(self, chunks: Iterable[RawChunk]) -> list[TimestampedPacket]:
        """Process every record in order and return all packets.

        A ``SourceFatalError`` raised while iterating ``chunks`` propagates.
        """
        packets: list[TimestampedPacket] = []
        for chunk in chunks:
            packets.extend(self.feed(chunk))
        self._log_summary(packets)
        return packets

    @timed_async("reassemble_async")
    async def reassemble_async(self, chunks: AsyncIterable[RawChunk]) -> list[TimestampedPacket]:
        """Same as ``reassemble`` for a source that yields records asynchronously."""
        packets: list[TimestampedPacket] = []
        async for chunk in chunks:
            packets.extend(self.feed(chunk))
        self._log_summary(packets)
        return packets

    def _log_summary(self, packets: list[TimestampedPacket]) -> None:
        logger.info(
            "processed: %d :: skipped %d",
            self.stats.processed,
            self.stats.skipped,
            extra={"packets": len(packets), **{f"skipped_{k}": v for k, v in self.stats.skip_reasons.items()}},
        )
