"""Unit tests for per-direction frame extraction."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from duml_trace.protocol import (
    DecodeFailure,
    Direction,
    DirectionBuffer,
    DumlProtocol,
    duml_protocol,
    extract_frames,
)

TRAILING_NOISE = b"\x00\x01"


@dataclass(frozen=True)
class FakePacket:
    """Frame of the toy codec: ``[0x55, tag, length, ...]``."""

    tag: int
    length: int
    raw: bytes
    command_type: int = 0
    ack_type: int = 0
    sequence_id: int = 0

    def is_valid(self) -> bool:
        return self.length == len(self.raw)

    def to_short_string(self) -> str:
        return f"fake {self.tag:02x}"


class FakeCodec:
    """Whole-buffer decoder with the same failure reasons as DumlProtocol."""

    def __init__(self) -> None:
        self.calls: list[bytes] = []

    def try_decode(self, data: bytes) -> FakePacket | DecodeFailure:
        self.calls.append(data)
        if len(data) < 3:
            return DecodeFailure("too_short", data)
        if data[0] != 0x55:
            return DecodeFailure("missing_sof", data)
        if len(data) < data[2]:
            return DecodeFailure("insufficient_data", data)
        return FakePacket(tag=data[1], length=data[2], raw=data)


def _rx(data: bytes) -> DirectionBuffer:
    return DirectionBuffer(Direction.RX, data)


class TestDirectionBuffer:
    """Tests for the immutable buffer value."""

    def test_append_returns_new_buffer(self) -> None:
        buffer = _rx(b"\x55")
        appended = buffer.append(b"\x01\x02")

        assert buffer.data == b"\x55"
        assert appended.data == b"\x55\x01\x02"
        assert appended.direction == Direction.RX
        assert len(appended) == 3

    def test_empty(self) -> None:
        assert DirectionBuffer(Direction.TX).empty
        assert not _rx(b"\x55").empty


class TestOverReadRecovery:
    """Over-read detection with a toy codec."""

    def test_over_read_is_truncated_and_both_frames_extracted(self) -> None:
        codec = FakeCodec()
        data = bytes([0x55, 0xAA, 0x04, 0x00, 0x55, 0xBB, 0x06, 0x00, 0x00, 0x00])

        result = extract_frames(_rx(data), codec)

        assert [p.tag for p in result.packets] == [0xAA, 0xBB]
        assert [p.raw for p in result.packets] == [data[:4], data[4:]]
        assert all(p.is_valid() for p in result.packets)
        assert result.remainder.empty
        assert result.failure is None
        # whole buffer, truncated first frame, then the second frame
        assert codec.calls == [data, data[:4], data[4:]]

    def test_stops_on_decode_failure_and_keeps_bytes(self) -> None:
        data = bytes([0x55, 0xAA, 0x08, 0x00])

        result = extract_frames(_rx(data), FakeCodec())

        assert result.packets == []
        assert result.remainder.data == data
        assert result.failure is not None
        assert result.failure.reason == "insufficient_data"

    def test_truncated_failure_keeps_bytes(self) -> None:
        """A declared length too short to start a frame is kept for the next chunk."""
        data = bytes([0x55, 0xAA, 0x02, 0x00, 0x00])

        result = extract_frames(_rx(data), FakeCodec())

        assert result.packets == []
        assert result.failure is not None
        assert result.failure.reason == "too_short"
        assert result.remainder.data == data


class ZeroLengthCodec:
    """Codec that reports a valid frame without consuming anything."""

    def try_decode(self, data: bytes) -> FakePacket:
        return FakePacket(tag=data[1], length=0, raw=b"")


class TestNonAdvancingCodec:
    """Frames that would not move the buffer forward."""

    def test_zero_length_valid_frame_stops(self, caplog) -> None:
        data = bytes([0x55, 0xCC, 0x00, 0x01])

        with caplog.at_level(logging.WARNING):
            result = extract_frames(_rx(data), ZeroLengthCodec())

        assert result.packets == []
        assert result.remainder.empty
        assert result.failure is not None
        assert result.failure.reason == "invalid_length"
        assert "codec returned a 0 byte frame" in caplog.text

    def test_zero_length_invalid_frame_stops(self) -> None:
        data = bytes([0x55, 0xCC, 0x00, 0x01, 0x02])

        result = extract_frames(_rx(data), FakeCodec())

        assert result.packets == []
        assert result.remainder.empty
        assert result.failure is not None
        assert result.failure.reason == "invalid_length"


class TestExtractFrames:
    """Extraction with real DUML frames."""

    def test_empty_buffer(self) -> None:
        result = extract_frames(_rx(b""))

        assert result.packets == []
        assert result.remainder.empty
        assert result.failure is None

    def test_single_frame(self, make_frame: Callable[..., bytes]) -> None:
        frame = make_frame(1)

        result = extract_frames(_rx(frame))

        assert len(result.packets) == 1
        assert result.packets[0].is_valid()
        assert result.remainder.empty

    def test_concatenated_frames(self, sample_frames: list[bytes]) -> None:
        result = extract_frames(_rx(b"".join(sample_frames)))

        assert [p.sequence_id for p in result.packets] == [1, 2, 3]
        assert all(p.is_valid() for p in result.packets)
        assert result.remainder.empty

    def test_partial_frame_is_kept(self, make_frame: Callable[..., bytes]) -> None:
        partial = make_frame(1, payload=bytes(30))[:20]

        result = extract_frames(_rx(partial))

        assert result.packets == []
        assert result.remainder.data == partial
        assert result.failure is not None
        assert result.failure.reason == "insufficient_data"

    def test_frame_followed_by_partial_frame(self, make_frame: Callable[..., bytes]) -> None:
        complete = make_frame(1)
        partial = make_frame(2, payload=bytes(30))[:15]

        result = extract_frames(_rx(complete + partial))

        assert [p.sequence_id for p in result.packets] == [1]
        assert result.remainder.data == partial

    def test_unsynchronized_remainder_is_dropped(self, make_frame: Callable[..., bytes]) -> None:
        result = extract_frames(_rx(make_frame(1) + TRAILING_NOISE))

        assert len(result.packets) == 1
        assert result.packets[0].is_valid()
        assert result.remainder.empty
        assert result.failure is not None
        assert result.failure.reason == "too_short"

    def test_invalid_frame_stops_extraction(
        self,
        make_frame: Callable[..., bytes],
        caplog,
    ) -> None:
        corrupted = bytearray(make_frame(1, payload=b"\x01\x02\x03"))
        corrupted[12] ^= 0xFF
        following = make_frame(2)

        with caplog.at_level(logging.WARNING):
            result = extract_frames(_rx(bytes(corrupted) + following))

        assert len(result.packets) == 1
        assert not result.packets[0].is_valid()
        assert result.packets[0].length == len(corrupted)
        assert result.remainder.data == following
        assert f"invalid {len(corrupted)} byte frame" in caplog.text
        assert f"({len(following)} bytes kept)" in caplog.text

        # the kept frame comes out on the next call
        next_result = extract_frames(result.remainder)
        assert [p.sequence_id for p in next_result.packets] == [2]

    def test_input_buffer_is_not_modified(self, sample_frames: list[bytes]) -> None:
        data = b"".join(sample_frames)
        buffer = _rx(data)

        extract_frames(buffer)

        assert buffer.data == data

    def test_remainder_keeps_direction(self, make_frame: Callable[..., bytes]) -> None:
        buffer = DirectionBuffer(Direction.TX, make_frame(1)[:5])

        assert extract_frames(buffer).remainder.direction == Direction.TX


class TestExtractionCost:
    """Checksum work stays proportional to the buffer size."""

    FRAME_COUNT = 400

    def test_each_frame_checksummed_once(self, make_frame: Callable[..., bytes], monkeypatch) -> None:
        checksummed: list[int] = []
        original_crc16 = duml_protocol.crc16_frame

        def counting_crc16(data: bytes) -> int:
            checksummed.append(len(data))
            return original_crc16(data)

        monkeypatch.setattr(duml_protocol, "crc16_frame", counting_crc16)
        frames = [make_frame(i, payload=bytes(7)) for i in range(self.FRAME_COUNT)]
        data = b"".join(frames)

        result = extract_frames(_rx(data))

        assert len(result.packets) == self.FRAME_COUNT
        assert all(p.is_valid() for p in result.packets)
        assert len(checksummed) == self.FRAME_COUNT
        assert sum(checksummed) < len(data)

    def test_over_read_packet_keeps_declared_payload(self, make_frame: Callable[..., bytes]) -> None:
        first = make_frame(1, payload=b"\xaa\xbb")

        packet = DumlProtocol.decode_packet(first + make_frame(2))

        assert packet.payload == b"\xaa\xbb"
        assert not packet.crc_valid
        assert not packet.is_valid()
