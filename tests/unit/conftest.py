"""
Shared fixtures for unit tests.

Frames are always built with DumlProtocol.encode_packet so both checksums are
consistent with the decoder.
"""

from collections.abc import Callable

import pytest

from duml_trace.protocol import AckType, CommandType, Direction, DumlProtocol
from duml_trace.reassembly import TimestampedPacket
from duml_trace.trace_reader import RawChunk

# Sender/receiver bytes: MobileApp.0 and FlightCtrl.0
APP = 0x02
FLIGHT_CTRL = 0x03


def build_frame(
    sequence_id: int,
    command_type: int = CommandType.REQUEST,
    ack_type: int = AckType.ACK_AFTER_EXEC,
    payload: bytes = b"",
    cmd_set: int = 0x00,
    cmd_id: int = 0x01,
) -> bytes:
    return DumlProtocol.encode_packet(
        sender=APP,
        receiver=FLIGHT_CTRL,
        sequence_id=sequence_id,
        command_type=command_type,
        ack_type=ack_type,
        cmd_set=cmd_set,
        cmd_id=cmd_id,
        payload=payload,
    )


def spaced_hex(data: bytes) -> str:
    """Hex dump the way the analyzer exports it."""
    return data.hex(" ").upper()


def chunk(payload: bytes | str, token: str = "IN", timestamp: str = "0.000", marker: str = "0") -> RawChunk:
    text = spaced_hex(payload) if isinstance(payload, bytes) else payload
    return RawChunk(marker=marker, timestamp=timestamp, direction_token=token, payload=text)


def timestamped(
    sequence_id: int,
    direction: Direction,
    command_type: int = CommandType.REQUEST,
    ack_type: int = AckType.ACK_AFTER_EXEC,
    timestamp: str = "0.000",
) -> TimestampedPacket:
    frame = build_frame(sequence_id, command_type=command_type, ack_type=ack_type)
    return TimestampedPacket(timestamp, direction, DumlProtocol.decode_packet(frame))


@pytest.fixture
def make_frame() -> Callable[..., bytes]:
    return build_frame


@pytest.fixture
def make_chunk() -> Callable[..., RawChunk]:
    return chunk


@pytest.fixture
def make_packet() -> Callable[..., TimestampedPacket]:
    return timestamped


@pytest.fixture
def sample_frames() -> list[bytes]:
    """Three frames of different lengths, as one direction would send them."""
    return [
        build_frame(1, payload=bytes(range(10))),
        build_frame(2, command_type=CommandType.ACK, payload=b"\x00"),
        build_frame(3, ack_type=AckType.NO_ACK, payload=bytes(range(40))),
    ]
