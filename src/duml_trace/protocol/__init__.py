"""DUML protocol package - frame codec, checksums and stream frame extraction.

Public API:
- Frame codec (DumlProtocol)
- Packet dataclasses and codec protocols (DumlPacket, DecodeFailure, DecodedPacket, PacketCodec)
- Frame extraction (Direction, DirectionBuffer, ExtractionResult, extract_frames)
"""

from duml_trace.protocol.duml_protocol import DumlProtocol
from duml_trace.protocol.frame_extractor import (
    Direction,
    DirectionBuffer,
    ExtractionResult,
    extract_frames,
)
from duml_trace.protocol.packet_types import (
    MIN_FRAME_LENGTH,
    AckType,
    CommandType,
    DecodedPacket,
    DecodeFailure,
    DumlPacket,
    PacketCodec,
)

__all__ = [
    "MIN_FRAME_LENGTH",
    "AckType",
    "CommandType",
    "DecodeFailure",
    "DecodedPacket",
    "Direction",
    "DirectionBuffer",
    "DumlPacket",
    "DumlProtocol",
    "ExtractionResult",
    "PacketCodec",
    "extract_frames",
]
