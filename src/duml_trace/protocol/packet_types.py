"""DUML packet type definitions and dataclass structures.

Frame layout (DUML v1, multi-byte fields little endian):

- Byte 0: start of frame (0x55)
- Bytes 1-2: frame length in bits 0-9, protocol version in bits 10-15
- Byte 3: CRC8 over bytes 0-2
- Byte 4: sender (bits 0-4 device type, bits 5-7 device index)
- Byte 5: receiver (same encoding)
- Bytes 6-7: sequence id
- Byte 8: bit 7 command type, bits 5-6 ack type, bits 0-3 encryption
- Byte 9: command set
- Byte 10: command id
- Bytes 11..n-3: payload
- Last 2 bytes: CRC16 over everything before it
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

FRAME_HEADER_LENGTH = 11
FRAME_CRC_LENGTH = 2
MIN_FRAME_LENGTH = FRAME_HEADER_LENGTH + FRAME_CRC_LENGTH
MAX_FRAME_LENGTH = 0x3FF  # 10-bit length field
DUML_VERSION = 1


class CommandType(IntEnum):
    """Bit 7 of the command type byte."""

    REQUEST = 0
    ACK = 1


class AckType(IntEnum):
    """Bits 5-6 of the command type byte."""

    NO_ACK = 0
    ACK_BEFORE_EXEC = 1
    ACK_AFTER_EXEC = 2


# Device types seen in the sender/receiver bytes
DEVICE_NAMES: dict[int, str] = {
    0: "Any",
    1: "Camera",
    2: "MobileApp",
    3: "FlightCtrl",
    4: "Gimbal",
    5: "CenterBoard",
    6: "RemoteCtrl",
    7: "WiFi",
    8: "LBDm3xxSky",
    9: "LBMcuSky",
    10: "PC",
    11: "Battery",
    12: "ESC",
}


def device_name(address: int) -> str:
    """Render a sender/receiver byte as ``Name.index``."""
    device_type = address & 0x1F
    index = address >> 5
    name = DEVICE_NAMES.get(device_type, f"Dev{device_type:02d}")
    return f"{name}.{index}"


@dataclass(frozen=True)
class DumlPacket:
    """A decoded DUML frame.

    ``length`` is the frame length in bytes taken from the header. ``raw`` is
    the buffer the packet was decoded from and may be longer than ``length``
    when the decoder was handed more than one frame; such a packet is never
    valid.

    Attributes:
        length: Declared frame length in bytes (header + payload + CRC16)
        version: Protocol version from the length word
        sender: Sender address byte
        receiver: Receiver address byte
        sequence_id: Correlation key shared by a request and its response
        command_type: 0 request, 1 acknowledgement
        ack_type: 0 no reply expected, nonzero reply expected
        encrypt_type: Encryption type nibble
        cmd_set: Command set byte
        cmd_id: Command id byte
        payload: Bytes between the header and the trailing CRC16
        raw: Bytes handed to the decoder
        header_crc_valid: Whether the CRC8 at byte 3 matched
        crc_valid: Whether the trailing CRC16 matched

    """

    length: int
    version: int
    sender: int
    receiver: int
    sequence_id: int
    command_type: int
    ack_type: int
    encrypt_type: int
    cmd_set: int
    cmd_id: int
    payload: bytes
    raw: bytes
    header_crc_valid: bool
    crc_valid: bool

    def is_valid(self) -> bool:
        return self.length == len(self.raw) and self.header_crc_valid and self.crc_valid

    def to_short_string(self) -> str:
        kind = "ACK" if self.command_type == CommandType.ACK else "REQ"
        try:
            ack = AckType(self.ack_type).name
        except ValueError:
            ack = f"ACK_TYPE_{self.ack_type}"
        text = (
            f"{device_name(self.sender)}->{device_name(self.receiver)} "
            f"seq={self.sequence_id} {kind} {ack} "
            f"cmd={self.cmd_set:02x}:{self.cmd_id:02x} [{self.payload.hex()}]"
        )
        if not self.is_valid():
            text += " INVALID"
        return text


@dataclass(frozen=True)
class DecodeFailure:
    """The codec could not even start a frame from the given bytes.

    Attributes:
        reason: Failure reason from the codec (e.g., "too_short")
        data_preview: First bytes of the data that failed to decode

    """

    reason: str
    data_preview: bytes = b""


class DecodedPacket(Protocol):
    """What the extractor and pairing engine need from a decoded packet."""

    @property
    def length(self) -> int: ...

    @property
    def command_type(self) -> int: ...

    @property
    def ack_type(self) -> int: ...

    @property
    def sequence_id(self) -> int: ...

    def is_valid(self) -> bool: ...

    def to_short_string(self) -> str: ...


class PacketCodec(Protocol):
    """Decoder boundary used by the frame extractor.

    Structural type: any object with a matching ``try_decode`` works.
    """

    def try_decode(self, data: bytes) -> DecodedPacket | DecodeFailure: ...
