"""DUML v1 encoder/decoder implementation.

The decoder treats the whole buffer it is given as one frame: the CRC16 is
read from the last two bytes of the buffer, not of the declared frame. A
buffer that holds a frame followed by more data therefore decodes as an
invalid packet whose declared ``length`` is shorter than the buffer, which is
what the frame extractor uses to detect and undo an over-read. Such a
packet is never checksummed, so decoding a long buffer costs no more than
decoding its first frame.
"""

from __future__ import annotations

import logging
import re

from duml_trace.const import SYNC_BYTE
from duml_trace.exceptions import PacketDecodeError
from duml_trace.protocol.checksum import crc8_header, crc16_frame
from duml_trace.protocol.packet_types import (
    DUML_VERSION,
    FRAME_HEADER_LENGTH,
    MAX_FRAME_LENGTH,
    MIN_FRAME_LENGTH,
    AckType,
    CommandType,
    DecodeFailure,
    DumlPacket,
)

LENGTH_MASK = 0x3FF
VERSION_SHIFT = 10
COMMAND_TYPE_BIT = 7
ACK_TYPE_SHIFT = 5
ACK_TYPE_MASK = 0x03
ENCRYPT_MASK = 0x0F

_WHITESPACE = re.compile(r"\s+")

logger = logging.getLogger(__name__)


class DumlProtocol:
    """DUML encoder/decoder.

    All methods are static; the class itself satisfies the ``PacketCodec``
    protocol and can be handed to the frame extractor directly.
    """

    @staticmethod
    def parse_header(data: bytes) -> tuple[int, int, bool]:
        """Parse the 4-byte frame prefix and return (length, version, header_crc_valid).

        Raises:
            PacketDecodeError: If fewer than 4 bytes are given

        Example:
            >>> frame = DumlProtocol.encode_packet(sender=0x02, receiver=0x03, sequence_id=1)
            >>> length, version, ok = DumlProtocol.parse_header(frame)
            >>> (length, version, ok)
            (13, 1, True)

        """
        if len(data) < 4:
            raise PacketDecodeError("too_short", data)
        word = data[1] | (data[2] << 8)
        length = word & LENGTH_MASK
        version = word >> VERSION_SHIFT
        return (length, version, crc8_header(data[:3]) == data[3])

    @staticmethod
    def decode_packet(data: bytes) -> DumlPacket:
        """Decode a DUML frame from the start of ``data``.

        Steps:
        1. Require a minimal frame and the 0x55 start byte
        2. Parse length/version and check the header CRC8
        3. Require at least ``length`` bytes
        4. Split header fields, payload and trailing CRC16 of the whole buffer;
           a buffer longer than ``length`` skips the CRC16 and keeps only the
           declared payload

        A declared length below the minimal frame size is decoded as an
        invalid minimal frame so callers always advance.

        Args:
            data: Buffer starting at a frame boundary

        Returns:
            DumlPacket (possibly invalid)

        Raises:
            PacketDecodeError: If no frame can be started from ``data``

        """
        if len(data) < MIN_FRAME_LENGTH:
            raise PacketDecodeError("too_short", data)
        if data[0] != SYNC_BYTE:
            raise PacketDecodeError("missing_sof", data)

        length, version, header_crc_valid = DumlProtocol.parse_header(data)
        if length < MIN_FRAME_LENGTH:
            logger.debug("Declared length %d below minimum, treating as %d", length, MIN_FRAME_LENGTH)
            length = MIN_FRAME_LENGTH
            header_crc_valid = False
        if len(data) < length:
            raise PacketDecodeError("insufficient_data", data)

        cmd_type_byte = data[8]
        if len(data) > length:
            # Already invalid by length; the caller re-decodes the declared prefix
            payload = bytes(data[FRAME_HEADER_LENGTH : length - 2])
            crc_valid = False
        else:
            payload = bytes(data[FRAME_HEADER_LENGTH:-2])
            crc_valid = crc16_frame(data[:-2]) == (data[-2] | (data[-1] << 8))
        packet = DumlPacket(
            length=length,
            version=version,
            sender=data[4],
            receiver=data[5],
            sequence_id=data[6] | (data[7] << 8),
            command_type=(cmd_type_byte >> COMMAND_TYPE_BIT) & 0x01,
            ack_type=(cmd_type_byte >> ACK_TYPE_SHIFT) & ACK_TYPE_MASK,
            encrypt_type=cmd_type_byte & ENCRYPT_MASK,
            cmd_set=data[9],
            cmd_id=data[10],
            payload=payload,
            raw=bytes(data),
            header_crc_valid=header_crc_valid,
            crc_valid=crc_valid,
        )

        logger.debug(
            "Decoded frame: seq=%d len=%d/%d valid=%s",
            packet.sequence_id,
            packet.length,
            len(data),
            packet.is_valid(),
        )
        return packet

    @staticmethod
    def try_decode(data: bytes) -> DumlPacket | DecodeFailure:
        """Decode like ``decode_packet`` but return a DecodeFailure instead of raising."""
        try:
            return DumlProtocol.decode_packet(data)
        except PacketDecodeError as e:
            return DecodeFailure(reason=e.reason, data_preview=e.data_preview)

    @staticmethod
    def decode_hex(text: str) -> DumlPacket:
        """Decode a frame given as hex text; whitespace is ignored.

        Raises:
            PacketDecodeError: On non-hex input or an undecodable frame

        """
        try:
            data = bytes.fromhex(_WHITESPACE.sub("", text))
        except ValueError as e:
            raise PacketDecodeError("invalid_hex") from e
        return DumlProtocol.decode_packet(data)

    @staticmethod
    def encode_packet(
        sender: int,
        receiver: int,
        sequence_id: int,
        command_type: int = CommandType.REQUEST,
        ack_type: int = AckType.NO_ACK,
        cmd_set: int = 0x00,
        cmd_id: int = 0x00,
        payload: bytes = b"",
        encrypt_type: int = 0,
        version: int = DUML_VERSION,
    ) -> bytes:
        """Build a complete frame with both checksums.

        Example:
            >>> frame = DumlProtocol.encode_packet(0x02, 0x03, 7, ack_type=AckType.ACK_AFTER_EXEC)
            >>> DumlProtocol.decode_packet(frame).is_valid()
            True

        Raises:
            ValueError: If the frame would not fit the 10-bit length field

        """
        length = MIN_FRAME_LENGTH + len(payload)
        if length > MAX_FRAME_LENGTH:
            raise ValueError(f"Frame length {length} exceeds {MAX_FRAME_LENGTH}")

        word = length | (version << VERSION_SHIFT)
        prefix = bytes([SYNC_BYTE, word & 0xFF, (word >> 8) & 0xFF])
        cmd_type_byte = (
            ((command_type & 0x01) << COMMAND_TYPE_BIT)
            | ((ack_type & ACK_TYPE_MASK) << ACK_TYPE_SHIFT)
            | (encrypt_type & ENCRYPT_MASK)
        )
        body = (
            prefix
            + bytes([crc8_header(prefix), sender & 0xFF, receiver & 0xFF])
            + sequence_id.to_bytes(2, "little")
            + bytes([cmd_type_byte, cmd_set & 0xFF, cmd_id & 0xFF])
            + payload
        )
        return body + crc16_frame(body).to_bytes(2, "little")
