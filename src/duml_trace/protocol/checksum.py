"""
Checksums used by DUML v1 frames.

A frame carries two checksums:
- a CRC8 over the first three header bytes (sync byte and length/version word),
  stored at offset 3
- a CRC16 over everything except the trailing two bytes, stored little endian
  at the end of the frame

Both are reflected CRCs with non-standard seeds.
"""

from __future__ import annotations

from typing import Final

CRC8_SEED: Final[int] = 0x77
CRC8_POLY_REFLECTED: Final[int] = 0x8C
CRC16_SEED: Final[int] = 0x3692
CRC16_POLY_REFLECTED: Final[int] = 0x8408


def _reflected_crc(data: bytes, seed: int, poly: int) -> int:
    crc = seed
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = (crc >> 1) ^ poly if crc & 1 else crc >> 1
    return crc


def crc8_header(data: bytes) -> int:
    """
    Compute the header CRC8.

    Args:
        data: The bytes to cover (normally ``frame[0:3]``)

    Returns:
        The checksum (0-255)
    """
    return _reflected_crc(data, CRC8_SEED, CRC8_POLY_REFLECTED) & 0xFF


def crc16_frame(data: bytes) -> int:
    """
    Compute the frame CRC16.

    Args:
        data: The bytes to cover (normally ``frame[:-2]``)

    Returns:
        The checksum (0-65535)
    """
    return _reflected_crc(data, CRC16_SEED, CRC16_POLY_REFLECTED) & 0xFFFF
