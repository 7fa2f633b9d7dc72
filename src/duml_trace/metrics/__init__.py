"""Metrics module."""

from . import registry
from .registry import (
    record_buffer_size,
    record_chunk,
    record_chunk_skipped,
    record_decode_failure,
    record_packet_decoded,
    record_pairing_results,
    start_metrics_server,
)

__all__ = [
    "record_buffer_size",
    "record_chunk",
    "record_chunk_skipped",
    "record_decode_failure",
    "record_packet_decoded",
    "record_pairing_results",
    "registry",
    "start_metrics_server",
]
