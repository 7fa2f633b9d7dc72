"""Exception hierarchy for duml-trace.

Every error carries a short machine-readable ``reason`` (for example
``"too_short"`` or ``"no_sync_byte"``) that is also used as a metrics label.
Only ``SourceFatalError`` and ``ConfigError`` end a run; the others are
counted and processing continues.
"""

from __future__ import annotations

# Bytes kept from offending data in error objects and logs
DATA_PREVIEW_LENGTH = 16


class DumlTraceError(Exception):
    """Base exception for all duml-trace errors."""


class PacketDecodeError(DumlTraceError):
    """A DUML frame cannot be started from the given bytes.

    Raised when the buffer is shorter than a minimal frame, does not open with
    the sync byte, or holds fewer bytes than the declared frame length.

    Attributes:
        reason: Specific failure reason (e.g., "too_short", "insufficient_data")
        data_preview: First 16 bytes of the offending data

    """

    def __init__(self, reason: str, data: bytes = b"") -> None:
        self.reason: str = reason
        self.data_preview: bytes = data[:DATA_PREVIEW_LENGTH] if data else b""
        super().__init__(f"Packet decode failed: {reason}")


class SkippableRecordError(DumlTraceError):
    """A trace record that cannot contribute bytes to a direction buffer.

    Attributes:
        reason: Why the record was skipped (e.g., "unknown_direction")
        timestamp: Timestamp of the skipped record, when known

    """

    def __init__(self, reason: str, timestamp: str = "") -> None:
        self.reason: str = reason
        self.timestamp: str = timestamp
        super().__init__(f"Record skipped: {reason}")


class SourceFatalError(DumlTraceError):
    """The trace source itself failed; no partial results are trusted.

    Attributes:
        reason: Failure category ("io_error", "csv_error", "encoding_error")
        source: Path or name of the trace source

    """

    def __init__(self, reason: str, source: str = "") -> None:
        self.reason: str = reason
        self.source: str = source
        super().__init__(f"Trace source failed: {reason} ({source})")


class ConfigError(DumlTraceError):
    """Configuration file missing, unparsable or holding invalid values."""

    def __init__(self, reason: str, path: str = "") -> None:
        self.reason: str = reason
        self.path: str = path
        super().__init__(f"Invalid configuration: {reason} ({path})")
