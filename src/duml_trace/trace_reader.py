"""Read USB analyzer CSV exports into raw trace records.

The export has one row per captured transfer. Only a handful of columns
matter: a record marker (``"0"`` for data transfers), a timestamp, the
transfer direction (``IN``/``OUT``) and the hex dump of the payload. The hex
dump occasionally contains stray delimiters, so rows of any width are
accepted and quoting is disabled; missing columns read as empty strings.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from duml_trace.config import TraceReaderConfig
from duml_trace.exceptions import SourceFatalError
from duml_trace.logging_abstraction import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RawChunk:
    """One trace record as read from the capture, before any interpretation."""

    marker: str
    timestamp: str
    direction_token: str
    payload: str


def _field(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def row_to_chunk(row: list[str], config: TraceReaderConfig) -> RawChunk:
    return RawChunk(
        marker=_field(row, config.marker_column).strip(),
        timestamp=_field(row, config.timestamp_column).strip(),
        direction_token=_field(row, config.direction_column),
        payload=_field(row, config.payload_column),
    )


def read_trace(path: Path, config: TraceReaderConfig | None = None) -> Iterator[RawChunk]:
    """Yield every row of the capture at ``path`` as a RawChunk.

    Rows are yielded lazily in file order; classification (payload record or
    not, direction) is left to the reassembler.

    Raises:
        SourceFatalError: If the file cannot be opened, read or decoded

    """
    config = config or TraceReaderConfig()
    rows = 0
    try:
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.reader(f, delimiter=config.delimiter, quoting=csv.QUOTE_NONE)
            for row in reader:
                rows += 1
                yield row_to_chunk(row, config)
    except OSError as e:
        logger.error("Failed to read trace %s: %s", path, e)
        raise SourceFatalError("io_error", str(path)) from e
    except UnicodeDecodeError as e:
        logger.error("Trace %s is not valid UTF-8 (row %d)", path, rows + 1)
        raise SourceFatalError("encoding_error", str(path)) from e
    except csv.Error as e:
        logger.error("Malformed CSV in %s at row %d: %s", path, rows + 1, e)
        raise SourceFatalError("csv_error", str(path)) from e

    logger.debug("Read %d rows from %s", rows, path, extra={"rows": rows})
