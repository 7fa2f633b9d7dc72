"""Unit tests for the analyzer CSV reader."""

from pathlib import Path

import pytest

from duml_trace.config import TraceReaderConfig
from duml_trace.exceptions import SourceFatalError
from duml_trace.trace_reader import RawChunk, read_trace, row_to_chunk

HEADER_ROW = "Record,Level,Sp,Time,Dur,Len,Err,Dev,Ep,Dir,Data"
PAYLOAD_ROW = "0,,,1.000,,,,,,IN,55 0D 04"
SETUP_ROW = "1,,,1.100,,,,,,SETUP,"


def _write(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "capture.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestRowToChunk:
    """Tests for mapping CSV rows to records."""

    def test_default_columns(self) -> None:
        row = ["0", "", "", " 1.000 ", "", "", "", "", "", "OUT", "55 0D"]

        chunk = row_to_chunk(row, TraceReaderConfig())

        assert chunk == RawChunk(marker="0", timestamp="1.000", direction_token="OUT", payload="55 0D")

    def test_short_row_reads_missing_columns_as_empty(self) -> None:
        chunk = row_to_chunk(["0", "", "", "2.0"], TraceReaderConfig())

        assert chunk.direction_token == ""
        assert chunk.payload == ""

    def test_custom_columns(self) -> None:
        config = TraceReaderConfig(marker_column=1, timestamp_column=0, direction_column=2, payload_column=3)

        chunk = row_to_chunk(["5.5", "D", "IN", "AA"], config)

        assert chunk == RawChunk(marker="D", timestamp="5.5", direction_token="IN", payload="AA")


class TestReadTrace:
    """Tests for reading capture files."""

    def test_yields_every_row_in_order(self, tmp_path: Path) -> None:
        path = _write(tmp_path, HEADER_ROW, PAYLOAD_ROW, SETUP_ROW)

        chunks = list(read_trace(path))

        assert [c.marker for c in chunks] == ["Record", "0", "1"]
        assert chunks[1].payload == "55 0D 04"
        assert chunks[1].timestamp == "1.000"
        assert chunks[2].direction_token == "SETUP"

    def test_quotes_are_not_interpreted(self, tmp_path: Path) -> None:
        path = _write(tmp_path, '0,,,1.0,,,,,,IN,"55 0D')

        chunks = list(read_trace(path))

        assert chunks[0].payload == '"55 0D'

    def test_custom_delimiter(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "0;;;1.0;;;;;;OUT;55")

        chunks = list(read_trace(path, TraceReaderConfig(delimiter=";")))

        assert chunks[0].direction_token == "OUT"
        assert chunks[0].payload == "55"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SourceFatalError) as exc_info:
            list(read_trace(tmp_path / "missing.csv"))

        assert exc_info.value.reason == "io_error"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_invalid_encoding(self, tmp_path: Path) -> None:
        path = tmp_path / "capture.csv"
        path.write_bytes(b"0,,,1.0,,,,,,IN,55\n\xff\xfe\xfa\n")

        with pytest.raises(SourceFatalError) as exc_info:
            list(read_trace(path))

        assert exc_info.value.reason == "encoding_error"

    def test_reading_is_lazy(self, tmp_path: Path) -> None:
        path = _write(tmp_path, PAYLOAD_ROW, SETUP_ROW)

        iterator = read_trace(path)

        assert next(iterator).marker == "0"
