import os

from duml_trace import __version__

__all__ = [
    "DEFAULT_CSV_DELIMITER",
    "DEFAULT_DIRECTION_COLUMN",
    "DEFAULT_INBOUND_TOKEN",
    "DEFAULT_MARKER_COLUMN",
    "DEFAULT_OUTBOUND_TOKEN",
    "DEFAULT_PAYLOAD_COLUMN",
    "DEFAULT_PAYLOAD_MARKER",
    "DEFAULT_TIMESTAMP_COLUMN",
    "DUML_TRACE_DEBUG",
    "DUML_TRACE_LOG_FORMAT",
    "DUML_TRACE_LOG_HUMAN_OUTPUT",
    "DUML_TRACE_LOG_JSON_FILE",
    "DUML_TRACE_METRICS_PORT",
    "DUML_TRACE_PERF_THRESHOLD_MS",
    "DUML_TRACE_PERF_TRACKING",
    "DUML_TRACE_VERSION",
    "SYNC_BYTE",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
DUML_TRACE_VERSION: str = __version__

DUML_TRACE_DEBUG = os.environ.get("DUML_TRACE_DEBUG", "0").casefold() in YES_ANSWER

# Logging outputs; results go to stdout so human logs default to stderr
DUML_TRACE_LOG_FORMAT: str = os.environ.get("DUML_TRACE_LOG_FORMAT", "human").casefold()
_json_file = os.environ.get("DUML_TRACE_LOG_JSON_FILE")
DUML_TRACE_LOG_JSON_FILE: str | None = _json_file if _json_file else None
DUML_TRACE_LOG_HUMAN_OUTPUT: str = os.environ.get("DUML_TRACE_LOG_HUMAN_OUTPUT", "stderr")

DUML_TRACE_PERF_TRACKING: bool = os.environ.get("DUML_TRACE_PERF_TRACKING", "0").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("DUML_TRACE_PERF_THRESHOLD_MS", "500")
try:
    _perf_threshold_value: int = int(_perf_threshold) if _perf_threshold else 500
except ValueError:
    _perf_threshold_value = 500
DUML_TRACE_PERF_THRESHOLD_MS: int = _perf_threshold_value

_metrics_port = os.environ.get("DUML_TRACE_METRICS_PORT")
if not _metrics_port:
    _metrics_port_value: int | None = None
else:
    try:
        _metrics_port_value = int(_metrics_port)
    except ValueError:
        _metrics_port_value = None
DUML_TRACE_METRICS_PORT: int | None = _metrics_port_value

# Every DUML frame opens with this byte
SYNC_BYTE = 0x55

# USB analyzer CSV export layout
DEFAULT_CSV_DELIMITER = ","
DEFAULT_MARKER_COLUMN = 0
DEFAULT_PAYLOAD_MARKER = "0"
DEFAULT_TIMESTAMP_COLUMN = 3
DEFAULT_DIRECTION_COLUMN = 9
DEFAULT_PAYLOAD_COLUMN = 10
DEFAULT_INBOUND_TOKEN = "IN"
DEFAULT_OUTBOUND_TOKEN = "OUT"
