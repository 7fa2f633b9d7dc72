"""Prometheus metrics registry for trace reassembly and pairing."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    start_http_server,
)

duml_trace_chunks_total: Final = Counter(  # type: ignore[assignment]
    "duml_trace_chunks_total",
    "Trace records handled by the reassembler",
    ["direction", "outcome"],
)

duml_trace_chunks_skipped_total: Final = Counter(  # type: ignore[assignment]
    "duml_trace_chunks_skipped_total",
    "Trace records skipped, by reason",
    ["reason"],
)

duml_trace_packets_decoded_total: Final = Counter(  # type: ignore[assignment]
    "duml_trace_packets_decoded_total",
    "Frames extracted from direction buffers",
    ["direction", "validity"],
)

duml_trace_decode_failures_total: Final = Counter(  # type: ignore[assignment]
    "duml_trace_decode_failures_total",
    "Extraction calls that stopped on a decode failure",
    ["direction", "reason"],
)

duml_trace_pairing_results_total: Final = Counter(  # type: ignore[assignment]
    "duml_trace_pairing_results_total",
    "Pairing engine output entries",
    ["outcome"],
)

duml_trace_buffer_bytes: Final = Gauge(  # type: ignore[assignment]
    "duml_trace_buffer_bytes",
    "Bytes carried over in a direction buffer",
    ["direction"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_chunk(direction: str, outcome: str) -> None:
    duml_trace_chunks_total.labels(direction=direction, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_chunk_skipped(reason: str) -> None:
    duml_trace_chunks_skipped_total.labels(reason=reason).inc()  # type: ignore[no-untyped-call]


def record_packet_decoded(direction: str, valid: bool) -> None:
    validity = "valid" if valid else "invalid"
    duml_trace_packets_decoded_total.labels(direction=direction, validity=validity).inc()  # type: ignore[no-untyped-call]


def record_decode_failure(direction: str, reason: str) -> None:
    duml_trace_decode_failures_total.labels(direction=direction, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_buffer_size(direction: str, size: int) -> None:
    duml_trace_buffer_bytes.labels(direction=direction).set(size)  # type: ignore[no-untyped-call]


def record_pairing_results(paired: int, unpaired: int, singular: int) -> None:
    """Record the sizes of the three pairing result sets."""
    duml_trace_pairing_results_total.labels(outcome="paired").inc(paired)  # type: ignore[no-untyped-call]
    duml_trace_pairing_results_total.labels(outcome="unpaired").inc(unpaired)  # type: ignore[no-untyped-call]
    duml_trace_pairing_results_total.labels(outcome="singular").inc(singular)  # type: ignore[no-untyped-call]
