"""Command-line entry point: reassemble and pair the DUML packets of a capture.

Usage:
    # Full JSON report on stdout
    duml-trace capture.csv

    # Report to a file, custom CSV layout
    duml-trace --config layout.yaml --output report.json capture.csv

    # Counts only
    duml-trace --summary-only capture.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from duml_trace.config import load_config
from duml_trace.const import DUML_TRACE_VERSION
from duml_trace.correlation import run_context
from duml_trace.exceptions import ConfigError, SourceFatalError
from duml_trace.logging_abstraction import get_logger
from duml_trace.metrics import start_metrics_server
from duml_trace.pairing import ClassifiedOutput, pair_packets
from duml_trace.reassembly import StreamReassembler
from duml_trace.trace_reader import read_trace

logger = get_logger(__name__)


def port_number(value: str) -> int:
    port = int(value)
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="duml-trace",
        description="Reassemble DUML packets from a USB capture and pair requests with acknowledgements",
    )
    parser.add_argument("trace", type=Path, help="Analyzer CSV export")
    parser.add_argument("-c", "--config", type=Path, help="YAML file with the CSV layout")
    parser.add_argument("-o", "--output", type=Path, help="Write the JSON report here instead of stdout")
    parser.add_argument("--metrics-port", type=port_number, help="Expose Prometheus metrics on this port")
    parser.add_argument("--summary-only", action="store_true", help="Only log the result counts")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {DUML_TRACE_VERSION}")
    return parser


def write_report(result: ClassifiedOutput, output: Path | None) -> None:
    report = result.model_dump_json(by_alias=True, indent=2)
    if output is None:
        sys.stdout.write(report + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report + "\n")
    logger.info("Report written to %s", output)


def run(args: argparse.Namespace) -> int:
    """Process one trace. Returns the process exit code."""
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    metrics_port = args.metrics_port or config.metrics_port
    if metrics_port:
        try:
            start_metrics_server(metrics_port)
        except (OSError, OverflowError) as e:
            logger.error("Cannot expose metrics on port %d: %s", metrics_port, e)
            return 1
        logger.info("Metrics exposed on port %d", metrics_port)

    with run_context() as run_id:
        logger.info("Analyzing %s", args.trace, extra={"run_id": run_id})
        reassembler = StreamReassembler(config.trace_reader)
        try:
            packets = reassembler.reassemble(read_trace(args.trace, config.trace_reader))
        except SourceFatalError as e:
            logger.error("Aborting run: %s", e)
            return 1

        logger.info("# parsed packets: %d", len(packets))
        result = pair_packets(packets)

        if not args.summary_only:
            try:
                write_report(result, args.output)
            except OSError as e:
                logger.error("Cannot write report to %s: %s", args.output, e)
                return 1

        logger.info("# of Paired Packets: %d", len(result.paired))
        logger.info("# of Unpaired Packets: %d", len(result.unpaired))
        logger.info("# of Singular Packets: %d", len(result.singular))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logger.set_level(logging.DEBUG)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
