"""YAML configuration for the trace reader and CLI.

Example file::

    trace_reader:
      delimiter: ","
      payload_marker: "0"
      timestamp_column: 3
      direction_column: 9
      payload_column: 10
    metrics_port: 9400
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import BaseModel, Field, ValidationError

from duml_trace import const
from duml_trace.const import (
    DEFAULT_CSV_DELIMITER,
    DEFAULT_DIRECTION_COLUMN,
    DEFAULT_INBOUND_TOKEN,
    DEFAULT_MARKER_COLUMN,
    DEFAULT_OUTBOUND_TOKEN,
    DEFAULT_PAYLOAD_COLUMN,
    DEFAULT_PAYLOAD_MARKER,
    DEFAULT_TIMESTAMP_COLUMN,
)
from duml_trace.exceptions import ConfigError

logger = logging.getLogger(__name__)


class TraceReaderConfig(BaseModel):
    """Column layout of the analyzer CSV export."""

    delimiter: str = Field(default=DEFAULT_CSV_DELIMITER, min_length=1, max_length=1)
    marker_column: int = Field(default=DEFAULT_MARKER_COLUMN, ge=0)
    payload_marker: str = DEFAULT_PAYLOAD_MARKER
    timestamp_column: int = Field(default=DEFAULT_TIMESTAMP_COLUMN, ge=0)
    direction_column: int = Field(default=DEFAULT_DIRECTION_COLUMN, ge=0)
    payload_column: int = Field(default=DEFAULT_PAYLOAD_COLUMN, ge=0)
    inbound_token: str = Field(default=DEFAULT_INBOUND_TOKEN, min_length=1)
    outbound_token: str = Field(default=DEFAULT_OUTBOUND_TOKEN, min_length=1)


class AppConfig(BaseModel):
    trace_reader: TraceReaderConfig = TraceReaderConfig()
    metrics_port: Annotated[int, Field(ge=1, le=65535)] | None = None


def load_config(path: Path | None) -> AppConfig:
    """Load configuration from a YAML file, or the defaults when ``path`` is None.

    ``DUML_TRACE_METRICS_PORT`` fills in ``metrics_port`` when the file does
    not set it and is validated like a value from the file.

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or fails validation

    """
    config_data: dict = {} if path is None else _read_yaml(path)
    if const.DUML_TRACE_METRICS_PORT is not None:
        config_data.setdefault("metrics_port", const.DUML_TRACE_METRICS_PORT)

    try:
        return AppConfig.model_validate(config_data)
    except ValidationError as e:
        source = str(path) if path is not None else "<environment>"
        raise ConfigError(f"invalid_values: {e.error_count()} error(s)", source) from e


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config file: %s", path)
    try:
        with path.open() as f:
            config_data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError("unreadable", str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError("invalid_yaml", str(path)) from e

    if config_data is None:
        logger.warning("Config file %s is empty, using defaults", path)
        return {}
    if not isinstance(config_data, dict):
        raise ConfigError("not_a_mapping", str(path))
    return config_data
