# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Configuration module for loading and parsing configuration files

# Standard library imports
import logging

from pathlib import Path
from typing import List, Optional, Union

# Third-party imports
import yaml

from pydantic import BaseModel, Field, field_validator


class LoggerConfig(BaseModel):
    """
    Configuration for individual loggers.

    Attributes:
        name (str): Logger name.
        level (str): Logging level (default: "INFO").
        propagate (bool): Whether to propagate logs to parent (default: True).
    """

    name: str
    level: str = "INFO"
    propagate: bool = True


class Config(BaseModel):
    """
    Main configuration class for the Ziggiz Courier Syslog CSV collector.

    This class defines all configuration options for the collector, including
    the UDP listener, the CSV output store, the ingestion pipeline, the
    metrics exporter and logging.
    """

    # Listener configuration
    host: str = "0.0.0.0"
    port: int = Field(default=514, ge=0, le=65535)
    receive_buffer_size: int = Field(default=8192, ge=1)  # Max datagram size read
    udp_socket_buffer_size: Optional[int] = Field(
        default=None, ge=1  # SO_RCVBUF to request (None keeps the OS default)
    )
    decode_errors: str = "strict"  # "strict" (drop) or "replace"

    # Output store configuration
    output_path: str = "syslog.csv"
    fsync: bool = False  # fsync after every flushed row

    # Pipeline configuration
    queue_size: int = Field(default=1000, ge=1)
    worker_count: int = Field(default=4, ge=1)
    parse_failure_policy: str = "reject"  # "reject" or "default"
    shutdown_grace_period: float = Field(default=5.0, ge=0)

    # Metrics exporter configuration
    metrics_host: str = "0.0.0.0"
    metrics_port: Optional[int] = Field(
        default=9000, ge=0, le=65535  # None or 0 disables the exporter
    )

    # Local syslog relay
    relay_to_local_syslog: bool = False
    local_syslog_address: str = "/dev/log"

    # Tracing
    enable_console_tracing: bool = False

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    loggers: List[LoggerConfig] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a valid Python logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("decode_errors")
    @classmethod
    def validate_decode_errors(cls, v: str) -> str:
        """Validate the datagram decoding mode."""
        valid_modes = ["strict", "replace"]
        v = v.lower()
        if v not in valid_modes:
            raise ValueError(f"Invalid decode mode: {v}. Must be one of {valid_modes}")
        return v

    @field_validator("parse_failure_policy")
    @classmethod
    def validate_parse_failure_policy(cls, v: str) -> str:
        """Validate the policy applied to messages without a valid PRI."""
        valid_policies = ["reject", "default"]
        v = v.lower()
        if v not in valid_policies:
            raise ValueError(
                f"Invalid parse failure policy: {v}. Must be one of {valid_policies}"
            )
        return v

    @property
    def metrics_enabled(self) -> bool:
        return bool(self.metrics_port)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, will look for config.yaml
                   in the current directory and default directories.

    Returns:
        A Config object containing the loaded configuration.

    Raises:
        FileNotFoundError: If the configuration file cannot be found.
        yaml.YAMLError: If the configuration file contains invalid YAML.
    """
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config.yml",
        Path("/etc/ziggiz-courier-syslog-csv/config.yaml"),
        Path("/etc/ziggiz-courier-syslog-csv/config.yml"),
    ]

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        for path in search_paths:
            if path.exists():
                config_file = path
                break
        else:
            logging.warning("No configuration file found, using default configuration")
            return Config()

    with open(config_file, "r") as f:
        try:
            config_data = yaml.safe_load(f) or {}
            return Config(**config_data)
        except yaml.YAMLError as e:
            logging.error("Error parsing configuration file", extra={"error": e})
            raise
        except Exception as e:
            logging.error("Error loading configuration", extra={"error": e})
            raise


class SafeExtraFormatter(logging.Formatter):
    """
    Custom formatter that substitutes missing extra fields with a blank string.
    """

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "host"):
            record.host = ""
        return super().format(record)


def configure_logging(config: "Config") -> None:
    """
    Configure logging based on the provided configuration.

    Args:
        config: The loaded configuration object.
    """
    # Reset logging configuration
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    level = getattr(logging, config.log_level, logging.INFO)
    formatter = SafeExtraFormatter(config.log_format, datefmt=config.log_date_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logging.root.setLevel(level)
    logging.root.addHandler(console_handler)

    for logger_config in config.loggers:
        logger = logging.getLogger(logger_config.name)
        logger.setLevel(getattr(logging, logger_config.level, logging.INFO))
        logger.propagate = logger_config.propagate
