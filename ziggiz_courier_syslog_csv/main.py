# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Main entry point for the syslog CSV collector

# Standard library imports
import argparse
import asyncio
import logging
import signal
import sys

from typing import Optional

# Local/package imports
from ziggiz_courier_syslog_csv.config import Config, configure_logging, load_config
from ziggiz_courier_syslog_csv.telemetry import configure_tracing


def setup_logging(log_level: str = "INFO", config: Optional[Config] = None) -> None:
    """
    Configure logging with appropriate formatters and handlers.

    Args:
        log_level: The logging level to set (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        config: Optional configuration object to use for logging setup
    """
    if config:
        configure_logging(config)
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


async def serve(config: Config) -> None:
    """
    Run the collector until SIGINT or SIGTERM is received.

    Args:
        config: The configuration object
    """
    # Local/package imports
    from ziggiz_courier_syslog_csv.server import SyslogCollector

    logger = logging.getLogger("ziggiz_courier_syslog_csv.main")
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def request_shutdown(signame: str) -> None:
        logger.info(f"Received {signame}, shutting down...")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform/loop; KeyboardInterrupt still applies
            pass

    collector = SyslogCollector(config)
    await collector.run_forever(shutdown_event)


def run_server(config: Optional[Config] = None) -> None:
    """
    Run the syslog collector.

    Args:
        config: Optional configuration object; defaults are used if omitted
    """
    logger = logging.getLogger("ziggiz_courier_syslog_csv.main")
    config = config or Config()

    try:
        configure_tracing(enable_console=config.enable_console_tracing)
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.exception(f"Failed to run server: {e}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ziggiz Courier Syslog CSV Collector")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides config file)",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host address to bind to (overrides config file)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help="UDP port to listen on (overrides config file)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Path of the CSV output file (overrides config file)",
    )
    parser.add_argument(
        "-m",
        "--metrics-port",
        type=int,
        help="Port of the Prometheus metrics endpoint, 0 disables it (overrides config file)",
    )
    parser.add_argument(
        "-q",
        "--queue-size",
        type=int,
        help="Capacity of the ingestion queue (overrides config file)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of dispatcher workers (overrides config file)",
    )
    parser.add_argument(
        "--parse-failure-policy",
        type=str,
        choices=["reject", "default"],
        help="Handling of messages without a valid PRI (overrides config file)",
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return a copy of the configuration with command line overrides applied."""
    overrides = {
        "log_level": args.log_level,
        "host": args.host,
        "port": args.port,
        "output_path": args.output,
        "metrics_port": args.metrics_port,
        "queue_size": args.queue_size,
        "worker_count": args.workers,
        "parse_failure_policy": args.parse_failure_policy,
    }
    values = config.model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})
    return Config(**values)


def main() -> None:
    """
    Main entry point for the syslog collector.
    Parses command-line arguments, sets up logging, and starts the collector.
    """
    args = build_parser().parse_args()

    try:
        config = apply_overrides(load_config(args.config), args)

        setup_logging(config=config)
        logger = logging.getLogger("ziggiz_courier_syslog_csv.main")

        if args.config:
            logger.info(f"Loaded configuration from {args.config}")
        else:
            logger.info("Using default or automatically detected configuration")

        logger.info("Starting Ziggiz Courier Syslog CSV Collector")
        run_server(config)
    except KeyboardInterrupt:
        logger = logging.getLogger("ziggiz_courier_syslog_csv.main")
        logger.info("Server shutdown requested by user")
    except Exception as e:
        # Setup basic logging if we couldn't load the configuration
        if not logging.root.handlers:
            setup_logging("ERROR")
        logger = logging.getLogger("ziggiz_courier_syslog_csv.main")
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
