# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Prometheus metrics for the syslog CSV collector
#
# The metric handles live on an explicit PipelineMetrics object with its own
# CollectorRegistry. Components receive it from the server instead of relying
# on module-level registration.

# Standard library imports
import logging

from typing import Optional

# Third-party imports
from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server


class PipelineMetrics:
    """
    Counters and gauge exposed by the collector.

    Attributes:
        received (Counter): Messages taken off the ingestion queue.
        written (Counter): Messages appended to the output store.
        queue_size (Gauge): Remaining capacity of the ingestion queue.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.received = Counter(
            "syslog_received_total",
            "Total number of logs received",
            registry=self.registry,
        )
        self.written = Counter(
            "syslog_written_total",
            "Total number of logs written",
            registry=self.registry,
        )
        self.queue_size = Gauge(
            "syslog_queue_size",
            "Current size of the log queue",
            registry=self.registry,
        )
        self._http_server = None
        self._http_thread = None
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.metrics")

    def value(self, name: str) -> Optional[float]:
        """Return the current value of a sample in this registry."""
        return self.registry.get_sample_value(name)

    def start_exporter(self, host: str, port: int) -> None:
        """
        Serve the registry over HTTP for Prometheus to scrape.

        Raises:
            OSError: If the port cannot be bound
        """
        self._http_server, self._http_thread = start_http_server(
            port, addr=host, registry=self.registry
        )
        self.logger.info(f"Metrics exporter listening on {host}:{port}")

    def stop_exporter(self) -> None:
        if self._http_server is None:
            return
        self._http_server.shutdown()
        self._http_server.server_close()
        if self._http_thread is not None:
            self._http_thread.join(timeout=5)
        self._http_server = None
        self._http_thread = None
        self.logger.debug("Metrics exporter stopped")
