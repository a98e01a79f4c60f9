# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Collector implementation wiring the receiver, queue, workers and writer

# Standard library imports
import asyncio
import logging

from typing import Optional

# Local/package imports
from ziggiz_courier_syslog_csv.config import Config
from ziggiz_courier_syslog_csv.dispatcher import Dispatcher
from ziggiz_courier_syslog_csv.ingestion import IngestionQueue
from ziggiz_courier_syslog_csv.metrics import PipelineMetrics
from ziggiz_courier_syslog_csv.protocol.udp import SyslogUDPReceiver
from ziggiz_courier_syslog_csv.relay import LocalSyslogRelay
from ziggiz_courier_syslog_csv.writer import CsvStore, RecordWriter


class SyslogCollector:
    """
    AsyncIO implementation of the syslog CSV collector.

    This class manages the lifecycle of the ingestion pipeline:
    UDP receiver -> ingestion queue -> dispatcher workers -> record writer.
    """

    def __init__(
        self, config: Optional[Config] = None, metrics: Optional[PipelineMetrics] = None
    ):
        """
        Initialize the collector.

        Args:
            config: The configuration object
            metrics: Metrics context; a fresh one is created if omitted
        """
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.server")
        self.config = config or Config()
        self.metrics = metrics or PipelineMetrics()
        self.queue: Optional[IngestionQueue] = None
        self.writer: Optional[RecordWriter] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.receiver: Optional[SyslogUDPReceiver] = None
        self.relay: Optional[LocalSyslogRelay] = None

    async def start(self) -> None:
        """
        Start the collector.

        Raises:
            RuntimeError: If the collector fails to start
        """
        config = self.config
        self.logger.info(
            f"Starting syslog collector on {config.host}:{config.port}, "
            f"writing to {config.output_path}"
        )

        try:
            if config.metrics_enabled:
                self.metrics.start_exporter(config.metrics_host, config.metrics_port)
            if config.relay_to_local_syslog:
                self.relay = LocalSyslogRelay(config.local_syslog_address)

            self.queue = IngestionQueue(config.queue_size, self.metrics)
            self.writer = RecordWriter(CsvStore(config.output_path, fsync=config.fsync))
            self.dispatcher = Dispatcher(
                self.queue,
                self.writer,
                self.metrics,
                worker_count=config.worker_count,
                parse_failure_policy=config.parse_failure_policy,
                relay=self.relay,
            )
            self.receiver = SyslogUDPReceiver(
                self.queue,
                host=config.host,
                port=config.port,
                buffer_size=config.receive_buffer_size,
                socket_buffer_size=config.udp_socket_buffer_size,
                decode_errors=config.decode_errors,
            )
            self.receiver.bind()
        except Exception as e:
            self.logger.error(f"Failed to start syslog collector: {e}")
            self.dispatcher = None
            await self._release()
            raise RuntimeError(f"Failed to start syslog collector: {e}")

        self.writer.start()
        self.dispatcher.start()
        self.receiver.start()

    async def stop(self, grace_period: Optional[float] = None) -> None:
        """
        Stop the collector, giving queued messages time to be written.

        Args:
            grace_period: Seconds to wait for the queue to drain; defaults to
                the configured shutdown_grace_period
        """
        if grace_period is None:
            grace_period = self.config.shutdown_grace_period
        self.logger.info("Stopping syslog collector")

        if self.receiver:
            await self.receiver.stop()
            self.receiver = None

        if self.dispatcher:
            lost = await self.dispatcher.drain(grace_period)
            if lost:
                self.logger.warning(f"Discarded {lost} unwritten messages on shutdown")
            self.dispatcher = None

        await self._release()

    async def _release(self) -> None:
        if self.receiver:
            await self.receiver.stop()
            self.receiver = None
        if self.writer:
            await self.writer.stop()
            self.writer = None
        if self.relay:
            self.relay.close()
            self.relay = None
        self.metrics.stop_exporter()

    async def run_forever(self, shutdown_event: asyncio.Event) -> None:
        """
        Run the collector until the shutdown event is set.
        """
        await self.start()
        try:
            await shutdown_event.wait()
        except asyncio.CancelledError:
            self.logger.info("Collector task cancelled")
        finally:
            await self.stop()
