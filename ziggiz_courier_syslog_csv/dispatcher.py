# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Dispatcher: a fixed pool of workers that parse, build and persist messages
#
# Each worker takes one message off the ingestion queue and runs it through
# split_priority -> build_record -> RecordWriter as a single unit of work.
# Any failure is terminal to that message only: it is logged and the worker
# moves on to the next item.

# Standard library imports
import asyncio
import logging

from typing import List, Optional, Tuple

# Local/package imports
from ziggiz_courier_syslog_csv.exceptions import PriorityParseError, StoreWriteError
from ziggiz_courier_syslog_csv.ingestion import InboundMessage, IngestionQueue
from ziggiz_courier_syslog_csv.metrics import PipelineMetrics
from ziggiz_courier_syslog_csv.protocol.priority import (
    Priority,
    default_priority,
    split_priority,
)
from ziggiz_courier_syslog_csv.record import LogRecord, build_record
from ziggiz_courier_syslog_csv.relay import LocalSyslogRelay
from ziggiz_courier_syslog_csv.telemetry import get_tracer
from ziggiz_courier_syslog_csv.writer import RecordWriter

PARSE_POLICIES = ("reject", "default")


class Dispatcher:
    """
    Worker pool draining the ingestion queue.

    Args:
        queue: The queue filled by the receiver
        writer: The single owner of the output store
        metrics: Counters updated for every message
        worker_count: Number of concurrent workers
        parse_failure_policy: "reject" drops messages without a valid PRI,
            "default" stores them with severity 3 / facility 1
        relay: Optional relay that also forwards accepted records to the
            local syslog daemon
    """

    def __init__(
        self,
        queue: IngestionQueue,
        writer: RecordWriter,
        metrics: PipelineMetrics,
        worker_count: int = 4,
        parse_failure_policy: str = "reject",
        relay: Optional[LocalSyslogRelay] = None,
    ):
        if worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {worker_count}")
        if parse_failure_policy not in PARSE_POLICIES:
            raise ValueError(
                f"Invalid parse failure policy: {parse_failure_policy}. "
                f"Must be one of {list(PARSE_POLICIES)}"
            )
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.dispatcher")
        self.queue = queue
        self.writer = writer
        self.metrics = metrics
        self.worker_count = worker_count
        self.parse_failure_policy = parse_failure_policy
        self.relay = relay
        self.workers: List[asyncio.Task] = []
        self._busy = 0

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        for i in range(self.worker_count - len(self.workers)):
            self.workers.append(
                loop.create_task(self._worker(), name=f"syslog-csv-worker-{i}")
            )
        self.logger.info(f"Started {self.worker_count} dispatcher workers")

    async def _worker(self) -> None:
        while True:
            item = await self.queue.get()
            self._busy += 1
            try:
                await self.process(item)
            except Exception as e:
                self.logger.exception(
                    "Unexpected error processing log",
                    extra={"host": item.device_ip, "error": str(e)},
                )
            finally:
                self._busy -= 1
                self.queue.task_done()

    def resolve_priority(self, text: str) -> Tuple[Priority, str]:
        """
        Return the priority of a message and the text to store for it.

        Under the "default" policy a message without a valid PRI keeps its
        whole text and gets the default priority.

        Raises:
            PriorityParseError: If the PRI is invalid and the policy is "reject"
        """
        try:
            return split_priority(text)
        except PriorityParseError:
            if self.parse_failure_policy == "default":
                return default_priority(), text
            raise

    async def process(self, item: InboundMessage) -> Optional[LogRecord]:
        """
        Run one message through the pipeline.

        Returns:
            The written record, or None if the message was rejected or lost
        """
        self.metrics.received.inc()
        tracer = get_tracer()
        with tracer.start_as_current_span(
            "syslog.udp.message",
            attributes={
                "net.transport": "ip_udp",
                "net.peer.ip": item.device_ip,
                "message.length": len(item.text),
            },
        ):
            try:
                priority, body = self.resolve_priority(item.text)
            except PriorityParseError as e:
                self.logger.warning(
                    "Rejected syslog message",
                    extra={"host": item.device_ip, "error": str(e)},
                )
                return None

            record = build_record(item.device_ip, body, priority)
            if self.relay is not None:
                self.relay.forward(record)

            try:
                await self.writer.write(record)
            except StoreWriteError as e:
                self.logger.error(
                    "Error processing log",
                    extra={"host": item.device_ip, "error": str(e)},
                )
                return None
            except RuntimeError as e:
                self.logger.critical(
                    "Record writer unavailable",
                    extra={"host": item.device_ip, "error": str(e)},
                )
                return None

        self.metrics.written.inc()
        return record

    async def drain(self, timeout: float) -> int:
        """
        Wait for queued messages to be processed, then stop the workers.

        Messages still queued when the grace period expires are discarded.
        Messages a worker has already taken get one more bounded wait so
        their writes complete and are counted.

        Args:
            timeout: Seconds to wait for the queue to empty

        Returns:
            The number of messages that were not written or rejected
        """
        lost = 0
        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                "Shutdown grace period expired with messages pending",
                extra={"pending": self.queue.depth, "in_flight": self._busy},
            )
            lost += self._discard_queued()
            if self._busy:
                try:
                    await asyncio.wait_for(self.queue.join(), timeout=timeout)
                except asyncio.TimeoutError:
                    lost += self._busy
        await self.stop()
        return lost

    def _discard_queued(self) -> int:
        discarded = 0
        while True:
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return discarded
            self.queue.task_done()
            discarded += 1

    async def stop(self) -> None:
        for task in self.workers:
            task.cancel()
        if self.workers:
            await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers = []
        self.logger.debug("Dispatcher workers stopped")
