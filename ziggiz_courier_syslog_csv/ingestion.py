# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Bounded ingestion queue between the UDP receiver and the dispatcher workers

# Standard library imports
import asyncio

from typing import NamedTuple, Optional

# Local/package imports
from ziggiz_courier_syslog_csv.metrics import PipelineMetrics


class InboundMessage(NamedTuple):
    device_ip: str
    text: str


class IngestionQueue:
    """
    FIFO queue of received messages with a fixed capacity.

    put() suspends the producer while the queue is full, so nothing is ever
    dropped or overwritten. The remaining capacity is published to the
    queue gauge after every put and get.
    """

    def __init__(self, capacity: int, metrics: Optional[PipelineMetrics] = None):
        if capacity < 1:
            raise ValueError(f"Queue capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.metrics = metrics
        self._queue: "asyncio.Queue[InboundMessage]" = asyncio.Queue(maxsize=capacity)
        self._report()

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    @property
    def remaining_capacity(self) -> int:
        return self.capacity - self._queue.qsize()

    def full(self) -> bool:
        return self._queue.full()

    def empty(self) -> bool:
        return self._queue.empty()

    async def put(self, item: InboundMessage) -> None:
        await self._queue.put(item)
        self._report()

    async def get(self) -> InboundMessage:
        item = await self._queue.get()
        self._report()
        return item

    def get_nowait(self) -> InboundMessage:
        """
        Raises:
            asyncio.QueueEmpty: If nothing is queued
        """
        item = self._queue.get_nowait()
        self._report()
        return item

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued item has been marked done."""
        await self._queue.join()

    def _report(self) -> None:
        if self.metrics is not None:
            self.metrics.queue_size.set(self.remaining_capacity)
