# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tests for the bounded ingestion queue

# Standard library imports
import asyncio

# Third-party imports
import pytest

# Local/package imports
from ziggiz_courier_syslog_csv.ingestion import InboundMessage, IngestionQueue


class TestIngestionQueue:
    """Tests for IngestionQueue."""

    @pytest.mark.unit
    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            IngestionQueue(0)

    @pytest.mark.unit
    def test_initial_gauge(self, metrics):
        queue = IngestionQueue(10, metrics)
        assert queue.remaining_capacity == 10
        assert metrics.value("syslog_queue_size") == 10

    @pytest.mark.asyncio
    async def test_fifo_order(self):
        queue = IngestionQueue(5)
        for i in range(5):
            await queue.put(InboundMessage("10.0.0.1", f"<13>m{i}"))

        received = [(await queue.get()).text for _ in range(5)]
        assert received == [f"<13>m{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_gauge_tracks_remaining_capacity(self, metrics):
        queue = IngestionQueue(3, metrics)

        await queue.put(InboundMessage("10.0.0.1", "a"))
        await queue.put(InboundMessage("10.0.0.1", "b"))
        assert queue.depth == 2
        assert metrics.value("syslog_queue_size") == 1

        await queue.get()
        assert metrics.value("syslog_queue_size") == 2

        queue.get_nowait()
        assert metrics.value("syslog_queue_size") == 3
        with pytest.raises(asyncio.QueueEmpty):
            queue.get_nowait()

    @pytest.mark.asyncio
    async def test_backpressure(self):
        """A put beyond capacity stays pending until a consumer frees a slot."""
        capacity = 3
        queue = IngestionQueue(capacity)
        items = [InboundMessage("10.0.0.1", f"<13>m{i}") for i in range(capacity + 1)]

        puts = [asyncio.create_task(queue.put(item)) for item in items]
        await asyncio.sleep(0.05)

        assert queue.full()
        assert sum(task.done() for task in puts) == capacity
        assert not puts[-1].done()

        first = await queue.get()
        await asyncio.wait_for(asyncio.gather(*puts), timeout=1)

        assert first == items[0]
        drained = [await queue.get() for _ in range(capacity)]
        assert drained == items[1:]

    @pytest.mark.asyncio
    async def test_join_waits_for_task_done(self):
        queue = IngestionQueue(2)
        await queue.put(InboundMessage("10.0.0.1", "a"))
        await queue.get()

        join = asyncio.create_task(queue.join())
        await asyncio.sleep(0)
        assert not join.done()

        queue.task_done()
        await asyncio.wait_for(join, timeout=1)
        assert queue.empty()
