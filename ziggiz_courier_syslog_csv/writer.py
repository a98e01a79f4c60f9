# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Append-only CSV output store and its single owning writer task
#
# CsvStore implements the synchronous append contract: open for append,
# emit the header row when the file is empty at open, write one fully quoted
# row and flush. RecordWriter serializes every append through one asyncio
# task so the emptiness check and the first write are never raced by
# concurrent workers.

# Standard library imports
import asyncio
import csv
import logging
import os

from pathlib import Path
from typing import Optional, Union

# Local/package imports
from ziggiz_courier_syslog_csv.exceptions import StoreWriteError
from ziggiz_courier_syslog_csv.record import FIELD_NAMES, LogRecord


class CsvStore:
    """
    Append-only CSV file holding one row per LogRecord.

    All fields are double quoted; embedded quotes are doubled. The header row
    is written exactly once, by the first append to an empty file.
    """

    def __init__(self, path: Union[str, Path], fsync: bool = False):
        self.path = Path(path)
        self.fsync = fsync
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.writer")

    def append(self, record: LogRecord) -> bool:
        """
        Append one record to the store.

        Args:
            record: The record to serialize

        Returns:
            True if the header row was written ahead of the record

        Raises:
            StoreWriteError: If the file cannot be opened, written or flushed
        """
        try:
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                needs_header = os.fstat(f.fileno()).st_size == 0
                writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n")
                if needs_header:
                    writer.writerow(FIELD_NAMES)
                writer.writerow(record.as_row())
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
        except (OSError, csv.Error) as e:
            raise StoreWriteError(str(self.path), e) from e

        if needs_header:
            self.logger.info("Wrote header row", extra={"path": str(self.path)})
        return needs_header


_STOP = object()


class RecordWriter:
    """
    Single asyncio task that owns a CsvStore.

    Workers call write() and are suspended until their row has been flushed
    (or the append failed). Appends run in a worker thread so the event loop
    is not blocked on disk I/O.
    """

    def __init__(self, store: CsvStore):
        self.store = store
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.writer")
        self._pending: "asyncio.Queue[object]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="syslog-csv-writer"
        )
        self.logger.debug("Record writer started", extra={"path": str(self.store.path)})

    async def write(self, record: LogRecord) -> None:
        """
        Append a record through the owning task.

        Raises:
            StoreWriteError: If the append failed
            RuntimeError: If the writer is not running
        """
        if not self.running:
            raise RuntimeError("Record writer is not running")
        future: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()
        self._pending.put_nowait((record, future))
        await future

    async def _run(self) -> None:
        while True:
            item = await self._pending.get()
            if item is _STOP:
                break
            record, future = item
            # The caller was cancelled before its turn; it will never count
            # this row as written, so do not store it either
            if future.done():
                continue
            try:
                await asyncio.to_thread(self.store.append, record)
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(None)

    async def stop(self) -> None:
        """Flush all submitted records and stop the task."""
        if self._task is None:
            return
        if not self._task.done():
            self._pending.put_nowait(_STOP)
            await self._task
        self._task = None
        self.logger.debug("Record writer stopped")
