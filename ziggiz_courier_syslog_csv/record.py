# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Structured log record and the builder that derives it from a datagram

# Standard library imports
from datetime import datetime
from typing import Optional

# Third-party imports
from pydantic import BaseModel, ConfigDict, Field

# Local/package imports
from ziggiz_courier_syslog_csv.protocol.priority import Priority

# Column order of the output store
FIELD_NAMES = ("event_time", "device_ip", "message", "severity", "facility")


class LogRecord(BaseModel):
    """
    One syslog datagram reduced to the columns of the output store.

    Attributes:
        event_time (str): Local receive time, "YYYY-MM-DD HH:MM:SS.mmm".
        device_ip (str): Source address of the datagram.
        message (str): Message text without newlines, trimmed.
        severity (int): Severity derived from the PRI value (0-7).
        facility (int): Facility derived from the PRI value (0-31).
    """

    model_config = ConfigDict(frozen=True)

    event_time: str
    device_ip: str
    message: str
    severity: int = Field(ge=0, le=7)
    facility: int = Field(ge=0, le=31)

    def as_row(self) -> list:
        """Return the field values in store column order."""
        return [getattr(self, name) for name in FIELD_NAMES]


def format_event_time(now: datetime) -> str:
    return now.isoformat(sep=" ", timespec="milliseconds")


def normalize_message(text: str) -> str:
    return text.replace("\n", "").strip()


def build_record(
    device_ip: str,
    text: str,
    priority: Priority,
    now: Optional[datetime] = None,
) -> LogRecord:
    """
    Build a LogRecord for a received message.

    Args:
        device_ip: Source address of the datagram
        text: The decoded datagram text
        priority: Facility and severity parsed from the text
        now: Receive time; defaults to the current local time

    Returns:
        The immutable LogRecord
    """
    if now is None:
        now = datetime.now()
    return LogRecord(
        event_time=format_event_time(now),
        device_ip=device_ip,
        message=normalize_message(text),
        severity=priority.severity,
        facility=priority.facility,
    )
