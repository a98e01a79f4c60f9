# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Priority (PRI) parsing for BSD syslog messages
#
# The PRI value is the integer enclosed in angle brackets at the start of a
# syslog message, e.g. "<13>". It packs the facility in the upper five bits and
# the severity in the lower three bits.

# Standard library imports
import re

from typing import NamedTuple, Tuple

# Local/package imports
from ziggiz_courier_syslog_csv.exceptions import (
    MalformedPriorityError,
    MissingPriorityDelimiterError,
)

MAX_PRIORITY = 255
MAX_PRIORITY_DIGITS = len(str(MAX_PRIORITY))

# Fallback values for the "default" parse failure policy (ERROR / user-level)
DEFAULT_SEVERITY = 3
DEFAULT_FACILITY = 1

_DIGITS = re.compile(r"[0-9]+")


class Priority(NamedTuple):
    facility: int
    severity: int


def split_priority(message: str) -> Tuple[Priority, str]:
    """
    Split a syslog message into its PRI value and the text that follows it.

    The PRI is the text between the first '<' and the first '>' that follows
    it. It must consist of ASCII digits only and decode to a value in
    [0, 255].

    Args:
        message: The raw syslog message text

    Returns:
        A tuple of (Priority, remainder), where remainder is the message text
        after the closing '>'

    Raises:
        MissingPriorityDelimiterError: If either delimiter is absent
        MalformedPriorityError: If the PRI text is not a valid integer in range
    """
    start = message.find("<")
    if start < 0:
        raise MissingPriorityDelimiterError()
    end = message.find(">", start + 1)
    if end < 0:
        raise MissingPriorityDelimiterError()

    raw = message[start + 1 : end]
    if not _DIGITS.fullmatch(raw):
        raise MalformedPriorityError(raw)
    # int() refuses strings past the interpreter's digit limit, so length is
    # checked first; leading zeros count toward that limit and are dropped
    digits = raw.lstrip("0") or "0"
    if len(digits) > MAX_PRIORITY_DIGITS:
        raise MalformedPriorityError(raw)
    pri = int(digits)
    if pri > MAX_PRIORITY:
        raise MalformedPriorityError(raw)

    return Priority(facility=pri >> 3, severity=pri & 0x7), message[end + 1 :]


def parse_priority(message: str) -> Priority:
    """Extract facility and severity from the PRI part of a syslog message."""
    return split_priority(message)[0]


def default_priority() -> Priority:
    """Priority substituted for unparseable messages under the loose policy."""
    return Priority(facility=DEFAULT_FACILITY, severity=DEFAULT_SEVERITY)
