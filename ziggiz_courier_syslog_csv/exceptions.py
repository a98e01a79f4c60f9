# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Exception hierarchy for the syslog CSV collector


class CollectorError(Exception):
    """Base class for all errors raised by the collector pipeline."""


class PriorityParseError(CollectorError):
    """Raised when the PRI part of a syslog message cannot be parsed."""


class MissingPriorityDelimiterError(PriorityParseError):
    """Raised when the message has no '<' or no '>' after it."""

    def __init__(self, message: str = "no priority delimiter"):
        super().__init__(message)


class MalformedPriorityError(PriorityParseError):
    """Raised when the text between the PRI delimiters is not a valid value."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"malformed priority value: {value!r}")


class StoreWriteError(CollectorError):
    """
    Raised when a record could not be appended to the output store.

    The underlying OSError or csv.Error is available as ``__cause__``.
    """

    def __init__(self, path: str, error: Exception):
        self.path = path
        self.error = error
        super().__init__(f"Failed to write record to {path}: {error}")
