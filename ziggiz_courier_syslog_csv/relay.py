# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Relay of accepted records to the local syslog daemon

# Standard library imports
import logging
import logging.handlers
import sys

from typing import Optional, Tuple, Union

# Local/package imports
from ziggiz_courier_syslog_csv.record import LogRecord

RELAY_IDENT = "syslog-server"


class RelaySysLogHandler(logging.handlers.SysLogHandler):
    """
    SysLogHandler that reports send failures on the collector's logger.

    The stdlib handler never raises from emit(); it passes socket errors to
    handleError(), which by default only prints a traceback to stderr.
    """

    def __init__(self, error_logger: logging.Logger, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_logger = error_logger

    def handleError(self, record: logging.LogRecord) -> None:
        error = sys.exc_info()[1]
        extra = {"error": str(error)}
        if isinstance(record.args, tuple) and record.args:
            extra["host"] = record.args[0]
        self.error_logger.warning("Failed to relay record to local syslog", extra=extra)


class LocalSyslogRelay:
    """
    Forwards every accepted record to the local syslog daemon.

    Each record is emitted at ERROR priority on the "syslog" facility as
    "[<device_ip>] <message>". The relay uses a private, non-propagating
    logger so that relayed lines never reach the collector's own log output.
    """

    def __init__(
        self,
        address: Union[str, Tuple[str, int]] = "/dev/log",
        handler: Optional[logging.Handler] = None,
    ):
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.relay")
        if handler is None:
            handler = RelaySysLogHandler(
                self.logger,
                address=address,
                facility=logging.handlers.SysLogHandler.LOG_SYSLOG,
            )
            handler.ident = f"{RELAY_IDENT}: "
        self.handler = handler
        self._relay_logger = logging.getLogger(f"{RELAY_IDENT}.relay.{id(self)}")
        self._relay_logger.propagate = False
        self._relay_logger.setLevel(logging.ERROR)
        self._relay_logger.addHandler(self.handler)

    def forward(self, record: LogRecord) -> None:
        self._relay_logger.error("[%s] %s", record.device_ip, record.message)

    def close(self) -> None:
        self._relay_logger.removeHandler(self.handler)
        self.handler.close()
