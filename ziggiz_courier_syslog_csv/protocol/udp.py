# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# UDP receiver for the syslog CSV collector
#
# The receiver owns one non-blocking datagram socket and runs a single
# asyncio task that awaits loop.sock_recvfrom(). Each decoded datagram is
# handed to the ingestion queue; when the queue is full the receiver is
# suspended until a worker frees a slot.


# Standard library imports
import asyncio
import ipaddress
import logging
import socket

from typing import Any, Optional, Tuple

# Local/package imports
from ziggiz_courier_syslog_csv.ingestion import InboundMessage, IngestionQueue

DECODE_MODES = ("strict", "replace")

# Pause after a failed receive so a persistent socket error cannot starve the loop
ERROR_BACKOFF = 0.01


def format_source_address(addr: Tuple[Any, ...]) -> str:
    """
    Return the textual source address of a datagram.

    IPv4-mapped IPv6 addresses (from a dual-stack socket) are reported in
    their plain IPv4 form.
    """
    host = addr[0]
    try:
        ip = ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return host
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return str(ip.ipv4_mapped)
    return host


class SyslogUDPReceiver:
    """
    Receives syslog datagrams and enqueues (source, text) pairs.

    Args:
        queue: Destination for received messages
        host: Address to bind to
        port: Port to listen on (0 picks an ephemeral port)
        buffer_size: Maximum datagram size read per receive call
        socket_buffer_size: Optional SO_RCVBUF size to request
        decode_errors: "strict" drops datagrams that are not valid UTF-8,
            "replace" decodes them with replacement characters
    """

    def __init__(
        self,
        queue: IngestionQueue,
        host: str = "0.0.0.0",
        port: int = 514,
        buffer_size: int = 8192,
        socket_buffer_size: Optional[int] = None,
        decode_errors: str = "strict",
    ):
        if decode_errors not in DECODE_MODES:
            raise ValueError(
                f"Invalid decode mode: {decode_errors}. Must be one of {list(DECODE_MODES)}"
            )
        self.logger = logging.getLogger("ziggiz_courier_syslog_csv.protocol.udp")
        self.queue = queue
        self.host = host
        self.port = port
        self.buffer_size = buffer_size
        self.socket_buffer_size = socket_buffer_size
        self.decode_errors = decode_errors
        self.sock: Optional[socket.socket] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        if self.sock is None:
            return None
        sockname = self.sock.getsockname()
        return sockname[0], sockname[1]

    def bind(self) -> None:
        """
        Create and bind the datagram socket.

        Raises:
            OSError: If the socket cannot be created or bound
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            if family == socket.AF_INET6:
                # Accept IPv4 traffic as well on "::"
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            if self.socket_buffer_size:
                self._configure_buffer(sock)
            sock.setblocking(False)
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        self.sock = sock

        host, port = self.address
        self.logger.info(
            "UDP server started on address",
            extra={
                "net.transport": "ip_udp",
                "net.host.ip": host,
                "net.host.port": port,
            },
        )

    def _configure_buffer(self, sock: socket.socket) -> None:
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self.socket_buffer_size)
            actual_buffer_size = sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)
            self.logger.debug(
                "UDP receive buffer size configured",
                extra={
                    "requested_size": self.socket_buffer_size,
                    "actual_size": actual_buffer_size,
                },
            )
        except OSError as e:
            self.logger.warning(
                "Failed to set UDP receive buffer size",
                extra={"error": str(e), "requested_size": self.socket_buffer_size},
            )

    def start(self) -> None:
        if self.sock is None:
            self.bind()
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name="syslog-csv-receiver"
        )

    def decode(self, data: bytes) -> Optional[str]:
        try:
            return data.decode("utf-8", errors=self.decode_errors)
        except UnicodeDecodeError:
            return None

    async def run(self) -> None:
        """Receive datagrams until cancelled."""
        loop = asyncio.get_running_loop()
        while True:
            try:
                data, addr = await loop.sock_recvfrom(self.sock, self.buffer_size)
            except OSError as e:
                self.logger.error("Socket receive error", extra={"error": str(e)})
                await asyncio.sleep(ERROR_BACKOFF)
                continue

            await self.datagram_received(data, addr)

    async def datagram_received(self, data: bytes, addr: Tuple[Any, ...]) -> None:
        """
        Decode one datagram and enqueue it.

        Args:
            data: The datagram payload
            addr: The sender address tuple
        """
        host = format_source_address(addr)
        text = self.decode(data)
        if text is None:
            self.logger.debug(
                "Dropped UDP datagram with invalid encoding",
                extra={"host": host, "length": len(data)},
            )
            return

        if self.queue.full():
            self.logger.debug(
                "Ingestion queue full, waiting for a free slot", extra={"host": host}
            )
        try:
            await self.queue.put(InboundMessage(host, text))
        except Exception as e:
            self.logger.critical(
                "Failed to send to ingestion queue",
                extra={"host": host, "error": str(e)},
            )

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self.sock is not None:
            self.sock.close()
            self.sock = None
            self.logger.debug(
                "UDP server connection closed", extra={"net.transport": "ip_udp"}
            )
