# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tests for the UDP receiver

# Standard library imports
import asyncio
import logging
import socket

from unittest.mock import MagicMock

# Third-party imports
import pytest

# Local/package imports
from ziggiz_courier_syslog_csv.ingestion import InboundMessage, IngestionQueue
from ziggiz_courier_syslog_csv.protocol.udp import (
    SyslogUDPReceiver,
    format_source_address,
)


def send_datagram(address, payload: bytes) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.sendto(payload, address)


class TestSyslogUDPReceiver:
    """Tests for SyslogUDPReceiver construction and helpers."""

    @pytest.mark.unit
    def test_init(self):
        receiver = SyslogUDPReceiver(IngestionQueue(1))
        assert receiver.logger.name == "ziggiz_courier_syslog_csv.protocol.udp"
        assert receiver.host == "0.0.0.0"
        assert receiver.port == 514
        assert receiver.buffer_size == 8192
        assert receiver.decode_errors == "strict"
        assert receiver.sock is None
        assert receiver.address is None

    @pytest.mark.unit
    def test_invalid_decode_mode(self):
        with pytest.raises(ValueError):
            SyslogUDPReceiver(IngestionQueue(1), decode_errors="ignore")

    @pytest.mark.unit
    def test_decode_strict(self):
        receiver = SyslogUDPReceiver(IngestionQueue(1))
        assert receiver.decode("<13>café".encode("utf-8")) == "<13>café"
        assert receiver.decode(b"<13>\xff\xfe bad") is None

    @pytest.mark.unit
    def test_decode_replace(self):
        receiver = SyslogUDPReceiver(IngestionQueue(1), decode_errors="replace")
        assert receiver.decode(b"<13>\xff bad") == "<13>� bad"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "addr,expected",
        [
            (("10.0.0.5", 514), "10.0.0.5"),
            (("2001:db8::1", 514, 0, 0), "2001:db8::1"),
            (("::ffff:10.0.0.5", 514, 0, 0), "10.0.0.5"),
            (("fe80::1%eth0", 514, 0, 2), "fe80::1%eth0"),
        ],
    )
    def test_format_source_address(self, addr, expected):
        assert format_source_address(addr) == expected

    @pytest.mark.unit
    def test_bind(self, caplog):
        caplog.set_level(logging.INFO)
        receiver = SyslogUDPReceiver(IngestionQueue(1), host="127.0.0.1", port=0)
        receiver.bind()
        try:
            host, port = receiver.address
            assert host == "127.0.0.1"
            assert port > 0
            assert receiver.sock.getblocking() is False
            assert "UDP server started on address" in caplog.text
        finally:
            receiver.sock.close()

    @pytest.mark.unit
    def test_bind_port_in_use(self):
        first = SyslogUDPReceiver(IngestionQueue(1), host="127.0.0.1", port=0)
        first.bind()
        try:
            second = SyslogUDPReceiver(
                IngestionQueue(1), host="127.0.0.1", port=first.address[1]
            )
            with pytest.raises(OSError):
                second.bind()
            assert second.sock is None
        finally:
            first.sock.close()

    @pytest.mark.unit
    def test_socket_buffer_size(self, caplog):
        caplog.set_level(logging.DEBUG)
        receiver = SyslogUDPReceiver(
            IngestionQueue(1), host="127.0.0.1", port=0, socket_buffer_size=65536
        )
        receiver.bind()
        try:
            assert receiver.sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF) > 0
            assert "UDP receive buffer size configured" in caplog.text
        finally:
            receiver.sock.close()


@pytest.mark.asyncio
class TestDatagramReceived:
    """Tests for the per-datagram hand-off to the ingestion queue."""

    async def test_enqueues_message(self):
        queue = IngestionQueue(2)
        receiver = SyslogUDPReceiver(queue)

        await receiver.datagram_received(b"<13>test message", ("10.0.0.5", 40000))

        assert await queue.get() == InboundMessage("10.0.0.5", "<13>test message")

    async def test_invalid_encoding_dropped(self, metrics):
        queue = IngestionQueue(2, metrics)
        receiver = SyslogUDPReceiver(queue)

        await receiver.datagram_received(b"<13>\xc3\x28", ("10.0.0.5", 40000))

        assert queue.empty()
        assert metrics.value("syslog_received_total") == 0

    async def test_full_queue_suspends_receiver(self):
        queue = IngestionQueue(1)
        receiver = SyslogUDPReceiver(queue)

        await receiver.datagram_received(b"<13>first", ("10.0.0.5", 40000))
        pending = asyncio.create_task(
            receiver.datagram_received(b"<13>second", ("10.0.0.6", 40000))
        )
        await asyncio.sleep(0.01)
        assert not pending.done()

        assert (await queue.get()).text == "<13>first"
        await asyncio.wait_for(pending, timeout=1)
        assert await queue.get() == InboundMessage("10.0.0.6", "<13>second")


@pytest.mark.integration
@pytest.mark.asyncio
class TestReceiverLoop:
    """Tests for the receive loop on a real socket."""

    async def test_receives_datagrams(self):
        queue = IngestionQueue(10)
        receiver = SyslogUDPReceiver(queue, host="127.0.0.1", port=0)
        receiver.start()
        try:
            send_datagram(receiver.address, b"<13>\xff invalid")
            send_datagram(receiver.address, b"<34>hello over udp")

            item = await asyncio.wait_for(queue.get(), timeout=2)
        finally:
            await receiver.stop()

        assert item == InboundMessage("127.0.0.1", "<34>hello over udp")
        assert queue.empty()
        assert receiver.sock is None

    async def test_oversized_datagram_truncated_to_buffer(self):
        queue = IngestionQueue(10)
        receiver = SyslogUDPReceiver(queue, host="127.0.0.1", port=0, buffer_size=16)
        receiver.start()
        try:
            send_datagram(receiver.address, b"<13>" + b"a" * 100)
            item = await asyncio.wait_for(queue.get(), timeout=2)
        finally:
            await receiver.stop()

        assert len(item.text) == 16

    async def test_stop_is_idempotent(self):
        receiver = SyslogUDPReceiver(IngestionQueue(1), host="127.0.0.1", port=0)
        receiver.start()
        await receiver.stop()
        await receiver.stop()
        assert receiver.sock is None

    async def test_receive_error_does_not_stop_loop(self, mocker, caplog):
        caplog.set_level(logging.ERROR)
        queue = IngestionQueue(10)
        receiver = SyslogUDPReceiver(queue)
        receiver.sock = MagicMock()
        loop = asyncio.get_running_loop()
        mocker.patch.object(
            loop,
            "sock_recvfrom",
            side_effect=[
                OSError("transient"),
                (b"<13>after error", ("10.0.0.9", 5140)),
                asyncio.CancelledError(),
            ],
        )

        with pytest.raises(asyncio.CancelledError):
            await receiver.run()

        assert "Socket receive error" in caplog.text
        assert await queue.get() == InboundMessage("10.0.0.9", "<13>after error")
