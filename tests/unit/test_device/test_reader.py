"""Tests for the background link reader."""

from __future__ import annotations

import asyncio
import logging

import pytest
import serial

from ledctrl.device.channel import SerialChannel
from ledctrl.device.reader import DEFAULT_CHUNK_SIZE, LinkReader


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class TestLinkReaderInit:
    def test_defaults(self, channel: SerialChannel) -> None:
        reader = LinkReader(channel)
        assert reader._chunk_size == DEFAULT_CHUNK_SIZE
        assert not reader.is_running
        assert reader.error_count == 0
        assert reader.bytes_discarded == 0


class TestLinkReaderLoop:
    @pytest.mark.asyncio
    async def test_discards_incoming_bytes(self, channel: SerialChannel, fake_port) -> None:
        fake_port.reads = [b"LED_ON\r\n", b"OK"]
        reader = LinkReader(channel, chunk_size=16)
        reader.start()
        await _wait_until(lambda: reader.bytes_discarded == 10)
        assert reader.is_running
        await reader.stop()
        assert not reader.is_running

    @pytest.mark.asyncio
    async def test_reads_in_fixed_chunks(self, channel: SerialChannel, fake_port) -> None:
        fake_port.reads = [b"x" * 64]
        reader = LinkReader(channel, chunk_size=16)
        reader.start()
        await _wait_until(lambda: reader.bytes_discarded > 0)
        await reader.stop()
        assert reader.bytes_discarded == 16

    @pytest.mark.asyncio
    async def test_survives_consecutive_read_errors(
        self, channel: SerialChannel, fake_port, caplog: pytest.LogCaptureFixture
    ) -> None:
        errors = 5
        fake_port.reads = [serial.SerialException("read failed")] * errors + [b"still here"]
        reader = LinkReader(channel, error_delay=0)
        with caplog.at_level(logging.ERROR, logger="ledctrl.device.reader"):
            reader.start()
            await _wait_until(lambda: reader.bytes_discarded == len(b"still here"))
            assert reader.is_running
            await reader.stop()

        assert reader.error_count == errors
        error_logs = [r for r in caplog.records if "Error while reading serial link" in r.getMessage()]
        assert len(error_logs) == errors
        assert fake_port.read_calls > errors

    @pytest.mark.asyncio
    async def test_survives_unexpected_read_exception(
        self, channel: SerialChannel, fake_port, caplog: pytest.LogCaptureFixture
    ) -> None:
        fake_port.reads = [RuntimeError("driver bug"), b"ok"]
        reader = LinkReader(channel, error_delay=0)
        with caplog.at_level(logging.ERROR, logger="ledctrl.device.reader"):
            reader.start()
            await _wait_until(lambda: reader.bytes_discarded == 2)
            assert reader.is_running
            await reader.stop()
        assert reader.error_count == 1
        assert "driver bug" in caplog.text

    @pytest.mark.asyncio
    async def test_keeps_going_when_device_is_closed(self) -> None:
        ch = SerialChannel("/dev/ttyUSB0")
        reader = LinkReader(ch, error_delay=0.001)
        reader.start()
        await _wait_until(lambda: reader.error_count >= 3)
        assert reader.is_running
        await reader.stop()


class TestLinkReaderStop:
    @pytest.mark.asyncio
    async def test_stop_without_start(self, channel: SerialChannel) -> None:
        reader = LinkReader(channel)
        await reader.stop()
        assert not reader.is_running

    @pytest.mark.asyncio
    async def test_stop_interrupts_error_backoff(self) -> None:
        ch = SerialChannel("/dev/ttyUSB0")
        reader = LinkReader(ch, error_delay=30.0)
        reader.start()
        await _wait_until(lambda: reader.error_count >= 1)
        await asyncio.wait_for(reader.stop(), timeout=1.0)
        assert not reader.is_running

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, channel: SerialChannel) -> None:
        reader = LinkReader(channel)
        reader.start()
        task = reader._task
        reader.start()
        assert reader._task is task
        await reader.stop()

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, channel: SerialChannel, fake_port) -> None:
        reader = LinkReader(channel)
        reader.start()
        await reader.stop()
        fake_port.reads = [b"again"]
        reader.start()
        await _wait_until(lambda: reader.bytes_discarded == 5)
        await reader.stop()
