"""Shared test fixtures for the ledctrl test suite.

Provides a fake pyserial port that records written bytes and replays
scripted reads, plus a SerialChannel already attached to it.
"""

from __future__ import annotations

import threading
import time

import pytest

from ledctrl.device.channel import SerialChannel


class FakeSerialPort:
    """Stands in for ``serial.Serial``.

    Writes go out one byte at a time with a tiny pause, so two writers
    running unguarded in executor threads would visibly interleave.
    """

    def __init__(self, *args: object, **kwargs: object) -> None:
        self.args = args
        self.kwargs = kwargs
        self.is_open = True
        self.wire = bytearray()
        self.writes: list[bytes] = []
        self.write_error: Exception | None = None
        self.write_result: int | None = None
        self.reads: list[bytes | Exception] = []
        self.read_calls = 0
        self.byte_delay = 0.0002
        self._wire_lock = threading.Lock()

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        for b in data:
            with self._wire_lock:
                self.wire.append(b)
            time.sleep(self.byte_delay)
        self.writes.append(bytes(data))
        return len(data) if self.write_result is None else self.write_result

    def flush(self) -> None:
        pass

    def read(self, size: int = 1) -> bytes:
        self.read_calls += 1
        if self.reads:
            item = self.reads.pop(0)
            if isinstance(item, Exception):
                raise item
            return item[:size]
        time.sleep(0.005)
        return b""

    def close(self) -> None:
        self.is_open = False


@pytest.fixture
def fake_port() -> FakeSerialPort:
    return FakeSerialPort()


@pytest.fixture
def channel(fake_port: FakeSerialPort) -> SerialChannel:
    """A SerialChannel wired to the fake port without calling open()."""
    ch = SerialChannel(device="/dev/ttyTEST", baudrate=9600)
    ch._port = fake_port  # type: ignore[assignment]
    return ch


@pytest.fixture
def expected_table() -> dict[str, str]:
    """Route -> wire command, written out literally."""
    return {
        "on": "LED_ON",
        "off": "LED_OFF",
        "intensity_plus": "LED_IP",
        "intensity_minus": "LED_IM",
        "white": "LED_WHITE",
        "red": "LED_RED",
        "green": "LED_GREEN",
        "blue": "LED_BLUE",
        "raw/on": "ULED_ON",
        "raw/off": "ULED_OFF",
        "raw/intensity_plus": "ULED_IP",
        "raw/intensity_minus": "ULED_IM",
        "raw/white": "ULED_WHITE",
        "raw/red": "ULED_RED",
        "raw/green": "ULED_GREEN",
        "raw/blue": "ULED_BLUE",
    }
