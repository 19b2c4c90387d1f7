"""Serial channel to the LED controller.

Wraps a single pyserial port. The port is opened once and shared by
the whole process, but the raw ``serial.Serial`` object never leaves
this module: callers only get ``write_all`` and ``read``.

Writes are serialized by an asyncio lock so two commands can never
interleave on the wire. Reads do not take that lock; pyserial supports
one reading thread and one writing thread on the same port, so the
background reader and the writers run independently.

Blocking pyserial calls run in the event loop's default executor.
"""

from __future__ import annotations

import asyncio
import logging

import serial

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
# Reads return empty after this many seconds without data
DEFAULT_READ_TIMEOUT = 0.1
DEFAULT_WRITE_TIMEOUT = 1.0


class SerialChannelError(Exception):
    """Base class for serial channel failures."""

    def __init__(self, message: str, device: str = "") -> None:
        super().__init__(message)
        self.device = device


class SerialOpenError(SerialChannelError):
    """Raised when the serial device cannot be opened."""


class SerialWriteError(SerialChannelError):
    """Raised when a command cannot be written to the device."""


class SerialReadError(SerialChannelError):
    """Raised when reading from the device fails."""


async def _wait_uncancellable(fut: asyncio.Future) -> None:
    while not fut.done():
        try:
            await asyncio.wait([fut])
        except asyncio.CancelledError:
            continue


class SerialChannel:
    """Owns the open serial connection to the device.

    Usage::

        channel = SerialChannel("/dev/ttyUSB0", baudrate=9600)
        await channel.open()
        await channel.write_all(b"LED_ON\\r\\n")
        data = await channel.read(16)
        await channel.close()
    """

    def __init__(
        self,
        device: str,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self._device = device
        self._baudrate = baudrate
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._port: serial.Serial | None = None
        self._write_lock = asyncio.Lock()

    @property
    def device(self) -> str:
        return self._device

    @property
    def baudrate(self) -> int:
        return self._baudrate

    @property
    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    @property
    def write_locked(self) -> bool:
        """True while a writer holds the write side."""
        return self._write_lock.locked()

    async def open(self) -> None:
        """Open the serial device. Does nothing if already open."""
        if self.is_open:
            return
        try:
            loop = asyncio.get_running_loop()
            self._port = await loop.run_in_executor(None, self._open_port)
        except (serial.SerialException, OSError, ValueError) as e:
            raise SerialOpenError(
                f"Cannot open serial device {self._device}: {e}", device=self._device
            ) from e
        logger.info("Opened serial device %s at %d baud", self._device, self._baudrate)

    def _open_port(self) -> serial.Serial:
        return serial.Serial(
            port=self._device,
            baudrate=self._baudrate,
            timeout=self._read_timeout,
            write_timeout=self._write_timeout,
            exclusive=True,
        )

    async def close(self) -> None:
        """Close the device. Safe to call more than once.

        Waits for an in-flight write to finish before the port goes away.
        """
        async with self._write_lock:
            port = self._port
            if port is None:
                return
            self._port = None
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, port.close)
        except (serial.SerialException, OSError) as e:
            logger.warning("Error while closing serial device %s: %s", self._device, e)
        logger.info("Closed serial device %s", self._device)

    async def write_all(self, data: bytes) -> None:
        """Write the whole buffer as one uninterrupted unit.

        The write lock is held until the device write has finished, even
        if the calling task is cancelled meanwhile.

        Raises:
            SerialWriteError: If the device is closed, the write times
                out, or fewer bytes than requested were accepted.
        """
        async with self._write_lock:
            port = self._port
            if port is None or not port.is_open:
                raise SerialWriteError("Serial device not open", device=self._device)
            loop = asyncio.get_running_loop()
            fut = loop.run_in_executor(None, self._write_and_flush, port, data)
            try:
                written = await asyncio.shield(fut)
            except asyncio.CancelledError:
                # The worker thread keeps writing; hold the lock until it is done
                await _wait_uncancellable(fut)
                raise
            except (serial.SerialException, OSError) as e:
                raise SerialWriteError(
                    f"Failed to write to {self._device}: {e}", device=self._device
                ) from e
        if written is not None and written != len(data):
            raise SerialWriteError(
                f"Short write to {self._device}: {written} of {len(data)} bytes",
                device=self._device,
            )

    @staticmethod
    def _write_and_flush(port: serial.Serial, data: bytes) -> int | None:
        written = port.write(data)
        port.flush()
        return written

    async def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes.

        Returns ``b""`` if the read timeout expires with nothing received.
        Does not contend with writers.

        Raises:
            SerialReadError: If the device is closed or the read fails.
        """
        port = self._port
        if port is None or not port.is_open:
            raise SerialReadError("Serial device not open", device=self._device)
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, port.read, size)
        except (serial.SerialException, OSError) as e:
            raise SerialReadError(
                f"Failed to read from {self._device}: {e}", device=self._device
            ) from e

    async def __aenter__(self) -> SerialChannel:
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()
