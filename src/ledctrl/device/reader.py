"""Background task that keeps the device's output path drained.

The LED controller echoes and chatters on its serial line. Nobody
interprets those bytes, but if they are never read the device's
transmit buffer fills and it stalls. ``LinkReader`` reads them in a
loop and throws them away.
"""

from __future__ import annotations

import asyncio
import logging

from ledctrl.device.channel import SerialChannel, SerialReadError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 16
# Pause after a failed read so a dead device doesn't spin the loop
DEFAULT_ERROR_DELAY = 0.1


class LinkReader:
    """Reads and discards everything the device sends.

    A read error is logged and the loop carries on; it never ends the
    task. The only way out is :meth:`stop`, which sets a stop event the
    loop checks between reads.
    """

    def __init__(
        self,
        channel: SerialChannel,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        error_delay: float = DEFAULT_ERROR_DELAY,
    ) -> None:
        self._channel = channel
        self._chunk_size = chunk_size
        self._error_delay = error_delay
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.error_count = 0
        self.bytes_discarded = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the reader task on the running loop."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="ledctrl-link-reader")
        logger.info("Link reader started on %s", self._channel.device)

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        await task
        self._task = None
        logger.info(
            "Link reader stopped (%d bytes discarded, %d read errors)",
            self.bytes_discarded, self.error_count,
        )

    async def run(self) -> None:
        """Read until stopped."""
        while not self._stop_event.is_set():
            try:
                data = await self._channel.read(self._chunk_size)
            except SerialReadError as e:
                self.error_count += 1
                logger.error("Error while reading serial link: %s", e)
                await self._pause()
                continue
            except Exception:
                self.error_count += 1
                logger.exception("Unexpected error while reading serial link")
                await self._pause()
                continue
            if data:
                self.bytes_discarded += len(data)
                logger.debug("Read from serial: %s", data.decode("ascii", errors="replace"))

    async def _pause(self) -> None:
        if self._error_delay <= 0:
            # still yield so writers and the stop signal get a turn
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._error_delay)
        except asyncio.TimeoutError:
            pass
