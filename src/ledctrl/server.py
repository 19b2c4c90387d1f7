"""REST API server that fronts the LED controller.

Every command in the command table gets its own POST endpoint. A call
writes the command's fixed ASCII string to the serial link and returns
an empty response: 200 if the write went through, 500 if it failed.

Managed commands:

    POST /on  /off  /intensity_plus  /intensity_minus
    POST /white  /red  /green  /blue

Raw commands (same operations, ``ULED_`` prefix on the wire):

    POST /raw/on  /raw/off  /raw/intensity_plus  /raw/intensity_minus
    POST /raw/white  /raw/red  /raw/green  /raw/blue

Diagnostics:

    GET  /health          -> {"status": "ok", ...}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Mapping

import uvicorn
from fastapi import FastAPI, Response
from pydantic import BaseModel

from ledctrl import __version__
from ledctrl.device.channel import (
    DEFAULT_BAUDRATE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_WRITE_TIMEOUT,
    SerialChannel,
)
from ledctrl.device.commands import COMMAND_TABLE, DEFAULT_LINE_TERMINATOR, CommandDispatcher
from ledctrl.device.reader import DEFAULT_CHUNK_SIZE, DEFAULT_ERROR_DELAY, LinkReader

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = "ok"
    device: str = ""
    serial_open: bool = False
    reader_running: bool = False


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    device: str = "/dev/ttyUSB0",
    baudrate: int = DEFAULT_BAUDRATE,
    read_timeout: float = DEFAULT_READ_TIMEOUT,
    write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    line_terminator: str = DEFAULT_LINE_TERMINATOR,
    read_chunk_size: int = DEFAULT_CHUNK_SIZE,
    reader_error_delay: float = DEFAULT_ERROR_DELAY,
    channel: SerialChannel | None = None,
    commands: Mapping[str, str] = COMMAND_TABLE,
    start_reader: bool = True,
) -> FastAPI:
    """Create the LED control REST API application.

    Args:
        device: Serial device path, used when no channel is given.
        baudrate: Serial baud rate, used when no channel is given.
        read_timeout: Seconds a single background read may block.
        write_timeout: Seconds a command write may block.
        line_terminator: Appended to every wire command.
        read_chunk_size: Bytes requested per background read.
        reader_error_delay: Seconds to wait after a failed read.
        channel: Optional pre-configured SerialChannel (for testing, or
            opened up front by the CLI).
        commands: Route name -> wire command mapping.
        start_reader: Whether to drain the device in the background.
    """
    if channel is None:
        channel = SerialChannel(
            device=device,
            baudrate=baudrate,
            read_timeout=read_timeout,
            write_timeout=write_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        ch: SerialChannel = app.state.channel
        # An open failure propagates and aborts startup before the socket binds
        await ch.open()

        reader = None
        if start_reader:
            reader = LinkReader(
                ch, chunk_size=read_chunk_size, error_delay=reader_error_delay,
            )
            reader.start()
            app.state.reader = reader
        logger.info("LED control server started (device=%s)", ch.device)

        yield

        if reader is not None:
            await reader.stop()
        await ch.close()
        logger.info("LED control server stopped")

    app = FastAPI(
        title="ledctrl",
        description="HTTP control API for a serial-connected LED controller",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.channel = channel
    app.state.dispatcher = CommandDispatcher(
        channel, table=commands, line_terminator=line_terminator,
    )
    app.state.reader = None

    @app.get("/health")
    async def health_check() -> HealthResponse:
        ch: SerialChannel = app.state.channel
        reader: LinkReader | None = app.state.reader
        return HealthResponse(
            status="ok",
            device=ch.device,
            serial_open=ch.is_open,
            reader_running=reader.is_running if reader else False,
        )

    # -------------------------------------------------------------------
    # Command endpoints, one per table entry
    # -------------------------------------------------------------------

    def _command_endpoint(name: str) -> Callable[[], Awaitable[Response]]:
        async def send_command() -> Response:
            dispatcher: CommandDispatcher = app.state.dispatcher
            status = await dispatcher.dispatch(name)
            return Response(status_code=status)

        return send_command

    for name, wire in commands.items():
        app.add_api_route(
            f"/{name}",
            _command_endpoint(name),
            methods=["POST"],
            name=name.replace("/", "_"),
            summary=f"Send {wire}",
            response_class=Response,
        )

    return app


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def main(
    device: str = "/dev/ttyUSB0",
    host: str = "0.0.0.0",
    port: int = 80,
    baudrate: int = DEFAULT_BAUDRATE,
) -> None:
    """Run the LED control server."""
    app = create_app(device=device, baudrate=baudrate)
    uvicorn.run(app, host=host, port=port, lifespan="on")


if __name__ == "__main__":
    main()
