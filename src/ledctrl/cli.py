"""Command-line interface for the ledctrl daemon.

Opens the serial device, then serves the HTTP control API. Any startup
failure (device cannot be opened, hostname is not an IP address) is
logged and ends the process before the listener binds.
"""

from __future__ import annotations

import argparse
import asyncio
import ipaddress
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

EXIT_STARTUP_FAILURE = 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ledctrl",
        description="Daemon to expose LED controller via HTTP API",
    )
    parser.add_argument(
        "-d", "--device",
        type=str,
        default=None,
        help="Serial link to the LED controller (e.g. /dev/ttyUSB0)",
    )
    parser.add_argument(
        "--hostname",
        type=str,
        default=None,
        help="IP address to bind the HTTP listener to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port to bind the HTTP listener to (default: 80)",
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        default=None,
        help="Serial baud rate (default: 9600)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/ledctrl.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def _validate_hostname(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError as e:
        logger.error("Cannot parse provided hostname! %s", e)
        return False
    return True


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ledctrl CLI."""
    args = parse_args(argv)

    from ledctrl.config.settings import load_settings
    from ledctrl.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.device:
        settings.serial.device = args.device
    if args.hostname:
        settings.http.host = args.hostname
    if args.port is not None:
        settings.http.port = args.port
    if args.baudrate is not None:
        settings.serial.baudrate = args.baudrate
    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if not settings.serial.device:
        logger.error("No serial device given (use --device or LEDCTRL_SERIAL__DEVICE)")
        sys.exit(EXIT_STARTUP_FAILURE)

    logger.info("Starting LED CTRL daemon...")

    if not _validate_hostname(settings.http.host):
        sys.exit(EXIT_STARTUP_FAILURE)

    from ledctrl.device.channel import SerialChannel, SerialOpenError

    sc = settings.serial
    channel = SerialChannel(
        device=sc.device,
        baudrate=sc.baudrate,
        read_timeout=sc.read_timeout,
        write_timeout=sc.write_timeout,
    )
    try:
        asyncio.run(channel.open())
    except SerialOpenError as e:
        logger.error("Cannot open specified device! %s", e)
        sys.exit(EXIT_STARTUP_FAILURE)

    from ledctrl.server import create_app
    import uvicorn

    app = create_app(
        channel=channel,
        line_terminator=sc.line_terminator,
        read_chunk_size=sc.read_chunk_size,
        reader_error_delay=sc.reader_error_delay,
    )
    logger.info("Starting HTTP listener on %s:%d...", settings.http.host, settings.http.port)
    uvicorn.run(
        app,
        host=settings.http.host,
        port=settings.http.port,
        lifespan="on",
        log_config=None,
    )


if __name__ == "__main__":
    main()
