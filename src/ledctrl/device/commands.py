"""Command table and dispatcher for the LED controller.

The firmware understands two parallel command namespaces with the same
eight operations: the managed family (``LED_*``) and the raw family
(``ULED_*``). Route names mirror the HTTP paths, without the leading
slash::

    on               -> LED_ON         raw/on               -> ULED_ON
    off              -> LED_OFF        raw/off              -> ULED_OFF
    intensity_plus   -> LED_IP         raw/intensity_plus   -> ULED_IP
    intensity_minus  -> LED_IM         raw/intensity_minus  -> ULED_IM
    white            -> LED_WHITE      raw/white            -> ULED_WHITE
    red              -> LED_RED        raw/red              -> ULED_RED
    green            -> LED_GREEN      raw/green            -> ULED_GREEN
    blue             -> LED_BLUE       raw/blue             -> ULED_BLUE
"""

from __future__ import annotations

import logging
from enum import Enum
from http import HTTPStatus
from types import MappingProxyType
from typing import Mapping

from ledctrl.device.channel import SerialChannel, SerialWriteError

logger = logging.getLogger(__name__)

DEFAULT_LINE_TERMINATOR = "\r\n"


class CommandFamily(str, Enum):
    """Firmware command namespace. The value is the wire prefix."""

    MANAGED = "LED"
    RAW = "ULED"

    @property
    def route_prefix(self) -> str:
        return "raw/" if self is CommandFamily.RAW else ""


# Route suffix -> wire suffix, shared by both families
ACTIONS: Mapping[str, str] = MappingProxyType({
    "on": "ON",
    "off": "OFF",
    "intensity_plus": "IP",
    "intensity_minus": "IM",
    "white": "WHITE",
    "red": "RED",
    "green": "GREEN",
    "blue": "BLUE",
})


class UnknownCommandError(KeyError):
    """Raised when dispatching a name that is not in the command table."""


def build_command_table() -> Mapping[str, str]:
    """Build the read-only route name -> wire command mapping."""
    table = {
        f"{family.route_prefix}{route}": f"{family.value}_{wire}"
        for family in CommandFamily
        for route, wire in ACTIONS.items()
    }
    return MappingProxyType(table)


COMMAND_TABLE: Mapping[str, str] = build_command_table()


def encode_command(wire_command: str, line_terminator: str = DEFAULT_LINE_TERMINATOR) -> bytes:
    """Encode a wire command as the exact bytes sent to the device."""
    return f"{wire_command}{line_terminator}".encode("ascii")


class CommandDispatcher:
    """Turns command names into serialized writes on the channel.

    Each dispatch is a single best-effort write: no retry, and the
    device's reply is not awaited.
    """

    def __init__(
        self,
        channel: SerialChannel,
        table: Mapping[str, str] = COMMAND_TABLE,
        line_terminator: str = DEFAULT_LINE_TERMINATOR,
    ) -> None:
        self._channel = channel
        self._table = table
        # Encoded once; the table never changes after startup
        self._payloads = {
            name: encode_command(wire, line_terminator) for name, wire in table.items()
        }

    @property
    def commands(self) -> Mapping[str, str]:
        return self._table

    def payload_for(self, name: str) -> bytes:
        """Return the bytes written for ``name``."""
        try:
            return self._payloads[name]
        except KeyError:
            raise UnknownCommandError(name) from None

    async def dispatch(self, name: str) -> HTTPStatus:
        """Send the command registered under ``name``.

        Returns:
            ``HTTPStatus.OK`` once the bytes are written, or
            ``HTTPStatus.INTERNAL_SERVER_ERROR`` if the write failed.

        Raises:
            UnknownCommandError: If ``name`` is not in the table.
        """
        payload = self.payload_for(name)
        wire = self._table[name]
        try:
            await self._channel.write_all(payload)
        except SerialWriteError as e:
            logger.error("Cannot write %s command to device! %s", wire, e)
            return HTTPStatus.INTERNAL_SERVER_ERROR
        logger.debug("Sent %s to %s", wire, self._channel.device)
        return HTTPStatus.OK
