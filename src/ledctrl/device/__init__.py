"""Serial link to the LED controller.

The channel owns the open port and is the only code that touches it.
The link reader drains whatever the device sends back, and the
dispatcher turns command names into serialized writes.

Public API:
    SerialChannel -- Owned serial port with a serialized write side
    LinkReader -- Background task discarding inbound bytes
    CommandDispatcher -- Route name to wire command writer
"""

from ledctrl.device.channel import (
    SerialChannel,
    SerialChannelError,
    SerialOpenError,
    SerialReadError,
    SerialWriteError,
)
from ledctrl.device.commands import COMMAND_TABLE, CommandDispatcher, UnknownCommandError
from ledctrl.device.reader import LinkReader

__all__ = [
    "COMMAND_TABLE",
    "CommandDispatcher",
    "LinkReader",
    "SerialChannel",
    "SerialChannelError",
    "SerialOpenError",
    "SerialReadError",
    "SerialWriteError",
    "UnknownCommandError",
]
