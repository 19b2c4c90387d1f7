"""ledctrl -- HTTP control daemon for a serial-connected LED controller.

Exposes one POST endpoint per LED command and forwards each call as a
fixed ASCII command string over the serial link. Replies from the
device are drained in the background and discarded.
"""

__version__ = "0.1.0"
