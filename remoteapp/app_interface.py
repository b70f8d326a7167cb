"""Per-connection application hooks called by the server service."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class AppInterface:
    """Hooks for one connection; subclasses override what they handle."""

    def handle_event(self, event):
        """Called with connection event flags."""
        logger.warning(
            "%s.handle_event must be overridden in a subclass; event:%d",
            type(self).__name__,
            int(event),
        )

    def handle_read(self, handle, data):
        """Called with data received on the connection."""
        logger.info("handle:%s %s.handle_read:%r", handle, type(self).__name__, data)

    def handle_new_connection(self, handle, addr, transport):
        """Called once when the peer has connected."""
        logger.warning(
            "%s.handle_new_connection must be overridden in a subclass; handle:%s",
            type(self).__name__,
            handle,
        )

    def handle_connection_close(self, handle):
        """Called when the connection is closed."""
        logger.warning(
            "%s.handle_connection_close must be overridden in a subclass; handle:%s",
            type(self).__name__,
            handle,
        )


class RwOperation(AppInterface):
    """Plain connection handler that logs what it receives."""

    def __init__(self):
        self.handle = -1
        self.addr = ""
        self.transport = None

    def handle_event(self, event):
        logger.info("handle:%s event:%d", self.handle, int(event))

    def handle_read(self, handle, data):
        logger.info("handle:%s read:%r", handle, data)

    def handle_new_connection(self, handle, addr, transport):
        self.handle = handle
        self.addr = addr
        self.transport = transport

    def handle_connection_close(self, handle):
        if handle == self.handle:
            self.transport = None