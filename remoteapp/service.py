"""TCP server service dispatching connection activity to per-connection app objects."""

from __future__ import annotations

import argparse
import logging
import socket

from .app_interface import AppInterface, RwOperation
from .events import BufferEventFlag, Event, EventBase, EventType, run_loop
from .session import SessionData

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8989
LISTEN_BACKLOG = 16
_RECV_CHUNK = 65536


class _SocketEvent(Event):
    """Persistent read event on a descriptor that forwards to a callback."""

    def __init__(self, base, fd, callback):
        self._callback = callback
        super().__init__(base, EventType.READ | EventType.PERSIST, fd)

    def handle_event(self, fd, what):
        self._callback(what)


class Connection:
    """One accepted client: its socket, output buffer and application object."""

    def __init__(self, base, handle, peer_host, transport, app_interface: AppInterface):
        self.base = base
        self.handle = handle
        self.peer_host = peer_host
        self.transport = transport
        self.app_interface = app_interface
        self._out = bytearray()
        self._writing = False
        self._event: Event | None = None
        self._closed = False
        app_interface.handle_new_connection(handle, peer_host, self)

    @property
    def closed(self) -> bool:
        """Whether the connection has been closed."""
        return self._closed

    def enable(self, on_readable):
        """Start watching the socket for input; ``on_readable`` gets the event flags."""
        if self._event is None and not self._closed:
            self._event = _SocketEvent(self.base, self.transport.fileno(), on_readable)

    def recv(self):
        """Read all data currently available; returns ``(data, eof)``."""
        chunks = []
        eof = False
        while True:
            try:
                chunk = self.transport.recv(_RECV_CHUNK)
            except BlockingIOError:
                break
            if not chunk:
                eof = True
                break
            chunks.append(chunk)
        return b"".join(chunks), eof

    def tx(self, data) -> int:
        """Queue ``data`` for sending and return its length."""
        if self._closed:
            raise ConnectionError(f"connection {self.handle} is closed")
        payload = bytes(data)
        self._out += payload
        self._flush()
        return len(payload)

    def _flush(self):
        while self._out:
            try:
                sent = self.transport.send(self._out)
            except BlockingIOError:
                break
            del self._out[:sent]
        loop = self.base.loop
        if self._out and not self._writing:
            loop.add_writer(self.transport.fileno(), self._flush)
            self._writing = True
        elif not self._out and self._writing:
            loop.remove_writer(self.transport.fileno())
            self._writing = False

    def close(self):
        """Stop watching the socket and close it."""
        if self._closed:
            return
        self._closed = True
        if self._event is not None:
            self._event.del_event()
            self._event = None
        if self._writing:
            self.base.loop.remove_writer(self.transport.fileno())
            self._writing = False
        self._out.clear()
        self.transport.close()


class ServerService:
    """Listens on host:port and keeps one application object per client."""

    def __init__(self, base: EventBase, host=DEFAULT_HOST, port=DEFAULT_PORT, app_factory=RwOperation):
        self.base = base
        self.host = host
        self.port = port
        self.app_factory = app_factory
        self.connected_client: dict[int, Connection] = {}
        self.address = None
        self._listener: socket.socket | None = None
        self._listen_event: Event | None = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.close()

    def start(self):
        """Bind the listening socket and register it with the event base."""
        if self._listener is not None:
            return self.address
        infos = socket.getaddrinfo(
            self.host, self.port, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP
        )
        family, kind, proto, _, sockaddr = infos[0]
        listener = socket.socket(family, kind, proto)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(sockaddr)
            listener.listen(LISTEN_BACKLOG)
            listener.setblocking(False)
        except OSError:
            listener.close()
            raise
        self._listener = listener
        self.address = listener.getsockname()
        self._listen_event = _SocketEvent(self.base, listener.fileno(), self._on_acceptable)
        logger.info("listening on %s:%d", *self.address[:2])
        return self.address

    def close(self):
        """Close every client connection and the listener."""
        for handle in list(self.connected_client):
            self.connected_client.pop(handle).close()
        if self._listen_event is not None:
            self._listen_event.del_event()
            self._listen_event = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def create_app_interface(self):
        """Make a fresh application object for a new connection."""
        return self.app_factory()

    def _on_acceptable(self, what):
        while self._listener is not None:
            try:
                sock, addr = self._listener.accept()
            except BlockingIOError:
                return
            except OSError as exc:
                logger.error("accept failed: %s", exc)
                return
            sock.setblocking(False)
            self.accept_new_connection(sock.fileno(), addr[0], sock)

    def accept_new_connection(self, handle, peer_host, transport):
        """Register a newly connected client; returns its Connection, or None if the handle is taken."""
        if handle in self.connected_client:
            logger.warning("addition of new client failed for handle:%s", handle)
            return None
        conn = Connection(self.base, handle, peer_host, transport, self.create_app_interface())
        self.connected_client[handle] = conn
        conn.enable(lambda what, h=handle: self._on_readable(h))
        return conn

    def _on_readable(self, handle):
        conn = self.connected_client.get(handle)
        if conn is None:
            return
        try:
            data, eof = conn.recv()
        except OSError as exc:
            logger.error("handle:%s read failed: %s", handle, exc)
            self.on_event(handle, BufferEventFlag.READING | BufferEventFlag.ERROR)
            return
        if data:
            try:
                self.on_read(handle, data)
            except Exception:
                logger.exception("handle:%s failed to process input", handle)
        if eof:
            self.on_event(handle, BufferEventFlag.READING | BufferEventFlag.EOF)

    def on_read(self, handle, data):
        """Hand received data to the connection's application object."""
        logger.debug("handle:%s nbytes:%d %r", handle, len(data), data)
        conn = self.connected_client.get(handle)
        if conn is None:
            return None
        return conn.app_interface.handle_read(handle, data)

    def on_event(self, handle, events):
        """Report connection events; EOF or error closes and forgets the connection."""
        flags = BufferEventFlag(events)
        conn = self.connected_client.get(handle)
        if conn is not None:
            conn.app_interface.handle_event(flags)
        if BufferEventFlag.ERROR in flags:
            logger.error("error for handle:%s from connection", handle)
        if flags & (BufferEventFlag.EOF | BufferEventFlag.ERROR):
            conn = self.connected_client.pop(handle, None)
            if conn is not None:
                conn.close()
                conn.app_interface.handle_connection_close(handle)

    def tx(self, handle, data) -> int:
        """Send ``data`` to the client ``handle``; raises KeyError if it is unknown."""
        conn = self.connected_client.get(handle)
        if conn is None:
            raise KeyError(handle)
        return conn.tx(data)


def _http2_session():
    session = SessionData()
    session.init()
    return session


def main(argv=None):
    """Run the HTTP/2 server until interrupted."""
    parser = argparse.ArgumentParser(description="HTTP/2 server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    with EventBase() as base:
        service = ServerService(base, args.host, args.port, _http2_session)
        try:
            service.start()
            run_loop(base)
        except KeyboardInterrupt:
            pass
        finally:
            service.close()
    return 0