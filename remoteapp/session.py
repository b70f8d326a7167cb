"""HTTP/2 server session bound to one client connection."""

from __future__ import annotations

import logging

import h2.config
import h2.connection
import h2.events
import h2.exceptions

from .app_interface import AppInterface
from .events import BufferEventFlag
from .streams import StreamData, StreamTable, percent_decode

logger = logging.getLogger(__name__)

PATH_HEADER = ":path"


class SessionError(RuntimeError):
    """Raised when the HTTP/2 session cannot process its input."""


class SessionData(AppInterface):
    """Per-connection HTTP/2 state: the protocol session and its streams."""

    def __init__(self):
        self.session: h2.connection.H2Connection | None = None
        self.streams = StreamTable()
        self.client_addr = ""
        self.handle = -1
        self.transport = None

    # Stream bookkeeping

    def create_stream_data(self, stream_id) -> StreamData:
        """Record a new stream on this connection."""
        return self.streams.create(stream_id, self.handle)

    def is_stream_data_found(self, stream_id) -> bool:
        """Whether a stream with ``stream_id`` is recorded."""
        return self.streams.contains(stream_id)

    def delete_stream_data(self, stream_id) -> None:
        """Forget the stream with ``stream_id``."""
        self.streams.delete(stream_id)

    def get_stream_data(self, stream_id) -> StreamData:
        """Return the stream with ``stream_id``; raise KeyError if absent."""
        return self.streams.get(stream_id)

    # Session setup

    def init(self):
        """Create the server-side protocol session."""
        config = h2.config.H2Configuration(client_side=False, header_encoding="utf-8")
        self.session = h2.connection.H2Connection(config=config)
        self.session.initiate_connection()

    # Protocol callbacks

    def on_request_recv(self, stream_id):
        """Handle a request whose stream has ended on the client side."""
        if not self.is_stream_data_found(stream_id):
            logger.info("stream data not present for stream_id:%d", stream_id)
            return
        stream = self.get_stream_data(stream_id)
        if not stream.request_path:
            logger.info("request_path is empty for stream_id:%d", stream_id)
            return
        logger.info("peer:%s GET %s", self.client_addr, stream.request_path)
        raise SessionError(f"unable to send response for stream-id:{stream.stream_id}")

    def send_callback(self, data) -> int:
        """Accept outgoing session bytes; returns how many were taken."""
        return len(data)

    def on_frame_recv(self, event):
        """Handle a fully received frame event."""
        if isinstance(event, h2.events.StreamEnded):
            if not self.is_stream_data_found(event.stream_id):
                return
            self.on_request_recv(event.stream_id)

    def on_stream_close(self, stream_id, error_code):
        """Drop the state of a closed stream."""
        self.delete_stream_data(stream_id)
        logger.info("stream_id:%d closed error_code:%s", stream_id, error_code)

    def on_header(self, stream_id, name, value):
        """Handle one request header field of ``stream_id``."""
        if isinstance(name, (bytes, bytearray)):
            name = bytes(name).decode("utf-8", errors="surrogateescape")
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8", errors="surrogateescape")
        stream = self.get_stream_data(stream_id)
        if name == PATH_HEADER:
            path, sep, _ = value.partition("?")
            if sep:
                stream.request_path = percent_decode(path)

    def on_begin_headers(self, stream_id):
        """Start a new request stream."""
        self.create_stream_data(stream_id)
        logger.info("stream_id:%d created successfully", stream_id)

    def _dispatch(self, event):
        if isinstance(event, h2.events.RequestReceived):
            self.on_begin_headers(event.stream_id)
            for name, value in event.headers:
                self.on_header(event.stream_id, name, value)
        elif isinstance(event, h2.events.DataReceived):
            self.session.acknowledge_received_data(
                event.flow_controlled_length, event.stream_id
            )
            self.on_frame_recv(event)
        elif isinstance(event, h2.events.StreamEnded):
            self.on_frame_recv(event)
        elif isinstance(event, h2.events.StreamReset):
            self.on_stream_close(event.stream_id, event.error_code)

    # Connection hooks

    def handle_event(self, event):
        flags = BufferEventFlag(event)
        if BufferEventFlag.CONNECTED in flags:
            logger.info("peer is connected")
        if BufferEventFlag.EOF in flags:
            logger.info("peer:%s for handle:%s is closed", self.client_addr, self.handle)
        elif BufferEventFlag.ERROR in flags:
            logger.info("peer:%s for handle:%s event error", self.client_addr, self.handle)
        elif BufferEventFlag.TIMEOUT in flags:
            logger.info("peer:%s for handle:%s event timed out", self.client_addr, self.handle)
        return flags

    def handle_read(self, handle, data) -> int:
        """Feed received bytes to the session; returns the number consumed."""
        if self.session is None:
            raise SessionError("session is not initialised")
        try:
            events = self.session.receive_data(bytes(data))
        except h2.exceptions.ProtocolError as exc:
            logger.error("handle:%s fatal error: %s", handle, exc)
            raise SessionError(str(exc)) from exc
        for event in events:
            self._dispatch(event)
        logger.debug("handle:%s readlen:%d", handle, len(data))
        return len(data)

    def handle_new_connection(self, handle, addr, transport):
        self.handle = handle
        self.client_addr = addr
        self.transport = transport

    def handle_connection_close(self, handle):
        logger.debug("handle:%s connection closed", handle)