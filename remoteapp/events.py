"""Event loop primitives: an event base plus descriptor and timer events."""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import timedelta

logger = logging.getLogger(__name__)


class EventError(RuntimeError):
    """Raised when an event operation cannot be carried out."""


class EventType(enum.IntFlag):
    """Conditions an event waits for."""

    TIMEOUT = 0x01
    READ = 0x02
    WRITE = 0x04
    SIGNAL = 0x08
    PERSIST = 0x10
    ET = 0x20
    ALL = TIMEOUT | READ | WRITE | SIGNAL | PERSIST | ET


class BufferEventFlag(enum.IntFlag):
    """Conditions reported for a buffered connection."""

    READING = 0x01
    WRITING = 0x02
    EOF = 0x10
    ERROR = 0x20
    TIMEOUT = 0x40
    CONNECTED = 0x80


def _seconds(value) -> float:
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    else:
        seconds = float(value)
    if seconds < 0:
        raise ValueError(f"timeout must not be negative: {value!r}")
    return seconds


class EventBase:
    """Owns an asyncio loop and the set of pending events dispatched on it."""

    def __init__(self, priority=0):
        self.loop = asyncio.new_event_loop()
        self.priorities = priority if 0 < priority <= 255 else 1
        self._pending: set[Event] = set()
        self._done: asyncio.Future | None = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        if not self.loop.is_closed():
            self.loop.close()

    @property
    def pending(self) -> int:
        """Number of events currently waiting to fire."""
        return len(self._pending)

    def run(self):
        """Dispatch events until none is pending or stop() is called."""
        if self.loop.is_running():
            raise EventError("event loop is already running")
        if not self._pending:
            return
        self._done = self.loop.create_future()
        try:
            self.loop.run_until_complete(self._done)
        finally:
            self._done = None

    def stop(self):
        """Make a running dispatch return after the current callback."""
        if self._done is None:
            return
        if self.loop.is_running():
            self.loop.call_soon_threadsafe(self._finish)
        else:
            self._finish()

    def _finish(self):
        if self._done is not None and not self._done.done():
            self._done.set_result(None)

    def _attach(self, event):
        self._pending.add(event)

    def _detach(self, event):
        self._pending.discard(event)
        if self._done is not None and not self._pending:
            self.loop.call_soon(self._finish_if_idle)

    def _finish_if_idle(self):
        if not self._pending:
            self._finish()


class Event:
    """An event on a descriptor, a timer, or both; override handle_event."""

    def __init__(self, base, what=EventType.TIMEOUT, fd=-1, *, timeout=None, periodic=False):
        self.base = base
        self.what = EventType(what)
        self.fd = fd
        self.periodic = periodic
        self._timeout: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._watching = False
        self._pending = False
        self.add_event(timeout)

    def __bool__(self):
        return self.fd > 0

    @property
    def pending(self) -> bool:
        """Whether the event is registered with its base."""
        return self._pending

    def add_event(self, timeout=None):
        """Register the event, optionally with a timeout in seconds."""
        self._timeout = None if timeout is None else _seconds(timeout)
        self._cancel_timer()
        if self._timeout is not None:
            self._arm_timer()
        if not self._watching and self.fd >= 0:
            loop = self.base.loop
            if EventType.READ in self.what:
                loop.add_reader(self.fd, self._fire, EventType.READ)
                self._watching = True
            if EventType.WRITE in self.what:
                loop.add_writer(self.fd, self._fire, EventType.WRITE)
                self._watching = True
        self._pending = True
        self.base._attach(self)

    def del_event(self):
        """Remove the event from its base; it will not fire until added again."""
        self._cancel_timer()
        self._unwatch()
        if self._pending:
            self._pending = False
            self.base._detach(self)

    def handle_event(self, fd, what):
        """Called when the event fires; subclasses do their work here."""

    def start_timer(self, seconds):
        """(Re)arm the event's timeout."""
        if self.fd < 0:
            raise EventError("event has no descriptor")
        self.add_event(seconds)

    def stop_timer(self):
        """Disarm the event."""
        if self.fd < 0:
            raise EventError("event has no descriptor")
        self.del_event()

    def _arm_timer(self):
        self._timer = self.base.loop.call_later(self._timeout, self._on_timer)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self):
        self._timer = None
        self._fire(EventType.TIMEOUT)

    def _unwatch(self):
        if not self._watching:
            return
        loop = self.base.loop
        if EventType.READ in self.what:
            loop.remove_reader(self.fd)
        if EventType.WRITE in self.what:
            loop.remove_writer(self.fd)
        self._watching = False

    def _fire(self, what):
        if what == EventType.TIMEOUT:
            logger.warning("fd:%d event:%d msg:timeout", self.fd, int(what))
        if EventType.PERSIST in self.what:
            if self._timeout is not None:
                self._cancel_timer()
                self._arm_timer()
        else:
            self.del_event()
        self.handle_event(self.fd, what)


def run_loop(base):
    """Dispatch the events of ``base``."""
    base.run()