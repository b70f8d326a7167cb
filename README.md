# remoteapp

An asyncio-based event base with descriptor and timer events, a TCP server
that gives each accepted connection its own application object, and an
HTTP/2 server-side session (built on `h2`) that parses client requests and
records the request path of each stream.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
remoteapp
remoteapp --host 127.0.0.1 --port 9000
```

The command starts a `ServerService` listening on `--host` (default
`0.0.0.0`) and `--port` (default `8989`). For each client connection it
creates a `SessionData` and calls its `init()`. Logging goes to standard
error at INFO level. Press Ctrl-C to stop.

## Modules

### `remoteapp.events`

- `EventBase(priority=0)` owns its own asyncio loop. `run()` dispatches
  events until none is pending or `stop()` is called; it returns at once
  when nothing is pending and raises `EventError` if the loop is already
  running. It can be used as a context manager, which closes the loop.
- `Event(base, what=EventType.TIMEOUT, fd=-1, *, timeout=None, periodic=False)`
  watches a descriptor for `READ` and/or `WRITE`, and/or fires after a
  timeout. Without `EventType.PERSIST` it is removed after it fires once;
  with it, the event stays registered and its timer is re-armed.
  Override `handle_event(fd, what)` to do work. `add_event(timeout)` and
  `del_event()` register and remove it; `start_timer(seconds)` and
  `stop_timer()` do the same but raise `EventError` when the event has no
  descriptor. Timeouts may be numbers of seconds or `timedelta` values;
  negative values raise `ValueError`.
- `EventType` and `BufferEventFlag` are `IntFlag` enums naming event bits.
- `run_loop(base)` calls `base.run()`.

### `remoteapp.app_interface`

- `AppInterface` is the hook class for one connection:
  `handle_new_connection(handle, addr, transport)`,
  `handle_read(handle, data)`, `handle_event(event)` and
  `handle_connection_close(handle)`. The base implementations only log.
- `RwOperation` stores the handle, peer address and transport on connect
  and logs reads and events.

### `remoteapp.streams`

- `percent_decode(value)` decodes `%XX` escapes in a `str` or `bytes`
  value; values of three or fewer characters are returned unchanged.
- `hex_to_uint(c)` gives the value of a hex digit, or 0 for anything else.
- `StreamData` holds `request_path`, `stream_id` and `fd`; `StreamTable`
  keeps them in creation order with `create`, `contains`, `delete` and
  `get` (which raises `KeyError` for an unknown id).

### `remoteapp.session`

- `SessionData` is an `AppInterface`. `init()` creates a server-side `h2`
  connection. `handle_read(handle, data)` feeds bytes to it and returns
  the number consumed, raising `SessionError` if the session is not
  initialised or the input is not valid HTTP/2. A new request stream is
  recorded; its `:path` header sets `request_path` (percent-decoded, with
  the query removed) only when the path contains a `?`. Reset streams are
  forgotten.

### `remoteapp.service`

- `ServerService(base, host="0.0.0.0", port=8989, app_factory=RwOperation)`
  binds and listens when `start()` is called (returning the bound address)
  and accepts clients as the base runs. Each client gets a `Connection`
  and a fresh object from `app_factory`; reads go to `handle_read`,
  and end-of-file or an error is passed to `handle_event`, after which the
  connection is closed and `handle_connection_close` is called.
  `tx(handle, data)` queues data to a client and raises `KeyError` for an
  unknown handle. `close()` closes every client and the listener; the
  service is also a context manager.
- `main(argv=None)` is the `remoteapp` command.

## Example

```python
from remoteapp.events import EventBase
from remoteapp.app_interface import RwOperation
from remoteapp.service import ServerService

with EventBase() as base:
    with ServerService(base, "127.0.0.1", 8989, RwOperation) as service:
        print("listening on", service.address)
        base.run()
```

## What it does not do

- `SessionData` never writes anything back to the client: the bytes the
  `h2` connection produces (including its initial settings) are not sent,
  and no HTTP/2 response is ever produced. When a request with a recorded
  path ends, `on_request_recv` logs it and raises `SessionError`, which
  the server logs.
- There is no TLS and no ALPN negotiation; connections are plain TCP.
- Files are not served from disk.