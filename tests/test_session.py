import h2.config
import h2.connection
import pytest

from remoteapp.events import BufferEventFlag
from remoteapp.session import SessionData, SessionError


def _client():
    conn = h2.connection.H2Connection(
        config=h2.config.H2Configuration(client_side=True, header_encoding="utf-8")
    )
    conn.initiate_connection()
    return conn


def _request(path, end_stream):
    client = _client()
    client.send_headers(
        1,
        [
            (":method", "GET"),
            (":path", path),
            (":scheme", "https"),
            (":authority", "example.com"),
        ],
        end_stream=end_stream,
    )
    return client, client.data_to_send()


@pytest.fixture
def session():
    sess = SessionData()
    sess.handle_new_connection(7, "127.0.0.1", None)
    sess.init()
    return sess


def test_read_before_init_raises():
    sess = SessionData()
    with pytest.raises(SessionError):
        sess.handle_read(3, b"anything")


def test_invalid_preamble_raises(session):
    with pytest.raises(SessionError):
        session.handle_read(7, b"GET / HTTP/1.1\r\n\r\n" + b"x" * 30)


def test_headers_create_stream_and_decode_path(session):
    _, payload = _request("/a%20b?x=1", end_stream=False)
    assert session.handle_read(7, payload) == len(payload)
    assert session.is_stream_data_found(1)
    stream = session.get_stream_data(1)
    assert stream.request_path == "/a b"
    assert stream.fd == 7
    assert stream.stream_id == 1


def test_path_without_query_is_not_recorded(session):
    _, payload = _request("/index.html", end_stream=True)
    assert session.handle_read(7, payload) == len(payload)
    assert session.get_stream_data(1).request_path == ""


def test_finished_request_with_path_fails_to_respond(session):
    _, payload = _request("/file?x", end_stream=True)
    with pytest.raises(SessionError):
        session.handle_read(7, payload)
    assert session.get_stream_data(1).request_path == "/file"


def test_client_reset_closes_stream(session):
    client, payload = _request("/a?b", end_stream=False)
    session.handle_read(7, payload)
    assert session.is_stream_data_found(1)
    client.reset_stream(1, error_code=8)
    session.handle_read(7, client.data_to_send())
    assert not session.is_stream_data_found(1)


def test_on_request_recv_unknown_stream_is_ignored(session):
    session.on_request_recv(99)
    assert not session.is_stream_data_found(99)


def test_on_request_recv_with_path_raises(session):
    session.on_begin_headers(3)
    session.on_header(3, ":path", "/x?y")
    with pytest.raises(SessionError):
        session.on_request_recv(3)


def test_on_header_accepts_bytes(session):
    session.on_begin_headers(5)
    session.on_header(5, b":path", b"/p%41th?q")
    assert session.get_stream_data(5).request_path == "/pAth"


def test_on_header_ignores_other_names(session):
    session.on_begin_headers(5)
    session.on_header(5, ":method", "/x?y")
    assert session.get_stream_data(5).request_path == ""


def test_on_header_unknown_stream_raises(session):
    with pytest.raises(KeyError):
        session.on_header(11, ":path", "/x?y")


def test_stream_data_lifecycle(session):
    created = session.create_stream_data(9)
    assert session.get_stream_data(9) is created
    assert created.fd == session.handle
    session.on_stream_close(9, 0)
    assert not session.is_stream_data_found(9)
    with pytest.raises(KeyError):
        session.get_stream_data(9)


def test_delete_stream_data_removes_only_that_stream(session):
    session.create_stream_data(1)
    session.create_stream_data(3)
    session.delete_stream_data(1)
    assert not session.is_stream_data_found(1)
    assert session.is_stream_data_found(3)


def test_send_callback_returns_length(session):
    assert session.send_callback(b"abcdef") == 6
    assert session.send_callback(b"") == 0


def test_handle_new_connection_records_peer():
    sess = SessionData()
    marker = object()
    sess.handle_new_connection(12, "10.0.0.5", marker)
    assert sess.handle == 12
    assert sess.client_addr == "10.0.0.5"
    assert sess.transport is marker


def test_handle_event_returns_flags(session):
    flags = session.handle_event(BufferEventFlag.EOF | BufferEventFlag.READING)
    assert BufferEventFlag.EOF in flags
    assert BufferEventFlag.READING in flags
    assert BufferEventFlag.ERROR not in flags