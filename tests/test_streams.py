import string
from urllib.parse import quote

import pytest

from remoteapp.streams import (
    StreamData,
    StreamTable,
    hex_to_uint,
    percent_decode,
)


@pytest.mark.parametrize("digit", list(string.hexdigits))
def test_hex_to_uint_matches_int_base16(digit):
    assert hex_to_uint(digit) == int(digit, 16)


@pytest.mark.parametrize("char", ["g", "G", "%", " ", "z"])
def test_hex_to_uint_non_hex_is_zero(char):
    assert hex_to_uint(char) == 0


def test_hex_to_uint_accepts_byte_values():
    assert hex_to_uint(ord("f")) == hex_to_uint("f")
    assert hex_to_uint(b"B") == hex_to_uint("B")


def test_hex_to_uint_rejects_multi_char():
    with pytest.raises(ValueError):
        hex_to_uint("ab")


def test_percent_decode_worked_example():
    assert percent_decode("/a%20b") == "/a b"


@pytest.mark.parametrize("text", ["/index.html", "/dir/file name.txt", "/x?y=1&z", "/über/%"])
def test_percent_decode_inverts_quote(text):
    assert percent_decode(quote(text)) == text


@pytest.mark.parametrize("value", ["%41", "ab", "", "%4"])
def test_short_values_are_unchanged(value):
    assert percent_decode(value) == value


@pytest.mark.parametrize("value", ["/ab%4", "/ab%zz", "/plain/path", "/a%g1b"])
def test_malformed_escapes_are_kept(value):
    assert percent_decode(value) == value


def test_percent_decode_escape_at_end():
    assert percent_decode("/a" + quote("?")) == "/a?"


def test_percent_decode_bytes_round_trip():
    raw = bytes(range(256))
    encoded = "".join(f"%{b:02X}" for b in raw).encode("ascii")
    assert percent_decode(encoded) == raw


def test_percent_decode_rejects_other_types():
    with pytest.raises(TypeError):
        percent_decode(42)


def test_table_create_and_get():
    table = StreamTable()
    created = table.create(1, 7)
    assert created == StreamData("", 1, 7)
    assert table.get(1) is created
    assert table.contains(1)
    assert 1 in table
    assert len(table) == 1


def test_table_missing_stream():
    table = StreamTable()
    table.create(3, 5)
    assert not table.contains(5)
    with pytest.raises(KeyError):
        table.get(5)


def test_table_delete_removes_all_matching():
    table = StreamTable()
    table.create(1, 4)
    table.create(3, 4)
    table.create(1, 4)
    table.delete(1)
    assert [s.stream_id for s in table] == [3]
    assert not table.contains(1)


def test_table_delete_absent_is_noop():
    table = StreamTable()
    table.create(1, 4)
    table.delete(9)
    assert len(table) == 1


def test_get_returns_first_and_is_mutable():
    table = StreamTable()
    first = table.create(5, 1)
    table.create(5, 2)
    got = table.get(5)
    assert got is first
    got.request_path = "/index.html"
    assert table.get(5).request_path == "/index.html"
    assert [s.stream_id for s in table] == [5, 5]