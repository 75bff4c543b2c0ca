import struct

import pytest

from dbc.errors import InvalidHeaderError, MalformedDataError
from dbc.header import HEADER_SIZE, DbcHeader, parse_header


def test_parse_header_reads_little_endian_fields():
    data = struct.pack("<4s4I", b"WDBC", 3, 2, 8, 17) + b"\x00" * 41

    header = parse_header(data)

    assert header == DbcHeader(3, 2, 8, 17)
    assert header.records_size == 24
    assert header.file_size == HEADER_SIZE + 24 + 17


def test_header_to_bytes_round_trips():
    header = DbcHeader(1, 9, 40, 5)
    assert parse_header(header.to_bytes()) == header
    assert len(header.to_bytes()) == HEADER_SIZE


def test_parse_header_rejects_bad_magic():
    data = struct.pack("<4s4I", b"WDB2", 0, 0, 0, 0)
    with pytest.raises(InvalidHeaderError, match="magic"):
        parse_header(data)


def test_parse_header_rejects_short_buffer():
    with pytest.raises(InvalidHeaderError):
        parse_header(b"WDBC\x00\x00")


def test_invalid_header_is_malformed_data():
    with pytest.raises(MalformedDataError):
        parse_header(b"")
