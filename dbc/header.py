# dbc/header.py
"""
The fixed 20 byte header found at the start of every DBC file.

Layout (all values little-endian):
    magic               4 bytes, always b"WDBC"
    record_count        uint32, number of rows
    field_count         uint32, number of 4 byte "columns" the client sees
    record_size         uint32, size of one row in bytes
    string_block_size   uint32, size of the trailing string block
"""

import struct
from dataclasses import dataclass

from dbc.errors import InvalidHeaderError

MAGIC = b"WDBC"
HEADER_SIZE = 20

_HEADER_STRUCT = struct.Struct("<4s4I")


@dataclass(frozen=True)
class DbcHeader:
    record_count: int
    field_count: int
    record_size: int
    string_block_size: int

    @property
    def records_size(self) -> int:
        """Total number of bytes taken by the records section."""
        return self.record_count * self.record_size

    @property
    def file_size(self) -> int:
        """Exact size of a well-formed file carrying this header."""
        return HEADER_SIZE + self.records_size + self.string_block_size

    def to_bytes(self) -> bytes:
        return _HEADER_STRUCT.pack(
            MAGIC,
            self.record_count,
            self.field_count,
            self.record_size,
            self.string_block_size,
        )


def parse_header(data: bytes) -> DbcHeader:
    """
    Parses the header at the start of `data`.

    Raises:
        - InvalidHeaderError: If fewer than 20 bytes are available or the
          magic is not `WDBC`.
    """
    if len(data) < HEADER_SIZE:
        raise InvalidHeaderError(
            f"Buffer too short for a DBC header: {len(data)} < {HEADER_SIZE} bytes"
        )

    magic, record_count, field_count, record_size, string_block_size = (
        _HEADER_STRUCT.unpack_from(data, 0)
    )
    if magic != MAGIC:
        raise InvalidHeaderError(f"Invalid DBC magic: {magic!r}, expected {MAGIC!r}")

    return DbcHeader(record_count, field_count, record_size, string_block_size)
