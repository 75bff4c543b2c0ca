# dbc/writer.py
"""
Encoder producing DBC files from decoded tables.

The output is not guaranteed to be byte-identical to the file a table was read
from, because the string block is rebuilt with `StringCache`, which shares
strings more aggressively than the client's own tooling. Reading the output
back always yields rows equal to the input rows.
"""

from typing import Dict

import structlog

from dbc.header import DbcHeader
from dbc.reader import DbcTable

log = structlog.get_logger(__name__)


class StringCache:
    """
    De-duplicating builder for a DBC string block.

    The block always starts with a single null byte so that the empty string
    sits at offset 0. Every added string also registers each of its suffixes
    (at UTF-8 character boundaries), so adding "bc" after "abc" reuses the tail
    of "abc" instead of appending new bytes.
    """

    def __init__(self):
        self._offsets: Dict[str, int] = {"": 0}
        self._buffer = bytearray(b"\x00")

    def add_string(self, text: str) -> int:
        """Returns the offset of `text`, appending it if it is not yet present."""
        offset = self._offsets.get(text)
        if offset is not None:
            return offset

        offset = len(self._buffer)
        self._buffer += text.encode("utf-8") + b"\x00"

        position = offset
        for i, char in enumerate(text):
            self._offsets.setdefault(text[i:], position)
            position += len(char.encode("utf-8"))
        return offset

    def size(self) -> int:
        return len(self._buffer)

    def buffer(self) -> bytes:
        return bytes(self._buffer)


def write_table(table: DbcTable) -> bytes:
    """
    Encodes `table` as a complete DBC file: header, records, string block.

    Raises:
        - struct.error: If a value does not fit its declared field type.
        - ValueError: If an array value has the wrong number of elements.
    """
    schema = table.schema
    record_struct = schema.record_struct
    strings = StringCache()

    records = bytearray()
    for row in table.rows:
        raw = []
        for f in schema.fields:
            raw.extend(f.type.encode(getattr(row, f.attribute), strings))
        records += record_struct.pack(*raw)

    header = DbcHeader(
        record_count=len(table.rows),
        field_count=schema.field_count,
        record_size=schema.record_size,
        string_block_size=strings.size(),
    )
    log.debug("Encoded DBC table.", table=schema.name, rows=len(table.rows))
    return header.to_bytes() + bytes(records) + strings.buffer()
