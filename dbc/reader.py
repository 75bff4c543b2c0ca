# dbc/reader.py
"""
Binary record decoder.

`read_table` turns the complete contents of a DBC file into a `DbcTable` of
typed, immutable rows for one `TableSchema`. Decoding is all-or-nothing: the
header and the overall buffer shape are validated before any record is
touched, and any failure while decoding a record propagates out, so callers
never see a partial row list.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List

import structlog

from dbc.errors import InvalidHeaderError, MalformedDataError
from dbc.header import HEADER_SIZE, DbcHeader, parse_header
from dbc.keys import Key
from dbc.localized import StringBlock
from dbc.types import TableSchema

log = structlog.get_logger(__name__)


@dataclass
class DbcTable:
    """Decoded rows of one DBC file, in file order."""

    schema: TableSchema
    rows: List[Any]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.rows)

    @property
    def file_name(self) -> str:
        return self.schema.file_name

    def get(self, key: Key | int) -> Any | None:
        """
        Returns the row whose primary key equals `key`, or None.

        Accepts either a `Key` wrapper or its raw integer. Tables without a
        primary key never match.
        """
        primary = self.schema.primary_key
        if primary is None:
            return None
        wanted = key.id if isinstance(key, Key) else key
        for row in self.rows:
            value = getattr(row, primary.attribute)
            if (value.id if isinstance(value, Key) else value) == wanted:
                return row
        return None


def _check_shape(schema: TableSchema, header: DbcHeader, data_length: int):
    if header.record_size != schema.record_size:
        raise InvalidHeaderError(
            f"{schema.file_name}: header record size {header.record_size} "
            f"does not match the expected {schema.record_size}"
        )
    if header.field_count != schema.field_count:
        raise InvalidHeaderError(
            f"{schema.file_name}: header field count {header.field_count} "
            f"does not match the expected {schema.field_count}"
        )

    records_end = HEADER_SIZE + header.records_size
    if data_length < records_end:
        raise MalformedDataError(
            f"{schema.file_name}: buffer holds {data_length} bytes, "
            f"{header.record_count} records need {records_end}"
        )
    if data_length - records_end != header.string_block_size:
        raise MalformedDataError(
            f"{schema.file_name}: string block is {data_length - records_end} "
            f"bytes, header declares {header.string_block_size}"
        )


def read_table(schema: TableSchema, data: bytes) -> DbcTable:
    """
    Decodes a whole DBC file for `schema`.

    Args:
        - schema (TableSchema): The expected record layout.
        - data (bytes): The entire file contents.

    Returns:
        - A `DbcTable` with exactly `record_count` rows, in file order.

    Raises:
        - InvalidHeaderError: Bad magic, or record size / field count that do
          not match the schema.
        - MalformedDataError: Truncated records, a string block size that does
          not match the trailing bytes, or a string offset outside the block.
        - InvalidEnumError: An enum field holding an undeclared value.
    """
    header = parse_header(data)
    _check_shape(schema, header, len(data))

    records_end = HEADER_SIZE + header.records_size
    view = memoryview(data)
    strings = StringBlock(view[records_end:])
    row_type = schema.row_type
    slot_ranges = schema.slot_ranges

    rows = []
    if header.record_count:
        for raw in schema.record_struct.iter_unpack(view[HEADER_SIZE:records_end]):
            values = [f.type.decode(raw[start:end], strings) for f, start, end in slot_ranges]
            rows.append(row_type(*values))

    log.debug(
        "Decoded DBC table.",
        table=schema.name,
        rows=len(rows),
        string_block=header.string_block_size,
    )
    return DbcTable(schema, rows)
