import struct

import pytest

from dbc.localized import ExtendedLocalizedString, LocalizedString
from dbc.reader import DbcTable, read_table
from dbc.types import SCALARS, Array, Field, LocalizedStringRef, StringRef, TableSchema, make_enum, make_key
from dbc.writer import StringCache, write_table
from helpers import build_dbc


def test_string_cache_starts_with_empty_string():
    cache = StringCache()
    assert cache.size() == 1
    assert cache.buffer() == b"\x00"
    assert cache.add_string("") == 0
    assert cache.size() == 1


def test_string_cache_deduplicates():
    cache = StringCache()
    assert cache.add_string("Hello") == 1
    assert cache.add_string("World") == 7
    assert cache.add_string("Hello") == 1
    assert cache.size() == 13


def test_string_cache_reuses_suffixes():
    cache = StringCache()
    assert cache.add_string("abc") == 1
    assert cache.add_string("bc") == 2
    assert cache.add_string("c") == 3
    # Same prefix but a different suffix.
    assert cache.add_string("a") == 5
    # A shorter string added first is not found inside a longer one added later.
    assert cache.add_string("3") == 7
    assert cache.add_string("23") == 9
    assert cache.add_string("123") == 12
    assert cache.size() == 16
    assert len(cache.buffer()) == 16


def test_string_cache_suffixes_respect_character_boundaries():
    cache = StringCache()
    offset = cache.add_string("éa")
    # "a" starts after the two byte "é".
    assert cache.add_string("a") == offset + 2
    assert cache.size() == 1 + len("éa".encode("utf-8")) + 1


def test_written_file_reads_back_equal(text_schema):
    row_type = text_schema.row_type
    Key = text_schema.fields[0].type.wrapper
    table = DbcTable(
        text_schema,
        [
            row_type(Key(1), "Stormwind", ExtendedLocalizedString(en_gb="Stormwind", de_de="Sturmwind", flags=0xFF01FE)),
            row_type(Key(2), "", ExtendedLocalizedString(flags=7)),
        ],
    )

    data = write_table(table)

    assert read_table(text_schema, data) == table


def test_header_reflects_schema(id_value_schema):
    table = DbcTable(id_value_schema, [id_value_schema.row_type(1, 2)])

    data = write_table(table)

    magic, records, fields, size, strings = struct.unpack_from("<4s4I", data)
    assert (magic, records, fields, size, strings) == (b"WDBC", 1, 2, 8, 1)
    assert len(data) == 20 + 8 + 1


def test_reencoding_a_hand_built_file_preserves_values():
    kind = make_enum("Kind", SCALARS["int32"], {"none": 0, "some": 1})
    schema = TableSchema(
        "Everything",
        [
            Field("id", make_key(SCALARS["uint32"], "Everything", primary=True)),
            Field("kind", kind),
            Field("scale", SCALARS["float"]),
            Field("values", Array(SCALARS["int16"], 2)),
            Field("path", StringRef()),
            Field("name", LocalizedStringRef(LocalizedString)),
        ],
    )
    strings = b"\x00a\\b\x00Name\x00"
    record = (
        struct.pack("<Iif2h", 9, 1, 0.25, -1, 300)
        + struct.pack("<I", 1)
        + struct.pack("<8I", 5, 0, 0, 0, 0, 0, 0, 0)
        + struct.pack("<I", 0)
    )
    original = build_dbc([record], schema.field_count, schema.record_size, strings)

    table = read_table(schema, original)
    reread = read_table(schema, write_table(table))

    assert reread == table
    row = reread.rows[0]
    assert row.scale == 0.25
    assert row.values == (-1, 300)
    assert row.path == "a\\b"
    assert row.name.en_gb == "Name"


def test_array_with_wrong_length_is_rejected():
    schema = TableSchema("Arr", [Field("values", Array(SCALARS["int32"], 2))])
    table = DbcTable(schema, [schema.row_type((1, 2, 3))])
    with pytest.raises(ValueError):
        write_table(table)
