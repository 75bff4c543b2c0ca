import struct

import pytest

from dbc.errors import MalformedDataError, StoreError, UnknownTableError
from dbc.reader import read_table
from processing.builder import (
    column_definitions,
    convert_table,
    create_table_statement,
    insert_statement,
    row_parameters,
)
from processing.registry import TableRegistry
from helpers import build_dbc


@pytest.fixture(scope="module")
def registry():
    return TableRegistry.load("vanilla")


def _item_class_file(rows):
    """ItemClass rows of (id, subclass_map, class, en_gb text)."""
    strings = bytearray(b"\x00")
    records = []
    for key, subclass_map, item_class, text in rows:
        offset = len(strings)
        strings += text.encode("utf-8") + b"\x00"
        records.append(
            struct.pack("<IIi", key, subclass_map, item_class)
            + struct.pack("<8I", offset, 0, 0, 0, 0, 0, 0, 0)
            + struct.pack("<I", 0xFF01FE)
        )
    return build_dbc(records, field_count=12, record_size=48, strings=bytes(strings))


def test_columns_are_flattened(registry):
    schema = registry.schema_for("CharStartOutfit.dbc")
    names = [column for column, _, _ in schema.columns()]

    assert names[:5] == ["id", "race", "class", "gender", "outfit_id"]
    assert names[5:7] == ["item_id_0", "item_id_1"]
    assert names[16] == "item_id_11"
    assert len(names) == 41


def test_localized_columns(registry):
    schema = registry.schema_for("QuestSort.dbc")
    definitions = column_definitions(schema)

    assert definitions[0] == '"id" INTEGER PRIMARY KEY NOT NULL'
    assert definitions[1] == '"name_en_gb" TEXT'
    assert definitions[8] == '"name_es_mx" TEXT'
    assert definitions[9] == '"name_flags" INTEGER'


def test_statements(registry):
    schema = registry.schema_for("SpellCategory.dbc")

    assert create_table_statement(schema) == (
        'CREATE TABLE IF NOT EXISTS "SpellCategory" (\n'
        '    "id" INTEGER PRIMARY KEY NOT NULL,\n'
        '    "flags" INTEGER\n'
        ")"
    )
    assert insert_statement(schema) == (
        'INSERT INTO "SpellCategory" ("id", "flags") VALUES (?, ?)'
    )


def test_row_parameters_unwrap_keys_and_enums(registry):
    schema = registry.schema_for("ItemClass.dbc")
    row = read_table(schema, _item_class_file([(2, 5, 1, "Weapon")])).rows[0]

    params = row_parameters(schema, row)

    assert params[:3] == (2, 5, 1)
    assert type(params[0]) is int
    assert type(params[2]) is int
    assert params[3] == "Weapon"
    assert params[-1] == 0xFF01FE
    assert len(params) == 12


def test_convert_table_inserts_rows(db, registry):
    data = _item_class_file([(0, 0, 0, "Consumable"), (2, 1, 1, "Weapon")])

    inserted = convert_table(db, "ItemClass.dbc", data, registry)

    assert inserted == 2
    db.execute('SELECT id, item_class, class_name_en_gb, class_name_flags FROM "ItemClass" ORDER BY id')
    assert db.fetchall() == [
        {"id": 0, "item_class": 0, "class_name_en_gb": "Consumable", "class_name_flags": 0xFF01FE},
        {"id": 2, "item_class": 1, "class_name_en_gb": "Weapon", "class_name_flags": 0xFF01FE},
    ]


def test_convert_table_is_idempotent_for_schema(db, registry):
    convert_table(db, "ItemClass.dbc", _item_class_file([(1, 0, 0, "A")]), registry)
    convert_table(db, "ItemClass.dbc", _item_class_file([(2, 0, 0, "B")]), registry)

    db.execute('SELECT COUNT(*) AS n FROM "ItemClass"')
    assert db.fetchall() == [{"n": 2}]


def test_unknown_table_fails_before_any_io(db, registry):
    with pytest.raises(UnknownTableError) as exc_info:
        convert_table(db, "NotARealTable.dbc", b"", registry)

    assert exc_info.value.name == "NotARealTable.dbc"
    db.execute("SELECT name FROM sqlite_master")
    assert db.fetchall() == []


def test_malformed_data_creates_no_table(db, registry):
    data = _item_class_file([(1, 0, 0, "A")])[:-3]

    with pytest.raises(MalformedDataError):
        convert_table(db, "ItemClass.dbc", data, registry)

    db.execute("SELECT name FROM sqlite_master")
    assert db.fetchall() == []


def test_store_error_rolls_back_the_whole_table(db, registry):
    data = _item_class_file([(1, 0, 0, "A"), (1, 0, 0, "Duplicate")])

    with pytest.raises(StoreError) as exc_info:
        convert_table(db, "ItemClass.dbc", data, registry)

    assert exc_info.value.table == "ItemClass"
    db.execute("SELECT name FROM sqlite_master")
    assert db.fetchall() == []


def test_earlier_tables_stay_committed(db, registry):
    convert_table(db, "ItemClass.dbc", _item_class_file([(1, 0, 0, "A")]), registry)

    with pytest.raises(StoreError):
        convert_table(db, "ItemClass.dbc", _item_class_file([(1, 0, 0, "A")]), registry)

    db.execute('SELECT COUNT(*) AS n FROM "ItemClass"')
    assert db.fetchall() == [{"n": 1}]
