# tests/conftest.py
"""Shared fixtures: small table schemas and a throwaway SQLite store."""

import pytest

from database.sqlite_connector import SQLiteConnector
from dbc.types import SCALARS, DbcVersion, Field, LocalizedStringRef, StringRef, TableSchema, make_key
from dbc.localized import ExtendedLocalizedString


@pytest.fixture
def id_value_schema() -> TableSchema:
    """Two columns: a uint32 primary key and a signed int32."""
    return TableSchema(
        "Sample",
        [
            Field("id", make_key(SCALARS["uint32"], "Sample", primary=True)),
            Field("value", SCALARS["int32"]),
        ],
    )


@pytest.fixture
def text_schema() -> TableSchema:
    """Primary key, a plain string and a 16 locale localized string."""
    return TableSchema(
        "Text",
        [
            Field("id", make_key(SCALARS["uint32"], "Text", primary=True)),
            Field("internal_name", StringRef()),
            Field("name", LocalizedStringRef(ExtendedLocalizedString)),
        ],
        DbcVersion.WRATH,
    )


@pytest.fixture
def db():
    connector = SQLiteConnector(":memory:")
    connector.connect()
    yield connector
    connector.close()
