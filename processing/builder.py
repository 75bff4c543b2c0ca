# processing/builder.py
"""
Core logic for mapping decoded DBC tables into the database.

Every statement is generated from the same `TableSchema` that drives binary
decoding, so the SQL columns always line up with the decoded row fields. By
operating on the `DatabaseConnector` interface, this module remains independent
of the underlying database technology.

Column naming:
    - plain fields use their snake_case name (`max_level`),
    - arrays get one column per element (`item_id_0`, `item_id_1`, ...),
    - localized strings get one column per locale plus flags
      (`name_en_gb`, ..., `name_flags`),
    - keys and enums are stored as their raw integer.
"""

from typing import Any, List, Tuple

import structlog

from database.base_connector import DatabaseConnector
from dbc.errors import StoreError
from dbc.reader import read_table
from dbc.types import TableSchema
from processing.registry import TableRegistry

log = structlog.get_logger(__name__)


def quote_identifier(name: str) -> str:
    """Quotes a table or column name for SQLite."""
    return '"' + name.replace('"', '""') + '"'


def column_definitions(schema: TableSchema) -> List[str]:
    """
    Returns the column clauses of the table's CREATE TABLE statement.

    Example: `['"id" INTEGER PRIMARY KEY NOT NULL', '"name_en_gb" TEXT', ...]`
    """
    definitions = []
    for column, sql_type, is_primary in schema.columns():
        clause = f"{quote_identifier(column)} {sql_type}"
        if is_primary:
            clause += " PRIMARY KEY NOT NULL"
        definitions.append(clause)
    return definitions


def create_table_statement(schema: TableSchema) -> str:
    """Idempotent DDL for `schema`."""
    columns = ",\n    ".join(column_definitions(schema))
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(schema.name)} (\n    {columns}\n)"


def insert_statement(schema: TableSchema) -> str:
    """Parameterized INSERT with one placeholder per flattened column."""
    columns = schema.columns()
    names = ", ".join(quote_identifier(column) for column, _, _ in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(schema.name)} ({names}) VALUES ({placeholders})"


def row_parameters(schema: TableSchema, row: Any) -> Tuple[Any, ...]:
    """Flattens one decoded row into the parameters of `insert_statement`."""
    values: List[Any] = []
    for f in schema.fields:
        values.extend(f.type.sql_values(getattr(row, f.attribute)))
    return tuple(values)


def convert_table(
    db: DatabaseConnector, file_name: str, contents: bytes, registry: TableRegistry
) -> int:
    """
    Decodes one DBC file and stores its rows in a table of the same name.

    Workflow:
    1.  Looks up the schema by file name. Unknown names fail before any
        database I/O.
    2.  Decodes the whole buffer. Malformed data also fails before any
        database I/O, so no partially filled table is ever created.
    3.  Inside a single transaction, creates the table if needed and inserts
        every row. The transaction is committed only if all inserts succeed.

    Args:
        - db (DatabaseConnector): An active database connector instance.
        - file_name (str): The DBC file name, e.g. `"Map.dbc"`.
        - contents (bytes): The complete file contents.
        - registry (TableRegistry): Known table schemas.

    Returns:
        - The number of rows inserted.

    Raises:
        - UnknownTableError: No schema is known for `file_name`.
        - MalformedDataError: The buffer does not match the schema.
        - StoreError: The database rejected a statement; nothing was committed
          for this table.
    """
    schema = registry.schema_for(file_name)
    table = read_table(schema, contents)

    parameters = [row_parameters(schema, row) for row in table.rows]
    try:
        with db.transaction():
            db.execute(create_table_statement(schema))
            if parameters:
                db.executemany(insert_statement(schema), parameters)
    except StoreError as e:
        if e.table is None:
            e.table = schema.name
        raise

    log.info("Table converted.", table=schema.name, rows=len(parameters))
    return len(parameters)
