# processing/parser.py
"""
Contains functions for parsing table definition documents.

A definition document describes, for one client version, the record layout of
a set of DBC tables. It is a JSON object:

    {
      "version": "vanilla",
      "enums": [{"name": "Gender", "type": "int8", "options": {"male": 0, "female": 1}}],
      "flags": [...],
      "tables": [
        {
          "name": "ItemClass",
          "enums": [...],
          "flags": [...],
          "fields": [
            {"name": "id", "type": "uint32", "key": {"type": "primary"}},
            {"name": "class_name", "type": "string_ref_loc"}
          ]
        }
      ]
    }

Document-level `enums` and `flags` are shared by every table; table-level ones
are visible to that table only and take precedence. Option values may be
decimal integers or hexadecimal strings such as "0x10".
"""

import json
import re
from typing import Any, Dict, Iterable, List, Mapping

import structlog

from dbc.types import (
    INTEGER_TYPES,
    SCALARS,
    Array,
    DbcVersion,
    EnumRef,
    Field,
    FieldType,
    LocalizedStringRef,
    StringRef,
    TableSchema,
    make_enum,
    make_flag,
    make_key,
)

log = structlog.get_logger(__name__)

_ARRAY_PATTERN = re.compile(r"^(\w+)\[(\d+)\]$")

# Names that would collide with keywords of the generated row types.
_RENAMED_FIELDS = {"type": "ty", "enum": "en"}


class DefinitionError(ValueError):
    """A table definition document is malformed or inconsistent."""


def get_field_name(name: str) -> str:
    """
    Normalizes a field name from a definition document.

    Trailing underscores are trimmed and the reserved names `type` and `enum`
    become `ty` and `en`, e.g. `"type_"` -> `"ty"`.
    """
    name = name.rstrip("_")
    return _RENAMED_FIELDS.get(name, name)


def _parse_option_value(value: Any) -> int:
    if isinstance(value, bool):
        raise DefinitionError(f"Option value must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise DefinitionError(f"Option value must be an integer, got {value!r}")


def parse_definers(entries: Iterable[Mapping[str, Any]], flags: bool = False) -> Dict[str, EnumRef]:
    """
    Parses a list of enum (or flag) definitions into field types by name.

    Raises:
        - DefinitionError: On missing keys, a non-integer backing type or
          non-integer option values, or option names that clash once
          upper-cased.
    """
    definers: Dict[str, EnumRef] = {}
    for entry in entries:
        try:
            name = entry["name"]
            base = entry["type"]
            options = entry["options"]
        except (KeyError, TypeError) as e:
            raise DefinitionError(f"Enum definition is missing {e}") from e

        if base not in INTEGER_TYPES:
            raise DefinitionError(f"Enum '{name}' must use an integer type, got '{base}'")
        if not isinstance(options, Mapping) or not options:
            raise DefinitionError(f"Enum '{name}' needs a non-empty 'options' object")

        values = {option: _parse_option_value(v) for option, v in options.items()}
        maker = make_flag if flags else make_enum
        try:
            definers[name] = maker(name, SCALARS[base], values)
        except (TypeError, ValueError) as e:
            raise DefinitionError(f"Enum '{name}' has invalid options: {e}") from e
    return definers


def parse_type(
    text: str,
    key: Mapping[str, Any] | None = None,
    table: str = "",
    definers: Mapping[str, EnumRef] | None = None,
    known_tables: Iterable[str] | None = None,
    version: DbcVersion = DbcVersion.VANILLA,
) -> FieldType:
    """
    Parses a type name from a definition document into a field type.

    Args:
        - text (str): A scalar name (`uint32`), `string_ref`, `string_ref_loc`,
          an array (`int32[12]`) or the name of an enum/flag in `definers`.
        - key (Mapping | None): Optional `{"type": "primary"}` or
          `{"type": "foreign", "parent": "Map"}`. Only valid on integer types.
        - table (str): Name of the table the field belongs to, used as the
          target of a primary key.
        - definers (Mapping | None): Enum and flag types visible to the field.
        - known_tables (Iterable | None): Tables defined in the same set. A
          foreign key to any other table decodes to a plain integer. None means
          every parent is known.
        - version (DbcVersion): Selects the localized string layout.

    Raises:
        - DefinitionError: On unknown type names or invalid key declarations.
    """
    definers = definers or {}

    if key is not None:
        if text not in INTEGER_TYPES:
            raise DefinitionError(f"Keys must use an integer type, got '{text}'")
        kind = key.get("type")
        if kind == "primary":
            return make_key(SCALARS[text], table, primary=True)
        if kind == "foreign":
            parent = key.get("parent")
            if not parent:
                raise DefinitionError("Foreign key is missing its 'parent' table")
            wrap = known_tables is None or parent in known_tables
            return make_key(SCALARS[text], parent, primary=False, wrap=wrap)
        raise DefinitionError(f"Unknown key type '{kind}'")

    if text in SCALARS:
        return SCALARS[text]
    if text == "string_ref":
        return StringRef()
    if text == "string_ref_loc":
        return LocalizedStringRef(version.localized_string)

    match = _ARRAY_PATTERN.match(text)
    if match:
        element, length = match.group(1), int(match.group(2))
        if length < 1:
            raise DefinitionError(f"Array length must be positive in '{text}'")
        return Array(parse_type(element, None, table, definers, known_tables, version), length)

    if text in definers:
        return definers[text]

    raise DefinitionError(f"Unknown type '{text}'")


def _parse_table(
    entry: Mapping[str, Any],
    shared: Mapping[str, EnumRef],
    known_tables: Iterable[str],
    version: DbcVersion,
) -> TableSchema:
    name = entry.get("name")
    if not name or not isinstance(name, str):
        raise DefinitionError("Table definition is missing its 'name'")

    definers = dict(shared)
    definers.update(parse_definers(entry.get("enums", [])))
    definers.update(parse_definers(entry.get("flags", []), flags=True))

    raw_fields = entry.get("fields")
    if not raw_fields:
        raise DefinitionError(f"Table '{name}' has no fields")

    fields: List[Field] = []
    seen = set()
    primary_keys = 0
    for raw in raw_fields:
        try:
            field_name = get_field_name(raw["name"])
            text = raw["type"]
        except (KeyError, TypeError, AttributeError) as e:
            raise DefinitionError(f"Field in table '{name}' is missing {e}") from e

        if not field_name.isidentifier():
            raise DefinitionError(f"Invalid field name {field_name!r} in table '{name}'")

        if field_name in seen:
            raise DefinitionError(f"Table '{name}' defines '{field_name}' twice")
        seen.add(field_name)

        try:
            field_type = parse_type(
                text, raw.get("key"), name, definers, known_tables, version
            )
        except DefinitionError as e:
            raise DefinitionError(f"{name}.{field_name}: {e}") from e

        if getattr(field_type, "primary", False):
            primary_keys += 1
        fields.append(Field(field_name, field_type))

    if primary_keys > 1:
        raise DefinitionError(f"Table '{name}' declares more than one primary key")

    schema = TableSchema(name, fields, version)
    columns = set()
    for column, _, _ in schema.columns():
        if column in columns:
            raise DefinitionError(f"Table '{name}' produces column '{column}' twice")
        columns.add(column)
    return schema


def parse_definitions(
    document: Mapping[str, Any], version: DbcVersion | None = None
) -> Dict[str, TableSchema]:
    """
    Builds table schemas from a parsed definition document.

    Args:
        - document (Mapping): The decoded JSON object.
        - version (DbcVersion | None): Expected client version. When given,
          a document declaring another version is rejected.

    Returns:
        - A dictionary mapping table names (e.g. `"Map"`) to schemas.

    Raises:
        - DefinitionError: If the document is malformed.
    """
    if not isinstance(document, Mapping):
        raise DefinitionError("Definition document must be a JSON object")

    try:
        declared = DbcVersion(document.get("version", version or DbcVersion.VANILLA))
    except ValueError as e:
        raise DefinitionError(f"Unsupported version {document.get('version')!r}") from e
    if version is not None and declared != version:
        raise DefinitionError(
            f"Definitions are for '{declared.value}', expected '{version.value}'"
        )

    tables = document.get("tables")
    if not isinstance(tables, list):
        raise DefinitionError("Definition document needs a 'tables' list")

    shared = parse_definers(document.get("enums", []))
    shared.update(parse_definers(document.get("flags", []), flags=True))

    known_tables = {entry.get("name") for entry in tables if isinstance(entry, Mapping)}
    schemas: Dict[str, TableSchema] = {}
    for entry in tables:
        if not isinstance(entry, Mapping):
            raise DefinitionError("Every table definition must be a JSON object")
        schema = _parse_table(entry, shared, known_tables, declared)
        if schema.name in schemas:
            raise DefinitionError(f"Table '{schema.name}' is defined twice")
        schemas[schema.name] = schema

    return schemas


def read_definitions_document(path: str) -> Dict[str, Any]:
    """Reads the raw JSON object of a definition file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DefinitionError(f"Cannot load definitions from {path}: {e}") from e
    if not isinstance(document, dict):
        raise DefinitionError(f"{path} does not contain a JSON object")
    return document


def load_definitions_file(path: str, version: DbcVersion | None = None) -> Dict[str, TableSchema]:
    """
    Reads and parses a definition file.

    Raises:
        - DefinitionError: If the file cannot be read, is not valid JSON or is
          not a valid definition document.
    """
    log.debug("Loading table definitions.", file=path)
    schemas = parse_definitions(read_definitions_document(path), version)
    log.debug("Loaded table definitions.", file=path, tables=len(schemas))
    return schemas
