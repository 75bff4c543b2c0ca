# processing/registry.py
"""
Dispatch from DBC file names to table schemas.

A `TableRegistry` holds every table schema known for one client version. It
replaces a hand-written per-table dispatch: converting a file is a lookup of its
name here followed by the same generic decode and insert steps for every table.
"""

import os
from typing import Dict, Iterable, Iterator, List

import structlog

from config import DEFINITIONS_DIR
from dbc.errors import UnknownTableError
from dbc.types import DbcVersion, TableSchema
from processing.parser import DefinitionError, parse_definitions, read_definitions_document

log = structlog.get_logger(__name__)


def builtin_definitions_file(version: DbcVersion) -> str:
    """Path of the definition file shipped for `version`."""
    return os.path.join(DEFINITIONS_DIR, f"{version.value}.json")


def _merge_documents(documents: List[dict], version: DbcVersion) -> dict:
    """
    Merges definition documents in order. Tables and shared enums/flags of a
    later document replace those of the same name in earlier ones.
    """
    merged: Dict[str, Dict[str, dict]] = {"tables": {}, "enums": {}, "flags": {}}
    for document in documents:
        declared = document.get("version", version.value)
        if declared != version.value:
            raise DefinitionError(
                f"Definitions are for '{declared}', expected '{version.value}'"
            )
        for section, entries in merged.items():
            items = document.get(section, [])
            if not isinstance(items, list):
                raise DefinitionError(f"'{section}' must be a list")
            for item in items:
                if not isinstance(item, dict) or "name" not in item:
                    raise DefinitionError(f"Every entry of '{section}' needs a 'name'")
                entries[item["name"]] = item

    return {
        "version": version.value,
        "tables": list(merged["tables"].values()),
        "enums": list(merged["enums"].values()),
        "flags": list(merged["flags"].values()),
    }


class TableRegistry:
    """The table schemas of one client version, looked up by file name."""

    def __init__(self, version: DbcVersion, schemas: Dict[str, TableSchema]):
        self.version = version
        self._schemas = dict(schemas)
        self._by_file = {schema.file_name.lower(): schema for schema in schemas.values()}

    @classmethod
    def load(cls, version: DbcVersion | str, extra_files: Iterable[str] = ()) -> "TableRegistry":
        """
        Loads the built-in definitions of `version` plus any extra files.

        Tables in extra files override built-in tables of the same name, and
        foreign keys resolve across all of the loaded files.

        Raises:
            - DefinitionError: If any definition file is invalid.
        """
        version = DbcVersion(version)
        paths = [builtin_definitions_file(version), *extra_files]
        documents = [read_definitions_document(path) for path in paths]
        schemas = parse_definitions(_merge_documents(documents, version), version)
        log.info(
            "Table definitions loaded.",
            version=version.value,
            tables=len(schemas),
            files=len(paths),
        )
        return cls(version, schemas)

    def schema_for(self, file_name: str) -> TableSchema:
        """
        Returns the schema for a DBC file name such as `"Map.dbc"`.

        Directories are ignored and the match is case-insensitive, since
        client archives are not consistent about the case of file names.

        Raises:
            - UnknownTableError: If no table definition matches; carries
              `file_name` unchanged.
        """
        schema = self._by_file.get(os.path.basename(file_name).lower())
        if schema is None:
            raise UnknownTableError(file_name)
        return schema

    def table_names(self) -> List[str]:
        """Sorted file names of every known table."""
        return sorted(schema.file_name for schema in self._schemas.values())

    def __contains__(self, file_name: object) -> bool:
        if not isinstance(file_name, str):
            return False
        return os.path.basename(file_name).lower() in self._by_file

    def __len__(self) -> int:
        return len(self._schemas)

    def __iter__(self) -> Iterator[TableSchema]:
        return iter(self._schemas.values())
