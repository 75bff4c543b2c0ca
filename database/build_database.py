# database/build_database.py
"""
Contains the batch job that converts a set of DBC files into one SQLite database.
"""

import os
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import structlog

from config import DB_FILE, DBC_EXTENSION, DEFAULT_VERSION
from database.base_connector import DatabaseConnector
from database.sqlite_connector import SQLiteConnector
from dbc.errors import DbcError, UnknownTableError
from processing.builder import convert_table
from processing.registry import TableRegistry

log = structlog.get_logger(__name__)


@dataclass
class ConversionResult:
    """Outcome of a conversion run, per DBC file name."""

    converted: Dict[str, int] = field(default_factory=dict)  # file -> rows
    skipped: List[str] = field(default_factory=list)  # files without a definition
    failed: Dict[str, str] = field(default_factory=dict)  # file -> error message

    @property
    def success(self) -> bool:
        return not self.failed


def collect_dbc_files(paths: Iterable[str]) -> List[str]:
    """
    Expands the given paths into a list of DBC files.

    Files are taken as given. Directories contribute every `*.dbc` file they
    directly contain (case-insensitive, sorted by name). Missing paths are
    logged and ignored.
    """
    files: List[str] = []
    for path in paths:
        if os.path.isdir(path):
            entries = sorted(os.listdir(path), key=str.lower)
            files.extend(
                os.path.join(path, entry)
                for entry in entries
                if entry.lower().endswith(DBC_EXTENSION)
                and os.path.isfile(os.path.join(path, entry))
            )
        elif os.path.isfile(path):
            files.append(path)
        else:
            log.warning("Input path does not exist, skipping.", path=path)
    return files


def run_conversion(
    paths: Iterable[str],
    db_path: str = DB_FILE,
    version: str = DEFAULT_VERSION,
    definition_files: Iterable[str] = (),
    stop_on_error: bool = False,
    fresh: bool = False,
) -> ConversionResult:
    """
    Converts every DBC file found under `paths` into the database at `db_path`.

    Workflow:
    1.  Loads the table definitions for `version` (plus `definition_files`).
    2.  Collects the input files.
    3.  Converts the files one after the other. Each table is committed in its
        own transaction, so tables converted before a failure stay committed.
    4.  Files without a definition are skipped. Other failures are recorded
        and, with `stop_on_error`, end the run.

    Args:
        - paths: DBC files and/or directories containing them.
        - db_path (str): Output SQLite database.
        - version (str): Client version of the input files.
        - definition_files: Extra definition files.
        - stop_on_error (bool): Stop at the first failed table.
        - fresh (bool): Delete an existing database file first.

    Returns:
        - A `ConversionResult` listing converted, skipped and failed files.

    Raises:
        - DefinitionError: If the definitions cannot be loaded.
        - StoreError: If the database cannot be opened.
    """
    log.info("--- Starting DBC Conversion ---", db=db_path, version=version)
    start_time = time.time()

    registry = TableRegistry.load(version, definition_files)
    files = collect_dbc_files(paths)
    log.info(f"Found {len(files)} DBC files.")

    if fresh and os.path.exists(db_path):
        log.info("Removing existing database file.", file=db_path)
        os.remove(db_path)
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    result = ConversionResult()
    db: DatabaseConnector = SQLiteConnector(db_path)
    db.connect()
    try:
        for index, path in enumerate(files, start=1):
            name = os.path.basename(path)
            log.info(f"[{index}/{len(files)}] Converting {name}...")
            try:
                with open(path, "rb") as f:
                    contents = f.read()
                result.converted[name] = convert_table(db, name, contents, registry)
            except UnknownTableError:
                log.warning("No definition for file, skipping.", file=name)
                result.skipped.append(name)
            except (DbcError, OSError) as e:
                log.error(
                    "Table conversion failed.",
                    file=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                result.failed[name] = str(e)
                if stop_on_error:
                    log.error("Stopping at the first failed table.")
                    break
    finally:
        db.close()

    total_time = time.time() - start_time
    log.info(
        "--- DBC Conversion Finished ---",
        converted=len(result.converted),
        skipped=len(result.skipped),
        failed=len(result.failed),
        total_time=f"{total_time:.2f}s",
    )
    return result
