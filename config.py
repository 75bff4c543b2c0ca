# config.py
"""
Centralized configuration management, project-wide constants, and logging setup.

This module acts as the single source of truth for configurable parameters,
preventing the use of "magic strings" throughout the application. It also
initializes the application's logging system so that every module emits
consistent, structured logs.
"""

import logging
import os
import sys
from typing import Dict, Any, List

import structlog

# --- File and Directory Names ---
DB_FILE = os.path.join(
    os.path.dirname(__file__), "data/dbc.sqlite"
)  # Default output database.
DEFINITIONS_DIR = os.path.join(
    os.path.dirname(__file__), "processing", "definitions"
)  # Built-in table definitions, one JSON file per client version.

DBC_EXTENSION = ".dbc"

# --- Client Versions ---
# Versions with a built-in definition file. The value is also the file stem.
SUPPORTED_VERSIONS: List[str] = ["vanilla", "tbc", "wrath"]
DEFAULT_VERSION = "vanilla"

# --- Environment Variables ---
ENV_OUTPUT_DB = "DBC_OUTPUT_DB"
ENV_VERSION = "DBC_VERSION"
ENV_DEFINITIONS = "DBC_DEFINITIONS"  # os.pathsep separated list of extra files


# --- Logging Setup ---


def setup_logging(level: int = logging.INFO):
    """
    Configures structlog for context-aware, structured logging.

    Workflow:
    1.  Sets up Python's standard logging module as the base.
    2.  Configures structlog to wrap this base logger.
    3.  Defines a chain of "processors" that enrich and format log records:
        context variables, logger name, level, timestamp and exception info.
    4.  The final processor (`ConsoleRenderer`) formats the record into a
        human-readable, colorized line.

    Args:
        - level (int): Minimum level to emit, e.g. `logging.DEBUG`.
    """
    # Logs go to stderr so that `info` and `tables` output on stdout stays clean.
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_settings_from_env() -> Dict[str, Any]:
    """
    Loads run settings from environment variables, falling back to defaults.

    Expected Input:
    - Environment variables (all optional):
        - DBC_OUTPUT_DB: Path of the SQLite database to write.
        - DBC_VERSION: One of `SUPPORTED_VERSIONS`.
        - DBC_DEFINITIONS: Extra definition files, separated by `os.pathsep`.

    Returns:
        - A dictionary such as
          `{'db_path': '...', 'version': 'tbc', 'definition_files': [...]}`.

    Raises:
        - SystemExit: If DBC_VERSION names an unsupported version.
    """
    log = structlog.get_logger("config.env")
    version = os.getenv(ENV_VERSION, DEFAULT_VERSION).strip().lower()
    if version not in SUPPORTED_VERSIONS:
        log.error(
            "Unsupported client version in environment",
            version=version,
            supported=SUPPORTED_VERSIONS,
            error_type="ConfigurationError",
        )
        sys.exit(f"Error: {ENV_VERSION} must be one of {', '.join(SUPPORTED_VERSIONS)}.")

    raw_definitions = os.getenv(ENV_DEFINITIONS, "")
    settings = {
        "db_path": os.getenv(ENV_OUTPUT_DB) or DB_FILE,
        "version": version,
        "definition_files": [p for p in raw_definitions.split(os.pathsep) if p],
    }
    log.debug("Settings loaded from environment.", **settings)
    return settings
