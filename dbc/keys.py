# dbc/keys.py
"""
Id wrappers for primary and foreign key fields.

A DBC record stores references to other rows as plain integers. Decoding them
into a `Key` keeps the raw value available as `.id` while tagging the field as
"this is a row reference". Each referenced table gets its own `Key` subclass
(`MapKey`, `AreaTableKey`, ...), created on demand by `key_type`, so a key
into one table never compares equal to a key into another one.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import ClassVar, Type


@dataclass(frozen=True, order=True)
class Key:
    id: int

    # Name of the referenced table. Set on the generated subclasses only.
    table: ClassVar[str] = ""


@lru_cache(maxsize=None)
def key_type(table: str) -> Type[Key]:
    """Returns the `Key` subclass used for references into `table`."""
    return type(f"{table}Key", (Key,), {"table": table, "__module__": __name__})
