# dbc/errors.py
"""
Error taxonomy shared by the decoder, the mapping layer and the store.

Every error raised by this project derives from `DbcError`, so a caller that
only wants to know "did this table convert?" can catch a single type. The
concrete kinds mirror the three ways a table conversion can fail:

- `MalformedDataError`: the bytes do not match the expected table shape.
- `UnknownTableError`: no definition exists for the requested file name.
- `StoreError`: the destination database rejected a statement.
"""


class DbcError(Exception):
    """Base class for every error raised while converting DBC files."""


class MalformedDataError(DbcError, ValueError):
    """The binary buffer does not match the expected shape for the table."""


class InvalidHeaderError(MalformedDataError):
    """The 20 byte header is missing, has a bad magic, or disagrees with the schema."""


class InvalidEnumError(MalformedDataError):
    """A field declared as an enum holds a value with no matching enumerator."""

    def __init__(self, enum_name: str, value: int):
        super().__init__(f"Invalid value {value} for enum '{enum_name}'")
        self.enum_name = enum_name
        self.value = value


class UnknownTableError(DbcError, LookupError):
    """A file name has no registered table definition."""

    def __init__(self, name: str):
        super().__init__(f"No table definition found for '{name}'")
        self.name = name


class StoreError(DbcError):
    """The destination store rejected a statement for a table."""

    def __init__(self, message: str, table: str | None = None):
        super().__init__(message)
        self.table = table
