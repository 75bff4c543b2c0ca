# dbc/types.py
"""
Field types and table schemas for DBC records.

A `TableSchema` is an ordered list of named fields, each carrying a field type
that knows:

- its `struct` format and how many raw values ("slots") it unpacks to,
- how many columns the DBC header counts for it (`header_field_count`),
- how to turn its raw slots into a Python value and back,
- which SQL columns it flattens into.

The record layout of a whole table is the concatenation of its fields'
formats, compiled once into a `struct.Struct`. The same field list therefore
drives binary decoding, encoding and the SQL schema, so they cannot drift apart.
"""

import enum
import keyword
import struct
from dataclasses import dataclass, make_dataclass
from functools import cached_property
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Type

from dbc.errors import InvalidEnumError
from dbc.keys import Key, key_type
from dbc.localized import ExtendedLocalizedString, LocalizedString, StringBlock

# (column name, SQL type) pairs produced by a field.
Columns = List[Tuple[str, str]]


class DbcVersion(str, enum.Enum):
    """Client versions whose DBC layouts are supported."""

    VANILLA = "vanilla"  # 1.12
    TBC = "tbc"  # 2.4.3.8606
    WRATH = "wrath"  # 3.3.5.12340

    @property
    def localized_string(self) -> Type[LocalizedString | ExtendedLocalizedString]:
        if self is DbcVersion.VANILLA:
            return LocalizedString
        return ExtendedLocalizedString


class FieldType:
    """Base class of every field type. Subclasses fill in the layout attributes."""

    struct_format: str = ""
    slot_count: int = 1
    header_field_count: int = 1
    sql_type: str = "INTEGER"

    @property
    def size(self) -> int:
        return struct.calcsize("<" + self.struct_format)

    def decode(self, slots: Sequence[Any], strings: StringBlock) -> Any:
        """Builds the Python value from this field's raw unpacked slots."""
        raise NotImplementedError

    def encode(self, value: Any, strings) -> List[Any]:
        """
        Returns the raw slots for `value`. Text is added to `strings`, a
        `dbc.writer.StringCache`, which hands back the offsets to store.
        """
        raise NotImplementedError

    def columns(self, name: str) -> Columns:
        return [(name, self.sql_type)]

    def sql_values(self, value: Any) -> List[Any]:
        return [value]


@dataclass(frozen=True)
class Scalar(FieldType):
    name: str
    struct_format: str
    sql_type: str = "INTEGER"
    is_bool: bool = False

    def decode(self, slots, strings):
        value = slots[0]
        return bool(value) if self.is_bool else value

    def encode(self, value, strings):
        return [int(value) if self.is_bool else value]

    def sql_values(self, value):
        return [int(value) if self.is_bool else value]


SCALARS: Dict[str, Scalar] = {
    "int8": Scalar("int8", "b"),
    "uint8": Scalar("uint8", "B"),
    "int16": Scalar("int16", "h"),
    "uint16": Scalar("uint16", "H"),
    "int32": Scalar("int32", "i"),
    "uint32": Scalar("uint32", "I"),
    "bool": Scalar("bool", "B", is_bool=True),
    "bool32": Scalar("bool32", "I", is_bool=True),
    "float": Scalar("float", "f", sql_type="REAL"),
}

INTEGER_TYPES = frozenset(
    ("int8", "uint8", "int16", "uint16", "int32", "uint32")
)


@dataclass(frozen=True)
class StringRef(FieldType):
    struct_format: str = "I"
    sql_type: str = "TEXT"

    def decode(self, slots, strings):
        return strings.get(slots[0])

    def encode(self, value, strings):
        return [strings.add_string(value)]


@dataclass(frozen=True)
class LocalizedStringRef(FieldType):
    """A block of per-locale string offsets followed by a flags integer."""

    text_type: Type[LocalizedString | ExtendedLocalizedString] = LocalizedString

    @property
    def slot_count(self) -> int:
        return self.text_type.slot_count()

    @property
    def header_field_count(self) -> int:
        return self.slot_count

    @property
    def struct_format(self) -> str:
        return f"{self.slot_count}I"

    def decode(self, slots, strings):
        return self.text_type.from_offsets(slots[:-1], slots[-1], strings)

    def encode(self, value, strings):
        return [strings.add_string(s) for s in value.strings()] + [value.flags]

    def columns(self, name):
        return [
            (f"{name}_{member}", "INTEGER" if member == "flags" else "TEXT")
            for member in self.text_type.members()
        ]

    def sql_values(self, value):
        return list(value.strings()) + [value.flags]


@dataclass(frozen=True)
class Array(FieldType):
    element: FieldType
    length: int

    @property
    def slot_count(self) -> int:
        return self.element.slot_count * self.length

    @property
    def header_field_count(self) -> int:
        return self.element.header_field_count * self.length

    @property
    def struct_format(self) -> str:
        return self.element.struct_format * self.length

    @property
    def sql_type(self) -> str:
        return self.element.sql_type

    def decode(self, slots, strings):
        step = self.element.slot_count
        return tuple(
            self.element.decode(slots[i * step : (i + 1) * step], strings)
            for i in range(self.length)
        )

    def encode(self, value, strings):
        if len(value) != self.length:
            raise ValueError(f"Expected {self.length} array elements, got {len(value)}")
        raw: List[Any] = []
        for item in value:
            raw.extend(self.element.encode(item, strings))
        return raw

    def columns(self, name):
        columns: Columns = []
        for i in range(self.length):
            columns.extend(self.element.columns(f"{name}_{i}"))
        return columns

    def sql_values(self, value):
        values: List[Any] = []
        for item in value:
            values.extend(self.element.sql_values(item))
        return values


@dataclass(frozen=True)
class KeyRef(FieldType):
    """
    A primary or foreign key over an integer type.

    When `wrapper` is None the referenced table is unknown and the value is
    decoded as a plain integer.
    """

    element: Scalar
    table: str
    primary: bool = False
    wrapper: Type[Key] | None = None

    @property
    def struct_format(self) -> str:
        return self.element.struct_format

    def decode(self, slots, strings):
        value = self.element.decode(slots, strings)
        return self.wrapper(value) if self.wrapper else value

    def encode(self, value, strings):
        return [value.id if isinstance(value, Key) else value]

    def sql_values(self, value):
        return [value.id if isinstance(value, Key) else value]


def make_key(element: Scalar, table: str, primary: bool, wrap: bool = True) -> KeyRef:
    return KeyRef(element, table, primary, key_type(table) if wrap else None)


@dataclass(frozen=True)
class EnumRef(FieldType):
    name: str
    element: Scalar
    enum_type: Type[enum.IntEnum]

    @property
    def struct_format(self) -> str:
        return self.element.struct_format

    def decode(self, slots, strings):
        raw = slots[0]
        try:
            return self.enum_type(raw)
        except ValueError:
            raise InvalidEnumError(self.name, raw) from None

    def encode(self, value, strings):
        return [int(value)]

    def sql_values(self, value):
        return [int(value)]


def _member_names(name: str, options: Mapping[str, int]) -> Dict[str, int]:
    members: Dict[str, int] = {}
    for option, value in options.items():
        member = option.upper()
        if member in members:
            raise ValueError(f"Option '{option}' of '{name}' clashes with another option")
        members[member] = value
    return members


def make_enum(name: str, element: Scalar, options: Mapping[str, int]) -> EnumRef:
    """Builds an enum field type with a generated `IntEnum` for its values."""
    members = _member_names(name, options)
    return EnumRef(name, element, enum.IntEnum(name, members))


def make_flag(name: str, element: Scalar, options: Mapping[str, int]) -> EnumRef:
    """Like `make_enum`, but any combination of bits is a valid value."""
    members = _member_names(name, options)
    return EnumRef(name, element, enum.IntFlag(name, members))


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType

    @property
    def attribute(self) -> str:
        """Python attribute name on the row; keywords get a trailing underscore."""
        return f"{self.name}_" if keyword.iskeyword(self.name) else self.name


@dataclass(eq=False)
class TableSchema:
    """The decoded shape of one DBC table."""

    name: str
    fields: List[Field]
    version: DbcVersion = DbcVersion.VANILLA

    @property
    def file_name(self) -> str:
        return f"{self.name}.dbc"

    @cached_property
    def record_struct(self) -> struct.Struct:
        return struct.Struct("<" + "".join(f.type.struct_format for f in self.fields))

    @property
    def record_size(self) -> int:
        return self.record_struct.size

    @property
    def field_count(self) -> int:
        return sum(f.type.header_field_count for f in self.fields)

    @cached_property
    def slot_ranges(self) -> List[Tuple[Field, int, int]]:
        """Each field with the slice of the unpacked record values it owns."""
        ranges = []
        start = 0
        for f in self.fields:
            ranges.append((f, start, start + f.type.slot_count))
            start += f.type.slot_count
        return ranges

    @property
    def primary_key(self) -> Field | None:
        for f in self.fields:
            if isinstance(f.type, KeyRef) and f.type.primary:
                return f
        return None

    @cached_property
    def row_type(self) -> type:
        """Frozen dataclass generated for this table's rows, e.g. `MapRow`."""
        return make_dataclass(
            f"{self.name}Row",
            [(f.attribute, Any) for f in self.fields],
            frozen=True,
        )

    def columns(self) -> List[Tuple[str, str, bool]]:
        """Flattened (column name, SQL type, is primary key) triples."""
        columns = []
        for f in self.fields:
            is_primary = isinstance(f.type, KeyRef) and f.type.primary
            for column, sql_type in f.type.columns(f.name):
                columns.append((column, sql_type, is_primary))
        return columns
