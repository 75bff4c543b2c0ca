# dbc/localized.py
"""
String block access and localized (multi-locale) text resolution.

Strings in a DBC file are not stored inside the fixed-size records. A record
holds a 4 byte offset into the string block at the end of the file, and the
string itself runs from that offset up to the next null byte. Localized text
is a run of such offsets, one per client locale, followed by a flags integer.

The locale order is fixed and identical for every table of a client version:
the 1.12 client knows 8 locales, later clients 16.
"""

from dataclasses import dataclass
from typing import ClassVar, Sequence, Tuple

from dbc.errors import MalformedDataError

LOCALES: Tuple[str, ...] = (
    "en_gb",
    "ko_kr",
    "fr_fr",
    "de_de",
    "en_cn",
    "en_tw",
    "es_es",
    "es_mx",
)

EXTENDED_LOCALES: Tuple[str, ...] = LOCALES + (
    "ru_ru",
    "ja_jp",
    "pt_pt",
    "it_it",
    "unknown_12",
    "unknown_13",
    "unknown_14",
    "unknown_15",
)


class StringBlock:
    """Read-only view over the trailing string block of a DBC file."""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def __len__(self) -> int:
        return len(self.data)

    def get(self, offset: int) -> str:
        """
        Returns the null-terminated UTF-8 string starting at `offset`.

        Offset 0 always means the empty string and never touches the block,
        so tables without any text may ship an empty string block.

        Raises:
            - MalformedDataError: If the offset lies outside the block, no null
              terminator follows it, or the bytes are not valid UTF-8.
        """
        if offset == 0:
            return ""
        if offset >= len(self.data):
            raise MalformedDataError(
                f"String offset {offset} is outside the string block "
                f"({len(self.data)} bytes)"
            )

        end = self.data.find(b"\x00", offset)
        if end == -1:
            raise MalformedDataError(
                f"String at offset {offset} has no null terminator"
            )

        try:
            return self.data[offset:end].decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDataError(
                f"String at offset {offset} is not valid UTF-8: {e}"
            ) from e


class _LocalizedText:
    """Behaviour shared by both localized string layouts."""

    LOCALES: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def slot_count(cls) -> int:
        """Number of 4 byte values the block occupies in a record."""
        return len(cls.LOCALES) + 1

    @classmethod
    def members(cls) -> Tuple[str, ...]:
        """Every member name in storage order, flags last."""
        return cls.LOCALES + ("flags",)

    @classmethod
    def from_offsets(cls, offsets: Sequence[int], flags: int, block: StringBlock):
        """Resolves one string per locale offset against the string block."""
        if len(offsets) != len(cls.LOCALES):
            raise MalformedDataError(
                f"{cls.__name__} needs {len(cls.LOCALES)} offsets, got {len(offsets)}"
            )
        texts = {
            locale: block.get(offset) for locale, offset in zip(cls.LOCALES, offsets)
        }
        return cls(**texts, flags=flags)

    def strings(self) -> Tuple[str, ...]:
        """The locale texts in the fixed locale order, without the flags."""
        return tuple(getattr(self, locale) for locale in self.LOCALES)


@dataclass(frozen=True, order=True)
class LocalizedString(_LocalizedText):
    """
    Localized text of the 1.12 client: 8 locales plus a flags integer.

    Files shipped with an English client only carry `en_gb`; the other
    locales are then empty strings.
    """

    en_gb: str = ""
    ko_kr: str = ""
    fr_fr: str = ""
    de_de: str = ""
    en_cn: str = ""
    en_tw: str = ""
    es_es: str = ""
    es_mx: str = ""
    flags: int = 0

    LOCALES: ClassVar[Tuple[str, ...]] = LOCALES


@dataclass(frozen=True, order=True)
class ExtendedLocalizedString(_LocalizedText):
    """Localized text of the 2.4.3 and 3.3.5 clients: 16 locales plus flags."""

    en_gb: str = ""
    ko_kr: str = ""
    fr_fr: str = ""
    de_de: str = ""
    en_cn: str = ""
    en_tw: str = ""
    es_es: str = ""
    es_mx: str = ""
    ru_ru: str = ""
    ja_jp: str = ""
    pt_pt: str = ""
    it_it: str = ""
    unknown_12: str = ""
    unknown_13: str = ""
    unknown_14: str = ""
    unknown_15: str = ""
    flags: int = 0

    LOCALES: ClassVar[Tuple[str, ...]] = EXTENDED_LOCALES


def resolve_localized_string(
    offsets: Sequence[int], flags: int, block: StringBlock, extended: bool = True
) -> LocalizedString | ExtendedLocalizedString:
    """
    Resolves a record's locale offsets into a localized text value.

    Args:
        - offsets: One string offset per locale slot, in the fixed locale order.
        - flags: The trailing flags integer, returned unchanged.
        - block: The file's string block.
        - extended: True for the 16 locale layout, False for the 8 locale one.
    """
    cls = ExtendedLocalizedString if extended else LocalizedString
    return cls.from_offsets(offsets, flags, block)
