# tests/helpers.py
"""Hand assembly of DBC buffers for tests."""

import struct
from typing import List


def build_dbc(
    records: List[bytes],
    field_count: int,
    record_size: int,
    strings: bytes = b"\x00",
) -> bytes:
    """Assembles a DBC file from already packed records and a string block."""
    header = struct.pack(
        "<4s4I", b"WDBC", len(records), field_count, record_size, len(strings)
    )
    return header + b"".join(records) + strings
