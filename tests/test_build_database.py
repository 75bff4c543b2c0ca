import sqlite3
import struct

from database.build_database import collect_dbc_files, run_conversion
from helpers import build_dbc


def _spell_category(rows):
    records = [struct.pack("<Ii", key, flags) for key, flags in rows]
    return build_dbc(records, field_count=2, record_size=8)


def _write(path, data):
    path.write_bytes(data)
    return path


def _count(db_path, table):
    with sqlite3.connect(db_path) as conn:
        return conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]


def test_collect_dbc_files(tmp_path):
    (tmp_path / "b.dbc").write_bytes(b"")
    (tmp_path / "A.DBC").write_bytes(b"")
    (tmp_path / "notes.txt").write_bytes(b"")
    single = tmp_path / "sub"
    single.mkdir()
    (single / "c.dbc").write_bytes(b"")

    files = collect_dbc_files([str(tmp_path), str(single / "c.dbc"), str(tmp_path / "missing")])

    assert files == [
        str(tmp_path / "A.DBC"),
        str(tmp_path / "b.dbc"),
        str(single / "c.dbc"),
    ]


def test_run_conversion(tmp_path):
    source = tmp_path / "dbc"
    source.mkdir()
    _write(source / "SpellCategory.dbc", _spell_category([(1, 0), (2, 16)]))
    _write(source / "Unknown.dbc", b"WDBC")
    db_path = str(tmp_path / "out" / "dbc.sqlite")

    result = run_conversion([str(source)], db_path=db_path)

    assert result.success
    assert result.converted == {"SpellCategory.dbc": 2}
    assert result.skipped == ["Unknown.dbc"]
    assert _count(db_path, "SpellCategory") == 2


def test_failed_table_does_not_undo_earlier_ones(tmp_path):
    source = tmp_path / "dbc"
    source.mkdir()
    _write(source / "SpellCategory.dbc", _spell_category([(1, 0)]))
    _write(source / "SpellDuration.dbc", b"WDBC" + b"\x00" * 4)
    db_path = str(tmp_path / "dbc.sqlite")

    result = run_conversion([str(source)], db_path=db_path)

    assert not result.success
    assert set(result.failed) == {"SpellDuration.dbc"}
    assert _count(db_path, "SpellCategory") == 1


def test_stop_on_error(tmp_path):
    source = tmp_path / "dbc"
    source.mkdir()
    _write(source / "GameTips.dbc", b"broken")
    _write(source / "SpellCategory.dbc", _spell_category([(1, 0)]))
    db_path = str(tmp_path / "dbc.sqlite")

    result = run_conversion([str(source)], db_path=db_path, stop_on_error=True)

    assert set(result.failed) == {"GameTips.dbc"}
    assert result.converted == {}


def test_fresh_replaces_existing_database(tmp_path):
    data = _write(tmp_path / "SpellCategory.dbc", _spell_category([(1, 0)]))
    db_path = str(tmp_path / "dbc.sqlite")

    run_conversion([str(data)], db_path=db_path)
    result = run_conversion([str(data)], db_path=db_path, fresh=True)

    assert result.success
    assert _count(db_path, "SpellCategory") == 1
