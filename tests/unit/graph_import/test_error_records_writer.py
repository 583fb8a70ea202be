"""Tests for error-record spill files."""

import json
from datetime import date
from pathlib import Path

from graph_import.error_records import ErrorRecordsWriter
from tests._support.migration_defs import person_record


def test_writes_one_json_line_per_record(tmp_path):
    """Records are written in order, one JSON object per line."""
    writer = ErrorRecordsWriter(tmp_path / "rejects")

    path = writer.write("Person", [person_record(1, born=date(1815, 12, 10)), person_record(2)])

    lines = Path(path).read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"id": 1, "name": "Ada", "born": "1815-12-10"},
        {"id": 2, "name": "Ada", "born": "1815-12-10"},
    ]


def test_file_name_is_derived_from_label(tmp_path):
    """Unsafe label characters are replaced in the file name."""
    path = Path(ErrorRecordsWriter(tmp_path).write("Order Line/2", [person_record(1)]))
    assert path.parent == tmp_path
    assert path.name.startswith("Order_Line_2_")
    assert path.suffix == ".jsonl"


def test_no_records_writes_nothing(tmp_path):
    """An empty batch produces no file."""
    target = tmp_path / "rejects"
    assert ErrorRecordsWriter(target).write("Person", []) is None
    assert not target.exists()
