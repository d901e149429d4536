from datetime import UTC, datetime

from app.services.export_service import preview, to_csv


def test_header_then_quoted_rows():
    body = to_csv(["ID", "Name", "Score"], [["u1", 'Ann "the judge"', 84.5], ["u2", "Bob", 7]])
    lines = body.splitlines()
    assert lines[0] == "ID,Name,Score"
    assert lines[1] == '"u1","Ann ""the judge""",84.5'
    assert lines[2] == '"u2","Bob",7'


def test_empty_and_datetime_cells():
    stamp = datetime(2026, 10, 18, 9, 30, tzinfo=UTC)
    body = to_csv(["A", "B", "C"], [[None, stamp, True]])
    assert body.splitlines()[1] == '"","2026-10-18T09:30:00+00:00","true"'


def test_preview_truncates_long_prompts():
    assert preview("short") == "short"
    assert preview("x" * 150) == "x" * 100 + "..."
