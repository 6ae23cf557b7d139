import csv

from photo_tidy.models import ActionStatus, FileAction
from photo_tidy.reporting import ReportGenerator

def _read(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))

def test_export_duplicates(db_ops, add_media, tmp_path):
    add_media(tmp_path / "a.jpg", content_hash="same")
    add_media(tmp_path / "b.jpg", content_hash="same")
    add_media(tmp_path / "c.jpg", content_hash="single")
    out = tmp_path / "dups.csv"

    groups = ReportGenerator(db_ops).export_duplicates(out)

    rows = _read(out)
    assert groups == 1
    assert rows[0][0] == "Hash"
    assert [r[3] for r in rows[1:]] == [str(tmp_path / "a.jpg"), str(tmp_path / "b.jpg")]
    assert [r[6] for r in rows[1:]] == ["Keep", "Duplicate"]

def test_export_actions_filters_status(db_ops, tmp_path):
    for status in (ActionStatus.PENDING, ActionStatus.PENDING):
        db_ops.create_action(FileAction(
            source_path="/s", target_path="/t", action_type="move", status=status,
        ))
    db_ops.mark_action(1, ActionStatus.COMPLETED)
    out = tmp_path / "ledger.csv"

    count = ReportGenerator(db_ops).export_actions(out, "pending")

    rows = _read(out)
    assert count == 1
    assert rows[1][0] == "2"
    assert rows[1][3] == "pending"
