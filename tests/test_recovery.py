from photo_tidy.models import ActionStatus, FileAction
from photo_tidy.organization.recovery import ActionRecovery

def _pending(db_ops, media, target):
    return db_ops.create_action(FileAction(
        media_id=media.id,
        source_path=media.path,
        target_path=str(target),
        action_type="move",
        status=ActionStatus.PENDING,
    ))

def test_completed_move_is_adopted(db_ops, add_media, tmp_path):
    media = add_media(tmp_path / "src" / "a.jpg")
    target = tmp_path / "lib" / "a.jpg"
    action_id = _pending(db_ops, media, target)
    # Crash happened after the rename but before the catalog update
    target.parent.mkdir()
    (tmp_path / "src" / "a.jpg").rename(target)

    result = ActionRecovery(db_ops).reconcile()

    assert (result.examined, result.completed, result.failed) == (1, 1, 0)
    assert db_ops.get_action(action_id).status == ActionStatus.COMPLETED
    assert db_ops.get_media_by_ids([media.id])[media.id].path == str(target)

def test_unstarted_move_is_failed(db_ops, add_media, tmp_path):
    media = add_media(tmp_path / "src" / "a.jpg")
    action_id = _pending(db_ops, media, tmp_path / "lib" / "a.jpg")

    result = ActionRecovery(db_ops).reconcile()

    assert result.failed == 1
    action = db_ops.get_action(action_id)
    assert action.status == ActionStatus.FAILED
    assert action.error_msg == "interrupted before move"
    assert db_ops.get_media_by_ids([media.id])[media.id].path == media.path

def test_dry_run_writes_nothing(db_ops, add_media, tmp_path):
    media = add_media(tmp_path / "src" / "a.jpg")
    _pending(db_ops, media, tmp_path / "lib" / "a.jpg")

    result = ActionRecovery(db_ops).reconcile(dry_run=True)

    assert result.examined == 1
    assert len(db_ops.list_pending_actions()) == 1

def test_nothing_pending(db_ops):
    result = ActionRecovery(db_ops).reconcile()
    assert result.examined == 0
