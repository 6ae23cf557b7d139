import os
import logging
from typing import List

from ..database.ops import DBOperations
from ..models import ActionStatus, FileAction, RecoveryResult


class ActionRecovery:
    """
    Resolves ledger rows left 'pending' by an interrupted tidy run.

    The filesystem is inspected, never modified:
      - target present, source gone  -> the move happened; catalog is updated
      - source present, target gone  -> the move never happened
      - anything else                -> failed, needs a human
    """
    def __init__(self, db_ops: DBOperations):
        self.db = db_ops

    def list_pending(self) -> List[FileAction]:
        return self.db.list_pending_actions()

    def reconcile(self, dry_run: bool = False) -> RecoveryResult:
        result = RecoveryResult()
        pending = self.list_pending()
        if not pending:
            logging.info("No pending actions to recover.")
            return result

        logging.info(f"Reconciling {len(pending)} pending actions (dry_run={dry_run})...")
        for action in pending:
            result.examined += 1
            status, message = self._resolve(action)
            result.details.append(f"#{action.id} {action.source_path} -> {action.target_path}: {message}")

            if status == ActionStatus.COMPLETED:
                result.completed += 1
            else:
                result.failed += 1

            if dry_run:
                continue

            try:
                if status == ActionStatus.COMPLETED and action.media_id is not None:
                    self.db.update_media_path(action.media_id, action.target_path)
                self.db.mark_action(action.id, status, None if status == ActionStatus.COMPLETED else message)
            except Exception as e:
                logging.error(f"Could not reconcile action {action.id}: {e}")
                result.details.append(f"#{action.id} left pending: {e}")

        return result

    def _resolve(self, action: FileAction):
        source_exists = os.path.lexists(action.source_path)
        target_exists = bool(action.target_path) and os.path.lexists(action.target_path)

        if target_exists and not source_exists:
            return ActionStatus.COMPLETED, "move finished before interruption"
        if source_exists and not target_exists:
            return ActionStatus.FAILED, "interrupted before move"
        if source_exists and target_exists:
            return ActionStatus.FAILED, "interrupted: both source and target exist"
        return ActionStatus.FAILED, "interrupted: neither source nor target exists"
