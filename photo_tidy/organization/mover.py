import os
import time
import errno
import shutil
import logging
import threading
from typing import Callable, List, Optional

from .. import config
from ..database.ops import DBOperations
from ..exceptions import ConfigurationError, FileOperationError
from ..models import ActionStatus, FileAction, MediaFile, MoveRequest, TidyProgress, TidySummary
from .planner import PathPlanner

ProgressCallback = Callable[[TidyProgress], None]


def move_file(src: str, dest: str):
    """
    Renames src to dest. On a cross-device error falls back to copy then
    delete; the move fails if the source cannot be removed after copying.
    """
    try:
        os.rename(src, dest)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise FileOperationError(f"move {src} -> {dest}: {e}") from e
        logging.debug(f"Cross-device move, copying {src} -> {dest}")

    try:
        shutil.copy2(src, dest)
    except OSError as e:
        # Leave no partial copy behind
        if os.path.exists(dest):
            os.remove(dest)
        raise FileOperationError(f"copy {src} -> {dest}: {e}") from e

    try:
        os.remove(src)
    except OSError as e:
        raise FileOperationError(f"remove source after copy: {e}") from e

def truncate_error(err) -> str:
    msg = str(err)
    return msg[:config.ERROR_MSG_LIMIT]


class TidyExecutor:
    """
    Relocates a batch of catalogued files into the target layout.

    Per item, in batch order:
        plan -> (skip) | record pending -> move -> update path -> mark completed
    Any step can divert the item to 'failed'; the batch always continues.
    In dry-run mode nothing is written to disk or to the ledger.
    """
    def __init__(self, db_ops: DBOperations):
        self.db = db_ops

    def execute(self,
                requests: List[MoveRequest],
                target_base: str,
                pattern: Optional[str] = None,
                dry_run: bool = False,
                on_progress: Optional[ProgressCallback] = None,
                cancel: Optional[threading.Event] = None) -> TidySummary:
        """
        Raises:
            ConfigurationError: empty batch, unset target base or bad pattern.
                                Nothing has been processed when this is raised.
        """
        if not requests:
            raise ConfigurationError("no files selected for tidy")
        if not target_base or not str(target_base).strip():
            raise ConfigurationError("target base folder is not configured")

        planner = PathPlanner(target_base, pattern)
        summary = TidySummary(total=len(requests), dry_run=dry_run, target_base=planner.target_base)

        start = time.monotonic()
        media_map = self.db.get_media_by_ids(r.media_id for r in requests)
        logging.info(
            f"Tidying {len(requests)} files into {planner.target_base} "
            f"(pattern={planner.pattern!r}, dry_run={dry_run})..."
        )

        for idx, req in enumerate(requests):
            # Checked between items only; an in-flight move always finishes
            if cancel is not None and cancel.is_set():
                summary.cancelled = True
                logging.warning(f"Tidy cancelled after {idx} of {len(requests)} items.")
                break

            progress = self._process_item(planner, req, media_map.get(req.media_id), dry_run, summary)
            progress.completed = idx + 1
            progress.total = summary.total
            if on_progress:
                on_progress(progress)

        summary.duration_ms = int((time.monotonic() - start) * 1000)
        logging.info(
            f"Tidy complete. Moved {summary.moved}, skipped {summary.skipped}, "
            f"failed {summary.failed} (dry_run={dry_run})."
        )
        return summary

    def _process_item(self,
                      planner: PathPlanner,
                      req: MoveRequest,
                      media: Optional[MediaFile],
                      dry_run: bool,
                      summary: TidySummary) -> TidyProgress:
        if media is None:
            summary.failed += 1
            return TidyProgress(media_id=req.media_id, completed=0, total=0,
                                status="missing", error="media metadata not found")

        progress = TidyProgress(media_id=media.id, completed=0, total=0, status="", source=media.path)

        # 1. Plan
        try:
            target = planner.build_target_path(media, create_dirs=not dry_run)
        except Exception as e:
            logging.error(f"Cannot plan target for {media.path}: {e}")
            summary.failed += 1
            progress.status, progress.error = "failed", truncate_error(e)
            return progress
        progress.target = target

        # 2. Already in place
        if os.path.normpath(media.path) == os.path.normpath(target):
            summary.skipped += 1
            progress.status = "skipped"
            return progress

        if dry_run:
            logging.info(f"[DRY RUN] Move {media.path} -> {target}")
            summary.moved += 1
            progress.status = "planned"
            return progress

        # 3. Write-ahead ledger row; no mutation without it
        try:
            action_id = self.db.create_action(FileAction(
                media_id=media.id,
                source_path=media.path,
                target_path=target,
                action_type=config.ACTION_MOVE,
                status=ActionStatus.PENDING,
                content_hash=media.content_hash or None,
            ))
        except Exception as e:
            logging.error(f"Cannot record action for {media.path}: {e}")
            summary.failed += 1
            progress.status, progress.error = "failed", truncate_error(f"record action: {e}")
            return progress

        # 4. Move
        try:
            move_file(media.path, target)
        except Exception as e:
            logging.error(f"Failed to move {media.path} -> {target}: {e}")
            summary.failed += 1
            progress.status, progress.error = "failed", truncate_error(e)
            self._finish_action(action_id, ActionStatus.FAILED, progress.error)
            return progress

        # 5. Point the catalog at the new location
        try:
            self.db.update_media_path(media.id, target)
        except Exception as e:
            # Bytes already moved: disk and catalog now disagree, the ledger says so
            logging.error(f"Moved {media.path} -> {target} but failed to update catalog: {e}")
            summary.failed += 1
            progress.status, progress.error = "failed", truncate_error(f"update media path: {e}")
            self._finish_action(action_id, ActionStatus.FAILED, progress.error)
            return progress

        self._finish_action(action_id, ActionStatus.COMPLETED, None)
        summary.moved += 1
        progress.status = "moved"
        return progress

    def _finish_action(self, action_id: int, status: ActionStatus, error_msg: Optional[str]):
        try:
            self.db.mark_action(action_id, status, error_msg)
        except Exception as e:
            # The row stays pending and shows up in recovery
            logging.error(f"Failed to mark action {action_id} {status.value}: {e}")
