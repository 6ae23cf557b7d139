import sqlite3
import logging
import threading
from datetime import datetime, UTC
from typing import Optional, List, Dict, Iterable, Union

from .. import config
from ..exceptions import DatabaseError
from ..models import MediaFile, DuplicateGroup, FileAction, ActionStatus

MEDIA_COLUMNS = """
    id, path, content_hash, size_bytes, mod_time, taken_at,
    camera_make, camera_model, mime_type, created_at, updated_at
"""

ACTION_COLUMNS = """
    id, media_id, source_path, target_path, action_type, status,
    error_msg, executed_at, content_hash, created_at
"""

class DBOperations:
    """
    All catalog reads and writes. Every statement runs under a single lock so
    the one shared connection never sees two concurrent operations.
    """
    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.RLock] = None):
        self.conn = conn
        self.lock = lock or threading.RLock()

    # --- Media Files ---

    def upsert_media_file(self, rec: MediaFile):
        """
        Inserts a file keyed on path, or refreshes every scanned attribute of
        the existing row. The surrogate id survives rescans.
        """
        try:
            with self.lock, self.conn:
                self.conn.execute("""
                    INSERT INTO media_files (
                        path, content_hash, size_bytes, mod_time, taken_at,
                        camera_make, camera_model, mime_type
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(path) DO UPDATE SET
                        content_hash = excluded.content_hash,
                        size_bytes = excluded.size_bytes,
                        mod_time = excluded.mod_time,
                        taken_at = excluded.taken_at,
                        camera_make = excluded.camera_make,
                        camera_model = excluded.camera_model,
                        mime_type = excluded.mime_type
                """, (
                    rec.path, rec.content_hash, rec.size_bytes,
                    _to_unix(rec.mod_time), _to_iso(rec.taken_at),
                    rec.camera_make, rec.camera_model, rec.mime_type,
                ))
        except sqlite3.Error as e:
            raise DatabaseError(f"upsert media file: {e}") from e

    def get_media_by_path(self, path: str) -> Optional[MediaFile]:
        rows = self._query(
            f"SELECT {MEDIA_COLUMNS} FROM media_files WHERE path = ?", (path,), "get media by path"
        )
        return _row_to_media(rows[0]) if rows else None

    def get_media_by_ids(self, ids: Iterable[int]) -> Dict[int, MediaFile]:
        """
        Batched lookup, chunked to stay under SQLite's bound-variable limit.
        Ids with no row are simply absent from the result.
        """
        ids = list(dict.fromkeys(ids))
        result = {}
        for start in range(0, len(ids), config.SQL_BATCH_SIZE):
            chunk = ids[start:start + config.SQL_BATCH_SIZE]
            placeholders = ",".join("?" for _ in chunk)
            rows = self._query(
                f"SELECT {MEDIA_COLUMNS} FROM media_files WHERE id IN ({placeholders})",
                chunk,
                "get media by ids",
            )
            for row in rows:
                media = _row_to_media(row)
                result[media.id] = media
        return result

    def update_media_path(self, media_id: int, new_path: str):
        try:
            with self.lock, self.conn:
                cur = self.conn.execute("UPDATE media_files SET path = ? WHERE id = ?", (new_path, media_id))
        except sqlite3.Error as e:
            raise DatabaseError(f"update media path: {e}") from e
        if cur.rowcount == 0:
            raise DatabaseError(f"update media path: no media row with id {media_id}")

    def count_media_files(self) -> int:
        rows = self._query("SELECT COUNT(*) FROM media_files", (), "count media files")
        return int(rows[0][0])

    def list_duplicate_groups(self) -> List[DuplicateGroup]:
        """
        Every hash shared by two or more rows, members ordered by id.
        Pure read.
        """
        rows = self._query(f"""
            SELECT {MEDIA_COLUMNS}
            FROM media_files
            WHERE content_hash IN (
                SELECT content_hash FROM media_files GROUP BY content_hash HAVING COUNT(*) > 1
            )
            ORDER BY content_hash, id
        """, (), "query duplicates")

        groups: List[DuplicateGroup] = []
        current: Optional[DuplicateGroup] = None
        for row in rows:
            media = _row_to_media(row)
            if current is None or current.hash != media.content_hash:
                current = DuplicateGroup(hash=media.content_hash)
                groups.append(current)
            current.files.append(media)
        return groups

    # --- Action Ledger ---

    def create_action(self, action: FileAction) -> int:
        """Records an action before it is executed so an interrupted run can be audited."""
        try:
            with self.lock, self.conn:
                cur = self.conn.execute("""
                    INSERT INTO file_actions (
                        media_id, source_path, target_path, action_type, status, content_hash
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    action.media_id, action.source_path, action.target_path,
                    action.action_type, ActionStatus(action.status).value, action.content_hash,
                ))
        except sqlite3.Error as e:
            raise DatabaseError(f"insert action: {e}") from e

        if cur.lastrowid is None:
            raise DatabaseError("insert action: no row id returned")
        return cur.lastrowid

    def mark_action(self, action_id: int, status: ActionStatus, error_msg: Optional[str] = None):
        """
        Moves a pending action to its terminal state.
        Rows that already reached a terminal state are never rewritten.
        """
        status = ActionStatus(status)
        if status == ActionStatus.PENDING:
            raise ValueError("an action can only be marked completed or failed")
        try:
            with self.lock, self.conn:
                cur = self.conn.execute("""
                    UPDATE file_actions
                    SET status = ?, error_msg = ?, executed_at = ?
                    WHERE id = ? AND status = ?
                """, (
                    status.value, error_msg, datetime.now(UTC).isoformat(),
                    action_id, ActionStatus.PENDING.value,
                ))
        except sqlite3.Error as e:
            raise DatabaseError(f"update action status: {e}") from e
        if cur.rowcount == 0:
            raise DatabaseError(f"update action status: action {action_id} is not pending")

    def get_action(self, action_id: int) -> Optional[FileAction]:
        rows = self._query(
            f"SELECT {ACTION_COLUMNS} FROM file_actions WHERE id = ?", (action_id,), "get action"
        )
        return _row_to_action(rows[0]) if rows else None

    def list_actions(self, status: Optional[Union[ActionStatus, str]] = None) -> List[FileAction]:
        if status is None:
            rows = self._query(f"SELECT {ACTION_COLUMNS} FROM file_actions ORDER BY id", (), "list actions")
        else:
            rows = self._query(
                f"SELECT {ACTION_COLUMNS} FROM file_actions WHERE status = ? ORDER BY id",
                (ActionStatus(status).value,),
                "list actions",
            )
        return [_row_to_action(r) for r in rows]

    def list_pending_actions(self) -> List[FileAction]:
        """Pending rows with no terminal state: evidence of an interrupted run."""
        return self.list_actions(ActionStatus.PENDING)

    # --- Internal ---

    def _query(self, sql: str, params, operation: str) -> list:
        try:
            with self.lock:
                cur = self.conn.execute(sql, tuple(params))
                return cur.fetchall()
        except sqlite3.Error as e:
            logging.debug(f"Query failed ({operation}): {sql}")
            raise DatabaseError(f"{operation}: {e}") from e


def _to_unix(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp())

def _to_iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None

def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logging.warning(f"Ignoring unparseable timestamp in catalog: {value!r}")
        return None

def _row_to_media(row) -> MediaFile:
    (media_id, path, content_hash, size_bytes, mod_time, taken_at,
     make, model, mime, created_at, updated_at) = row
    return MediaFile(
        id=media_id,
        path=path,
        content_hash=content_hash,
        size_bytes=size_bytes,
        mod_time=datetime.fromtimestamp(mod_time, UTC),
        taken_at=_from_iso(taken_at),
        camera_make=make,
        camera_model=model,
        mime_type=mime,
        created_at=created_at,
        updated_at=updated_at,
    )

def _row_to_action(row) -> FileAction:
    (action_id, media_id, source, target, action_type, status,
     error_msg, executed_at, content_hash, created_at) = row
    return FileAction(
        id=action_id,
        media_id=media_id,
        source_path=source,
        target_path=target,
        action_type=action_type,
        status=ActionStatus(status),
        error_msg=error_msg,
        executed_at=executed_at,
        content_hash=content_hash,
        created_at=created_at,
    )
