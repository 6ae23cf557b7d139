from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


@dataclass
class MediaFile:
    """
    One physical file known to the catalog.
    """
    path: str
    content_hash: str
    size_bytes: int
    mod_time: datetime      # UTC, whole seconds
    id: Optional[int] = None

    # Capture metadata (from the enricher, may be missing)
    taken_at: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    mime_type: Optional[str] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def effective_datetime(self) -> datetime:
        """Capture time when known, otherwise the modification time."""
        return self.taken_at if self.taken_at is not None else self.mod_time


@dataclass
class DuplicateGroup:
    hash: str
    files: List[MediaFile] = field(default_factory=list)


class ActionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FileAction:
    """
    Ledger row for one attempted relocation.
    Written as PENDING before the filesystem is touched.
    """
    source_path: str
    target_path: str
    action_type: str
    status: ActionStatus
    media_id: Optional[int] = None
    content_hash: Optional[str] = None
    id: Optional[int] = None
    error_msg: Optional[str] = None
    executed_at: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class CaptureMetadata:
    taken_at: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None


@dataclass
class MoveRequest:
    media_id: int


# --- Progress & Summary payloads ---

@dataclass
class ScanProgress:
    path: str
    files_processed: int
    files_persisted: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'filesProcessed': self.files_processed,
            'filesPersisted': self.files_persisted,
        }


@dataclass
class ScanSummary:
    files_discovered: int = 0
    files_persisted: int = 0
    files_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    duration_ms: int = 0
    duplicate_groups: int = 0
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'filesDiscovered': self.files_discovered,
            'filesPersisted': self.files_persisted,
            'filesSkipped': self.files_skipped,
            'errors': list(self.errors),
            'durationMs': self.duration_ms,
            'duplicateGroups': self.duplicate_groups,
            'cancelled': self.cancelled,
        }


@dataclass
class TidyProgress:
    media_id: int
    completed: int
    total: int
    status: str             # missing/failed/skipped/planned/moved
    source: str = ""
    target: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'mediaId': self.media_id,
            'source': self.source,
            'target': self.target,
            'completed': self.completed,
            'total': self.total,
            'status': self.status,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class TidySummary:
    total: int
    dry_run: bool
    target_base: str
    moved: int = 0
    skipped: int = 0
    failed: int = 0
    duration_ms: int = 0
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'moved': self.moved,
            'skipped': self.skipped,
            'failed': self.failed,
            'durationMs': self.duration_ms,
            'dryRun': self.dry_run,
            'targetBase': self.target_base,
            'cancelled': self.cancelled,
        }


@dataclass
class RecoveryResult:
    examined: int = 0
    completed: int = 0
    failed: int = 0
    details: List[str] = field(default_factory=list)
