import logging
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from .database.db import DBManager
from .database.ops import DBOperations
from .exceptions import ConfigurationError
from .metadata.extract import MetadataEnricher
from .models import DuplicateGroup, FileAction, MoveRequest, RecoveryResult, ScanSummary, TidySummary
from .organization.mover import TidyExecutor, ProgressCallback as TidyProgressCallback
from .organization.recovery import ActionRecovery
from .scanning.filesystem import DiskScanner, ProgressCallback as ScanProgressCallback
from .settings import Settings

class PhotoTidyApp:
    """
    Application context: one settings/store pair, built once and shared.

    reload() builds a fresh pair and swaps it in under a lock, so a request
    always sees a matching settings object and database.
    """
    def __init__(self, settings_path: Optional[Path] = None, enricher: Optional[MetadataEnricher] = None):
        self.settings_path = settings_path
        self.enricher = enricher
        self._lock = threading.Lock()
        self._settings: Optional[Settings] = None
        self._db_manager: Optional[DBManager] = None
        self._db_ops: Optional[DBOperations] = None

    def reload(self) -> Settings:
        """Loads settings from disk and opens the matching database."""
        settings = Settings.load(self.settings_path)
        db_manager = DBManager(settings.database_path)
        conn = db_manager.connect()
        db_ops = DBOperations(conn, db_manager.write_lock)

        with self._lock:
            old_manager = self._db_manager
            self._settings, self._db_manager, self._db_ops = settings, db_manager, db_ops

        if old_manager is not None:
            old_manager.close()
        logging.info(f"Settings loaded from {settings.root_dir} (database: {settings.database_path})")
        return settings

    @property
    def settings(self) -> Settings:
        return self._context()[0]

    @property
    def db(self) -> DBOperations:
        return self._context()[1]

    def run_scan(self,
                 on_progress: Optional[ScanProgressCallback] = None,
                 cancel: Optional[threading.Event] = None) -> ScanSummary:
        settings, db_ops = self._context()
        scanner = DiskScanner(db_ops, self.enricher)
        return scanner.scan(
            settings.effective_sources,
            settings.extensions,
            follow_symlinks=settings.follow_symlinks,
            on_progress=on_progress,
            cancel=cancel,
        )

    def execute_tidy(self,
                     requests: List[MoveRequest],
                     dry_run: bool = False,
                     on_progress: Optional[TidyProgressCallback] = None,
                     cancel: Optional[threading.Event] = None) -> TidySummary:
        settings, db_ops = self._context()
        executor = TidyExecutor(db_ops)
        return executor.execute(
            requests,
            settings.target_base,
            settings.target_pattern,
            dry_run=dry_run,
            on_progress=on_progress,
            cancel=cancel,
        )

    def list_duplicate_groups(self) -> List[DuplicateGroup]:
        return self.db.list_duplicate_groups()

    def list_pending_actions(self) -> List[FileAction]:
        return self.db.list_pending_actions()

    def recover_actions(self, dry_run: bool = False) -> RecoveryResult:
        return ActionRecovery(self.db).reconcile(dry_run=dry_run)

    def close(self):
        with self._lock:
            manager = self._db_manager
            self._settings, self._db_manager, self._db_ops = None, None, None
        if manager is not None:
            manager.close()

    def __enter__(self):
        if self._db_ops is None:
            self.reload()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _context(self) -> Tuple[Settings, DBOperations]:
        with self._lock:
            if self._settings is None or self._db_ops is None:
                raise ConfigurationError("settings not loaded; call reload() first")
            return self._settings, self._db_ops
