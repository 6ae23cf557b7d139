import os
import time
import logging
import threading
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from ..database.ops import DBOperations
from ..exceptions import MetadataExtractionError
from ..metadata.extract import MetadataEnricher, MetadataExtractor
from ..models import CaptureMetadata, MediaFile, ScanProgress, ScanSummary
from .hasher import FileHasher
from .mime import detect_mime

ProgressCallback = Callable[[ScanProgress], None]


def normalize_extensions(extensions: Optional[Iterable[str]]) -> Set[str]:
    """Lower-cases extensions and gives each a leading dot. Blank entries are dropped."""
    result = set()
    for ext in extensions or ():
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith('.'):
            ext = '.' + ext
        result.add(ext)
    return result


class _Skipped:
    """Marker yielded by the walker for filtered entries."""


SKIPPED = _Skipped()


class DiskScanner:
    """
    Walks source folders and persists one MediaFile row per accepted file.

    Files are processed strictly one after another. Per-file failures land in
    the summary's error list and never stop the walk.
    """
    def __init__(self, db_ops: DBOperations, enricher: Optional[MetadataEnricher] = None):
        self.db = db_ops
        self.hasher = FileHasher()
        self.metadata = enricher or MetadataExtractor()

    def scan(self,
             sources: List[str],
             extensions: Optional[Iterable[str]] = None,
             follow_symlinks: bool = False,
             on_progress: Optional[ProgressCallback] = None,
             cancel: Optional[threading.Event] = None) -> ScanSummary:
        """
        Scans every source in order and returns the run summary.

        Args:
            extensions: allow-list; empty or None accepts every extension.
            cancel: checked between files and between source roots. When set,
                    the partial summary is returned with cancelled=True.
        """
        start = time.monotonic()
        summary = ScanSummary()
        ext_set = normalize_extensions(extensions)

        for src in sources:
            if cancel is not None and cancel.is_set():
                summary.cancelled = True
                break

            root = Path(os.path.abspath(os.path.expanduser(src)))
            try:
                if not root.is_dir():
                    summary.errors.append(f"{root} is not a directory")
                    continue
            except OSError as e:
                summary.errors.append(f"stat {root}: {e}")
                continue

            logging.info(f"Scanning {root} (follow_symlinks={follow_symlinks})...")
            for entry in self._iter_files(root, ext_set, follow_symlinks, summary.errors):
                if entry is SKIPPED:
                    summary.files_skipped += 1
                    continue

                if cancel is not None and cancel.is_set():
                    summary.cancelled = True
                    break

                summary.files_discovered += 1
                if self._process_file(entry, summary):
                    summary.files_persisted += 1
                    if on_progress:
                        on_progress(ScanProgress(
                            path=str(entry),
                            files_processed=summary.files_discovered,
                            files_persisted=summary.files_persisted,
                        ))

            if summary.cancelled:
                break

        if summary.cancelled:
            logging.warning(f"Scan cancelled after {summary.files_discovered} files.")
        else:
            try:
                summary.duplicate_groups = len(self.db.list_duplicate_groups())
            except Exception as e:
                logging.error(f"Duplicate query failed: {e}")
                summary.errors.append(f"duplicate query: {e}")

        summary.duration_ms = int((time.monotonic() - start) * 1000)
        logging.info(
            f"Scan complete. Discovered {summary.files_discovered}, persisted {summary.files_persisted}, "
            f"skipped {summary.files_skipped}, errors {len(summary.errors)}, "
            f"duplicate groups {summary.duplicate_groups}."
        )
        return summary

    def build_media_file(self, path: Path) -> MediaFile:
        """Stats, hashes and enriches a single file. Raises on stat or hash failure."""
        absolute = Path(os.path.abspath(path))
        st = absolute.stat()
        content_hash = self.hasher.compute_hash(absolute)
        meta = self._capture_metadata(absolute)

        return MediaFile(
            path=str(absolute),
            content_hash=content_hash,
            size_bytes=st.st_size,
            mod_time=datetime.fromtimestamp(int(st.st_mtime), UTC),
            taken_at=meta.taken_at,
            camera_make=meta.camera_make,
            camera_model=meta.camera_model,
            mime_type=detect_mime(absolute),
        )

    def _process_file(self, path: Path, summary: ScanSummary) -> bool:
        try:
            record = self.build_media_file(path)
        except Exception as e:
            logging.error(f"Failed to scan {path}: {e}")
            summary.errors.append(f"metadata {path}: {e}")
            return False

        try:
            self.db.upsert_media_file(record)
        except Exception as e:
            logging.error(f"Failed to persist {path}: {e}")
            summary.errors.append(f"persist {path}: {e}")
            return False
        return True

    def _capture_metadata(self, path: Path) -> CaptureMetadata:
        try:
            return self.metadata.extract(path) or CaptureMetadata()
        except MetadataExtractionError as e:
            logging.debug(f"No capture metadata for {path}: {e}")
            return CaptureMetadata()

    def _iter_files(self,
                    root: Path,
                    ext_set: Set[str],
                    follow_symlinks: bool,
                    errors: List[str]) -> Iterator:
        """
        Depth-first walker using os.scandir.
        Yields accepted file paths, or SKIPPED for each filtered entry.
        Enumeration errors are appended to `errors` and the walk moves on.
        """
        stack = [root]
        # (device, inode) of directories already entered; guards symlink loops
        seen: Set[Tuple[int, int]] = set()

        while stack:
            current = stack.pop()
            try:
                st = current.stat()
                key = (st.st_dev, st.st_ino)
                if key in seen:
                    continue
                seen.add(key)
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logging.warning(f"Cannot read directory {current}: {e}")
                errors.append(f"walk {current}: {e}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                try:
                    if e.is_symlink() and not follow_symlinks:
                        yield SKIPPED
                        continue
                    if e.is_dir(follow_symlinks=follow_symlinks):
                        dirs.append(Path(e.path))
                        continue
                    if not e.is_file(follow_symlinks=follow_symlinks):
                        continue
                except OSError as err:
                    errors.append(f"walk {e.path}: {err}")
                    continue

                if ext_set and os.path.splitext(e.name)[1].lower() not in ext_set:
                    yield SKIPPED
                    continue
                yield Path(e.path)

            # Push dirs reversed so A is processed before Z
            for d in reversed(dirs):
                stack.append(d)
