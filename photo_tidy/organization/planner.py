import os
import re
from pathlib import Path
from typing import Dict, Optional, Set

from .. import config
from ..exceptions import ConfigurationError, FileOperationError, PathEscapeError, PatternError, UniquePathError
from ..models import MediaFile

# {Field} or the legacy {{.Field}} form
_FIELD_RE = re.compile(r"\{\{\s*\.?\s*(\w+)\s*\}\}|\{(\w+)\}")
_SEPARATOR_RE = re.compile(r"[\\/]+")
_ILLEGAL_RE = re.compile("[" + re.escape(config.ILLEGAL_PATH_CHARS) + "]")


def sanitize_segment(segment: str) -> str:
    """Trims whitespace and dots, then strips characters illegal in file names."""
    segment = segment.strip().strip('.')
    segment = _ILLEGAL_RE.sub('', segment)
    return segment.strip()

def sanitize_relative(rendered: str) -> str:
    """
    Splits on both slash kinds, sanitizes every segment and drops the empty ones.
    Intended subdirectories from the pattern survive; traversal and drive
    prefixes do not.
    """
    segments = [sanitize_segment(s) for s in _SEPARATOR_RE.split(rendered)]
    segments = [s for s in segments if s]
    return os.path.join(*segments) if segments else ""

def is_within(path: str, base: str) -> bool:
    """Component-wise containment of two normalized absolute paths."""
    path_parts = Path(os.path.normpath(path)).parts
    base_parts = Path(os.path.normpath(base)).parts
    return path_parts[:len(base_parts)] == base_parts


class PathPlanner:
    """
    Renders target paths from a restricted naming pattern.

    Only the named fields below are substituted; the pattern is never
    evaluated as code:
        {Date} {Year} {Month} {Day} {Hash} {OriginalName} {Ext}
    """
    def __init__(self, target_base: str, pattern: Optional[str] = None):
        if not target_base or not str(target_base).strip():
            raise ConfigurationError("target base folder is not configured")

        self.target_base = os.path.normpath(os.path.abspath(os.path.expanduser(str(target_base))))
        self.pattern = pattern if pattern and pattern.strip() else config.DEFAULT_PATTERN
        self._validate_pattern(self.pattern)
        self._climbs = any(seg.strip() == '..' for seg in _SEPARATOR_RE.split(self.pattern))
        # Targets handed out during this run, so dry runs do not plan two files onto one name
        self.used_targets: Set[str] = set()

    def fields_for(self, media: MediaFile) -> Dict[str, str]:
        ts = media.effective_datetime
        name = os.path.basename(media.path)
        return {
            'Date': ts.strftime("%Y-%m-%d"),
            'Year': f"{ts.year:04d}",
            'Month': f"{ts.month:02d}",
            'Day': f"{ts.day:02d}",
            'Hash': media.content_hash,
            'OriginalName': name,
            'Ext': os.path.splitext(name)[1].lower(),
        }

    def render(self, media: MediaFile) -> str:
        """
        Substitutes the pattern fields. Illegal characters, separators included,
        are stripped from field values so a file name cannot add path segments.
        The joined result is not yet sanitized.
        """
        fields = {k: _ILLEGAL_RE.sub('', v) for k, v in self.fields_for(media).items()}
        return _FIELD_RE.sub(lambda m: fields[m.group(1) or m.group(2)], self.pattern)

    def build_target_path(self, media: MediaFile, create_dirs: bool = True) -> str:
        """
        Returns the final absolute target for `media`, creating its folder
        unless create_dirs is False (dry runs leave the disk untouched).

        Raises:
            PathEscapeError: the rendered path would leave the target base.
            UniquePathError: every suffixed candidate is taken.
            FileOperationError: the target folder cannot be created.
        """
        if self._climbs:
            raise PathEscapeError(f"target path escapes base: pattern {self.pattern!r} contains '..'")

        rendered = self.render(media)

        relative = sanitize_relative(rendered)
        if not relative:
            relative = sanitize_segment(os.path.basename(media.path))
        if not relative:
            raise FileOperationError(f"empty target name for {media.path}")

        target = os.path.normpath(os.path.join(self.target_base, relative))
        if not is_within(target, self.target_base) or target == self.target_base:
            raise PathEscapeError(f"target path escapes base: {target}")

        if create_dirs:
            try:
                os.makedirs(os.path.dirname(target), exist_ok=True)
            except OSError as e:
                raise FileOperationError(f"create target dir: {e}") from e

        unique = ensure_unique(target, current_path=media.path, reserved=self.used_targets)
        self.used_targets.add(unique)
        return unique

    @staticmethod
    def _validate_pattern(pattern: str):
        for m in _FIELD_RE.finditer(pattern):
            name = m.group(1) or m.group(2)
            if name not in config.PATTERN_FIELDS:
                raise PatternError(
                    f"unknown pattern field {{{name}}}; expected one of {', '.join(config.PATTERN_FIELDS)}"
                )


def ensure_unique(path: str, current_path: Optional[str] = None, reserved: Optional[Set[str]] = None) -> str:
    """
    Returns `path` if free, otherwise the first free `name-N.ext` for N in 1..999.
    Paths in `reserved` count as taken. The file's own current location
    never counts as a collision.
    """
    reserved = reserved or set()

    def taken(candidate: str) -> bool:
        if _same_location(candidate, current_path):
            return False
        return candidate in reserved or os.path.lexists(candidate)

    if not taken(path):
        return path

    folder, name = os.path.split(path)
    stem, ext = os.path.splitext(name)
    for i in range(1, config.MAX_UNIQUE_ATTEMPTS + 1):
        candidate = os.path.join(folder, f"{stem}-{i}{ext}")
        if not taken(candidate):
            return candidate
    raise UniquePathError(f"unable to find unique name for {path}")

def _same_location(path: str, other: Optional[str]) -> bool:
    if not other:
        return False
    return os.path.normpath(path) == os.path.normpath(other)
