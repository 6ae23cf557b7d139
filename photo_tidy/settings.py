"""
Settings loader.

Reads a YAML file, applies defaults, expands '~' and validates the result.
A relative database folder is resolved against the settings file's directory.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from . import config
from .exceptions import ConfigurationError
from .scanning.filesystem import normalize_extensions


@dataclass
class Settings:
    root_dir: Path
    db_base_folder: str = config.DEFAULT_DB_FOLDER
    db_file_name: str = config.DEFAULT_DB_FILE
    source_folders: List[str] = field(default_factory=list)
    last_source_folders: List[str] = field(default_factory=list)
    include_extensions: Optional[List[str]] = None
    follow_symlinks: bool = False
    target_base: str = ""
    target_pattern: str = config.DEFAULT_PATTERN
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """
        Loads settings from `path`, else $PHOTO_TIDY_CONFIG, else ./settings.yaml.
        """
        if path is None:
            env_value = os.environ.get(config.SETTINGS_ENV_VAR)
            path = Path(env_value) if env_value else Path(config.DEFAULT_SETTINGS_FILE)
        path = Path(path).expanduser()
        if not path.is_absolute():
            path = (Path.cwd() / path).resolve()
        if not path.exists():
            raise ConfigurationError(f"settings file not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"read settings {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"settings {path}: top level must be a mapping")

        settings = cls.from_dict(data, root_dir=path.parent)
        settings.validate()
        return settings

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root_dir: Path) -> "Settings":
        database = _section(data, "database")
        scan = _section(data, "scan")
        history = _section(data, "history")
        target = _section(data, "target")
        logging_cfg = _section(data, "logging")

        return cls(
            root_dir=Path(root_dir),
            db_base_folder=_expand(database.get("base_folder") or config.DEFAULT_DB_FOLDER),
            db_file_name=database.get("file_name") or config.DEFAULT_DB_FILE,
            source_folders=_expand_all(scan.get("source_folders")),
            last_source_folders=_expand_all(history.get("last_source_folders")),
            include_extensions=_extensions(scan.get("include_extensions")),
            follow_symlinks=_flag(scan, "follow_symlinks", "scan"),
            target_base=_expand(target.get("base_folder") or ""),
            target_pattern=target.get("pattern") or config.DEFAULT_PATTERN,
            log_level=str(logging_cfg.get("level") or "INFO").upper(),
            log_file=_expand(logging_cfg.get("file")) if logging_cfg.get("file") else None,
        )

    def validate(self):
        if not self.db_base_folder:
            raise ConfigurationError("database base_folder is required")
        if not self.db_file_name:
            raise ConfigurationError("database file_name is required")
        if not self.source_folders and not self.last_source_folders:
            raise ConfigurationError("at least one source folder must be configured")

    @property
    def database_path(self) -> Path:
        base = Path(self.db_base_folder)
        if not base.is_absolute():
            base = self.root_dir / base
        return base / self.db_file_name

    @property
    def effective_sources(self) -> List[str]:
        """Configured scan folders, falling back to the last-used ones."""
        return list(self.source_folders or self.last_source_folders)

    @property
    def extensions(self) -> List[str]:
        """
        Normalized allow-list. The default list applies only when the key is
        absent; an explicit empty list accepts every extension.
        """
        if self.include_extensions is None:
            return list(config.DEFAULT_EXTENSIONS)
        return list(self.include_extensions)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"settings section '{key}' must be a mapping")
    return value

def _expand(value: str) -> str:
    return os.path.expanduser(str(value).strip()) if value else value

def _expand_all(values) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    return [_expand(v) for v in values if v and str(v).strip()]

def _extensions(values) -> Optional[List[str]]:
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, list):
        raise ConfigurationError("scan.include_extensions must be a list")
    return sorted(normalize_extensions(str(v) for v in values if v is not None))

def _flag(section: Dict[str, Any], key: str, section_name: str) -> bool:
    value = section.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{section_name}.{key} must be true or false, got {value!r}")
    return value
