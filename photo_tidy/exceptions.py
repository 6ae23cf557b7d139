"""
Custom exception hierarchy for photo tidy.

Configuration-class errors are the only ones that unwind out of a scan or
tidy run; file and item level errors are captured and returned as data.
"""


class PhotoTidyError(Exception):
    """Base exception for all photo tidy errors."""
    pass


class ConfigurationError(PhotoTidyError):
    """Raised when settings or run parameters are missing or invalid."""
    pass


class PatternError(ConfigurationError):
    """Raised when a target naming pattern references an unknown field."""
    pass


class FileHashError(PhotoTidyError):
    """Raised when file hashing fails."""
    pass


class MetadataExtractionError(PhotoTidyError):
    """Raised when metadata cannot be extracted from a file."""
    pass


class DatabaseError(PhotoTidyError):
    """Raised when database operations fail."""
    pass


class FileOperationError(PhotoTidyError):
    """Raised when planning or performing a file move fails."""
    pass


class PathEscapeError(FileOperationError):
    """Raised when a computed target path would leave the target base."""
    pass


class UniquePathError(FileOperationError):
    """Raised when no free suffixed name could be found for a target."""
    pass
