import pytest
import sqlite3
from datetime import datetime, UTC

from photo_tidy.database.schema import init_schema
from photo_tidy.database.ops import DBOperations
from photo_tidy.models import CaptureMetadata, MediaFile

class StubEnricher:
    """Returns fixed capture metadata instead of parsing files."""
    def __init__(self, meta=None):
        self.meta = meta or CaptureMetadata()
        self.calls = []

    def extract(self, path):
        self.calls.append(path)
        return self.meta

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def db_ops(conn):
    """Returns a DBOperations instance attached to the in-memory DB."""
    return DBOperations(conn)

@pytest.fixture
def enricher():
    return StubEnricher()

@pytest.fixture
def add_media(db_ops):
    """Writes a real file and catalogs it. Returns the stored MediaFile."""
    def _add(path, content=b"data", content_hash=None, taken_at=None):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        db_ops.upsert_media_file(MediaFile(
            path=str(path),
            content_hash=content_hash or f"h-{path.name}",
            size_bytes=len(content),
            mod_time=datetime(2023, 5, 6, 7, 8, 9, tzinfo=UTC),
            taken_at=taken_at,
        ))
        return db_ops.get_media_by_path(str(path))
    return _add
