"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def init_schema(conn: sqlite3.Connection):
    """
    Applies the core schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Media Files
        # One row per physical file. Path is the natural key until a tidy move rewrites it.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS media_files (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            path            TEXT NOT NULL UNIQUE,
            content_hash    TEXT NOT NULL,
            size_bytes      INTEGER NOT NULL,
            mod_time        INTEGER NOT NULL,     -- Unix seconds, UTC
            taken_at        TEXT,                 -- ISO-8601 capture time
            camera_make     TEXT,
            camera_model    TEXT,
            mime_type       TEXT,
            created_at      TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at      TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """)

        # 3. Action Ledger
        # Rows are written 'pending' before any filesystem mutation.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS file_actions (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            media_id        INTEGER,
            source_path     TEXT NOT NULL,
            target_path     TEXT,
            action_type     TEXT NOT NULL,
            status          TEXT NOT NULL,
            error_msg       TEXT,
            executed_at     TEXT,
            content_hash    TEXT,
            created_at      TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY(media_id) REFERENCES media_files(id)
        );
        """)

        # 4. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_media_hash ON media_files(content_hash);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_media_taken_at ON media_files(taken_at);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_actions_status ON file_actions(status);")

        # 5. Bookkeeping
        conn.execute("""
        CREATE TRIGGER IF NOT EXISTS trg_media_updated
        AFTER UPDATE ON media_files
        FOR EACH ROW
        BEGIN
            UPDATE media_files SET updated_at = datetime('now') WHERE id = NEW.id;
        END;
        """)

    logging.debug("Database schema initialized.")
