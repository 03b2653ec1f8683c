"""Database schema definition."""

import sqlite3

SCHEMA_SQL = """
-- Physical partitions, identified independently of where they are mounted
CREATE TABLE IF NOT EXISTS containers (
    id INTEGER PRIMARY KEY,
    partition_id TEXT,
    disk_id TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_containers_identity
    ON containers(COALESCE(partition_id, ''), disk_id);

-- Scan session tracking
CREATE TABLE IF NOT EXISTS scan_sessions (
    id INTEGER PRIMARY KEY,
    container_id INTEGER NOT NULL REFERENCES containers(id) ON DELETE CASCADE,
    root_path TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'in_progress'
        CHECK (status IN ('in_progress', 'completed', 'failed')),
    started_at INTEGER NOT NULL,
    completed_at INTEGER,
    files_processed INTEGER NOT NULL DEFAULT 0,
    files_total INTEGER,
    error_message TEXT
);

CREATE INDEX IF NOT EXISTS idx_scan_sessions_root
    ON scan_sessions(container_id, root_path, status);

-- File inventory, one row per media file per container
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY,
    container_id INTEGER NOT NULL REFERENCES containers(id) ON DELETE CASCADE,
    path TEXT NOT NULL,
    name TEXT NOT NULL,
    media_type TEXT NOT NULL CHECK (media_type IN ('picture', 'video')),
    size INTEGER NOT NULL,
    metadata_timestamp INTEGER,
    filesystem_creation_time INTEGER,
    filesystem_modified_time INTEGER,
    filename_timestamp INTEGER,
    content_fingerprint TEXT NOT NULL,
    last_scan_session_id INTEGER REFERENCES scan_sessions(id) ON DELETE SET NULL,
    UNIQUE(container_id, path, name)
);

CREATE INDEX IF NOT EXISTS idx_files_fingerprint ON files(size, content_fingerprint);
CREATE INDEX IF NOT EXISTS idx_files_metadata_timestamp
    ON files(size, metadata_timestamp) WHERE metadata_timestamp IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_files_media_type ON files(media_type);
CREATE INDEX IF NOT EXISTS idx_files_session ON files(last_scan_session_id);

-- Pending remediation actions; a task row disappears once applied
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY,
    file_id INTEGER REFERENCES files(id) ON DELETE CASCADE,
    operation TEXT NOT NULL CHECK (operation IN ('adjust', 'delete')),
    new_timestamp INTEGER
);

CREATE INDEX IF NOT EXISTS idx_tasks_file_id ON tasks(file_id);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create schema if missing (CREATE IF NOT EXISTS is safe on reopen)."""
    conn.executescript(SCHEMA_SQL)
    conn.commit()
