"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    latest_version TEXT NOT NULL,
    document TEXT NOT NULL,
    owner_id TEXT,
    owner_email TEXT,
    status TEXT,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_projects_owner_id ON projects(owner_id);
CREATE INDEX IF NOT EXISTS idx_projects_updated_at ON projects(updated_at);

CREATE TABLE IF NOT EXISTS versions (
    sequence_num INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id TEXT NOT NULL,
    version_str TEXT NOT NULL,
    version_number INTEGER NOT NULL,
    type TEXT NOT NULL,
    snapshot TEXT NOT NULL,
    change_log TEXT NOT NULL DEFAULT '[]',
    editor TEXT,
    remark TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_versions_project_id ON versions(project_id);
CREATE INDEX IF NOT EXISTS idx_versions_number ON versions(project_id, version_number);
"""
