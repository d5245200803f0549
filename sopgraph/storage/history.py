"""Append-only version history backed by SQLite."""

import json
import sqlite3

import aiosqlite

from sopgraph.db.connection import Database, Transaction
from sopgraph.errors import PersistenceError
from sopgraph.models import Editor, VersionRecord
from sopgraph.utils.json import dump_column, parse_json_list, parse_json_or_none


class VersionLog:
    """Committed checkpoints per project. Records are never updated."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def append(self, record: VersionRecord, tx: Transaction | None = None) -> int:
        """Append a record and return the assigned sequence_num."""
        snapshot = {
            "meta": record.meta.model_dump(),
            "nodes": [n.model_dump() for n in record.nodes],
            "edges": [e.model_dump() for e in record.edges],
        }
        try:
            cursor = await (tx or self._db).execute(
                """
                INSERT INTO versions
                    (project_id, version_str, version_number, type, snapshot,
                     change_log, editor, remark, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.project_id,
                    record.version_str,
                    record.version_number,
                    record.type,
                    dump_column(snapshot),
                    dump_column(record.change_log),
                    dump_column(record.editor.model_dump()) if record.editor else None,
                    record.remark,
                    record.created_at,
                ),
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("append version", record.project_id) from e
        assert cursor.lastrowid is not None
        return cursor.lastrowid

    async def list_versions(self, project_id: str) -> list[VersionRecord]:
        """All records for a project, newest version first."""
        try:
            rows = await self._db.fetchall(
                "SELECT * FROM versions WHERE project_id = ? "
                "ORDER BY version_number DESC, sequence_num DESC",
                (project_id,),
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("list versions", project_id) from e
        return [self._row_to_record(row) for row in rows]

    async def delete_project(self, project_id: str) -> None:
        try:
            await self._db.execute(
                "DELETE FROM versions WHERE project_id = ?", (project_id,)
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("delete versions", project_id) from e

    @staticmethod
    def _row_to_record(row) -> VersionRecord:
        snapshot = json.loads(row["snapshot"])
        editor = parse_json_or_none(row["editor"])
        return VersionRecord(
            project_id=row["project_id"],
            version_str=row["version_str"],
            version_number=row["version_number"],
            type=row["type"],
            meta=snapshot["meta"],
            nodes=snapshot.get("nodes", []),
            edges=snapshot.get("edges", []),
            change_log=parse_json_list(row["change_log"]),
            created_at=row["created_at"],
            editor=Editor.model_validate(editor) if isinstance(editor, dict) else None,
            remark=row["remark"],
            sequence_num=row["sequence_num"],
        )
