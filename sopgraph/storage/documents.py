"""Project document store: one snapshot per project id, last write wins."""

import json
import logging
import sqlite3

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from sopgraph.db.connection import Database, Transaction
from sopgraph.errors import PersistenceError, ProjectNotFoundError
from sopgraph.models import Snapshot
from sopgraph.utils.json import dump_column

logger = logging.getLogger(__name__)


class ProjectStore:
    """Reads and writes whole-project snapshots in the projects table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def save(self, snapshot: Snapshot, tx: Transaction | None = None) -> None:
        """Upsert the snapshot. Raises PersistenceError on any DB failure.

        Pass `tx` to make the write part of a larger transaction.
        """
        document = {
            "meta": snapshot.meta.model_dump(),
            "nodes": [n.model_dump() for n in snapshot.nodes],
            "edges": [e.model_dump() for e in snapshot.edges],
        }
        try:
            await (tx or self._db).execute(
                """
                INSERT OR REPLACE INTO projects
                    (project_id, name, latest_version, document, owner_id,
                     owner_email, status, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    snapshot.meta.id,
                    snapshot.meta.name,
                    snapshot.meta.latest_version,
                    dump_column(document),
                    snapshot.owner_id,
                    snapshot.owner_email,
                    snapshot.status,
                    snapshot.updated_at or "",
                ),
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            logger.error("Saving project %s failed: %s", snapshot.meta.id, e)
            raise PersistenceError("save", snapshot.meta.id) from e

    async def load(self, project_id: str) -> Snapshot:
        """Load a project. Raises ProjectNotFoundError for unknown ids."""
        try:
            row = await self._db.fetchone(
                "SELECT * FROM projects WHERE project_id = ?", (project_id,)
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("load", project_id) from e
        if row is None:
            raise ProjectNotFoundError(project_id)
        return self._row_to_snapshot(row)

    async def list_projects(self, owner_id: str | None = None) -> list[dict]:
        """Project summaries, most recently updated first."""
        sql = (
            "SELECT project_id, name, latest_version, owner_id, owner_email, "
            "status, updated_at FROM projects"
        )
        params: tuple = ()
        if owner_id is not None:
            sql += " WHERE owner_id = ?"
            params = (owner_id,)
        sql += " ORDER BY updated_at DESC"
        try:
            rows = await self._db.fetchall(sql, params)
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("list") from e
        return [dict(row) for row in rows]

    async def delete(self, project_id: str) -> None:
        try:
            cursor = await self._db.execute(
                "DELETE FROM projects WHERE project_id = ?", (project_id,)
            )
        except (aiosqlite.Error, sqlite3.Error) as e:
            raise PersistenceError("delete", project_id) from e
        if cursor.rowcount == 0:
            raise ProjectNotFoundError(project_id)

    @staticmethod
    def _row_to_snapshot(row) -> Snapshot:
        try:
            document = json.loads(row["document"])
            return Snapshot(
                meta=document["meta"],
                nodes=document.get("nodes", []),
                edges=document.get("edges", []),
                updated_at=row["updated_at"] or None,
                owner_id=row["owner_id"],
                owner_email=row["owner_email"],
                status=row["status"],
            )
        except (ValueError, KeyError, PydanticValidationError) as e:
            raise PersistenceError("decode", row["project_id"]) from e
