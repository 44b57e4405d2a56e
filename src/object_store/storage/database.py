"""SQLite index mapping object paths to identifiers."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from object_store.errors import (
    AlreadyExistsError,
    InternalError,
    NotFoundError,
    ObjectNotFoundError,
    StorageIOError,
)
from object_store.logging_config import StructuredLogger
from object_store.models import ObjectRecord

logger = StructuredLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

RECORD_COLUMNS = (
    "object_id, object_path, local_path, content_hash, size_bytes, "
    "created_at, updated_at"
)


class MetadataIndex:
    """Async SQLite wrapper over the `metadata` table.

    The connection is acquired with connect() and released with close();
    any query in between runs on that single connection.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection and run migrations."""
        try:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
            await self._run_migrations()
        except sqlite3.Error as e:
            await self.close()
            raise StorageIOError(
                f"Failed to open index database: {e}", path=self.db_path
            ) from e

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def _run_migrations(self) -> None:
        """Run pending migrations."""
        assert self._connection is not None

        try:
            async with self._connection.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
                current_version = row[0] if row and row[0] else 0
        except sqlite3.OperationalError:
            current_version = 0

        for migration_file in sorted(MIGRATIONS_DIR.glob("*.sql")):
            version = int(migration_file.stem.split("_")[0])
            if version > current_version:
                sql = migration_file.read_text()
                await self._connection.executescript(sql)
                await self._connection.commit()
                logger.info(
                    f"Applied index migration {migration_file.name}",
                    version=version,
                )

    async def schema_version(self) -> int:
        async with self.conn.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            return row[0] if row and row[0] else 0

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get active connection or raise."""
        if self._connection is None:
            raise InternalError("Index database not connected", path=self.db_path)
        return self._connection

    # --- Record Operations ---

    async def create(self, record: ObjectRecord) -> None:
        """Insert a new record.

        Raises:
            AlreadyExistsError: identifier or path already indexed
        """
        try:
            await self.conn.execute(
                f"""
                INSERT INTO metadata ({RECORD_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.object_id,
                    record.object_path,
                    record.local_path,
                    record.content_hash,
                    record.size_bytes,
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
            await self.conn.commit()
        except sqlite3.IntegrityError as e:
            if "object_path" in str(e):
                raise AlreadyExistsError(
                    f"Object path '{record.object_path}' already exists",
                    object_path=record.object_path,
                ) from e
            raise AlreadyExistsError(
                f"Object with ID {record.object_id} already exists",
                object_id=record.object_id,
            ) from e
        except sqlite3.Error as e:
            raise StorageIOError(
                f"Failed to create index record: {e}", object_id=record.object_id
            ) from e

    async def get_by_id(self, object_id: str) -> ObjectRecord:
        """Get record by identifier.

        Raises:
            ObjectNotFoundError: no row with this identifier
        """
        row = await self._fetch_one(
            f"SELECT {RECORD_COLUMNS} FROM metadata WHERE object_id = ?", (object_id,)
        )
        if row is None:
            raise ObjectNotFoundError(object_id, namespace="id")
        return self._row_to_record(row)

    async def get_by_path(self, object_path: str) -> ObjectRecord:
        """Get record by object path.

        Raises:
            ObjectNotFoundError: no row with this path
        """
        row = await self._fetch_one(
            f"SELECT {RECORD_COLUMNS} FROM metadata WHERE object_path = ?",
            (object_path,),
        )
        if row is None:
            raise ObjectNotFoundError(object_path, namespace="path")
        return self._row_to_record(row)

    async def exists(self, object_id: str) -> bool:
        row = await self._fetch_one(
            "SELECT 1 FROM metadata WHERE object_id = ?", (object_id,)
        )
        return row is not None

    async def update(self, record: ObjectRecord) -> None:
        """Rewrite the mutable columns of the row matching record.object_id.

        Raises:
            NotFoundError: no row was affected
            AlreadyExistsError: the new path belongs to another row
        """
        try:
            cursor = await self.conn.execute(
                """
                UPDATE metadata
                SET object_path = ?, local_path = ?, content_hash = ?,
                    size_bytes = ?, updated_at = ?
                WHERE object_id = ?
                """,
                (
                    record.object_path,
                    record.local_path,
                    record.content_hash,
                    record.size_bytes,
                    record.updated_at.isoformat(),
                    record.object_id,
                ),
            )
            affected = cursor.rowcount
            await self.conn.commit()
        except sqlite3.IntegrityError as e:
            raise AlreadyExistsError(
                f"Object path '{record.object_path}' already exists",
                object_path=record.object_path,
            ) from e
        except sqlite3.Error as e:
            raise StorageIOError(
                f"Failed to update index record: {e}", object_id=record.object_id
            ) from e

        if affected == 0:
            raise NotFoundError(
                f"No index record to update for object {record.object_id}",
                object_id=record.object_id,
            )

    async def delete(self, object_id: str) -> None:
        """Delete the row for object_id.

        Raises:
            NotFoundError: no row was affected
        """
        try:
            cursor = await self.conn.execute(
                "DELETE FROM metadata WHERE object_id = ?", (object_id,)
            )
            affected = cursor.rowcount
            await self.conn.commit()
        except sqlite3.Error as e:
            raise StorageIOError(
                f"Failed to delete index record: {e}", object_id=object_id
            ) from e

        if affected == 0:
            raise NotFoundError(
                f"No index record to delete for object {object_id}",
                object_id=object_id,
            )

    async def list(
        self,
        prefix: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ObjectRecord]:
        """List records ordered by path, optionally filtered by path prefix."""
        query = f"SELECT {RECORD_COLUMNS} FROM metadata"
        params: list[Any] = []

        if prefix:
            query += " WHERE substr(object_path, 1, ?) = ?"
            params.extend([len(prefix), prefix])

        query += " ORDER BY object_path LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = await self._fetch_all(query, params)
        return [self._row_to_record(row) for row in rows]

    async def count(self, prefix: str | None = None) -> int:
        """Count records, optionally filtered by path prefix."""
        if prefix:
            row = await self._fetch_one(
                "SELECT COUNT(*) FROM metadata WHERE substr(object_path, 1, ?) = ?",
                (len(prefix), prefix),
            )
        else:
            row = await self._fetch_one("SELECT COUNT(*) FROM metadata", ())
        return row[0] if row else 0

    async def list_ids(self) -> set[str]:
        """Identifiers of all indexed objects."""
        rows = await self._fetch_all("SELECT object_id FROM metadata", ())
        return {row[0] for row in rows}

    # --- Helpers ---

    async def _fetch_one(self, query: str, params: Any) -> aiosqlite.Row | None:
        try:
            async with self.conn.execute(query, params) as cursor:
                return await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageIOError(f"Index query failed: {e}") from e

    async def _fetch_all(self, query: str, params: Any) -> list[aiosqlite.Row]:
        try:
            async with self.conn.execute(query, params) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StorageIOError(f"Index query failed: {e}") from e

    def _row_to_record(self, row: aiosqlite.Row) -> ObjectRecord:
        """Convert database row to ObjectRecord model."""
        return ObjectRecord(
            object_id=row["object_id"],
            object_path=row["object_path"],
            local_path=row["local_path"],
            content_hash=row["content_hash"],
            size_bytes=row["size_bytes"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
