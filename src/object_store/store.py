"""Object store: one CRUD facade over the blob store and the metadata index.

Write ordering:
- create: stage blob -> insert index row -> publish blob. A crash between
  the last two steps leaves a staged blob whose row exists; recover() rolls
  it forward on the next open. A crash before the insert leaves a staged
  blob without a row; recover() discards it.
- update: overwrite blob -> refresh index row.
- delete: remove blob -> remove index row. No compensation on this path.

Identifiers are stable handles: object_id is the SHA256 of the content the
object was created with and is never recomputed. The index row's
content_hash tracks the current bytes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from object_store.config import StoreConfig, ensure_directories, load_config
from object_store.errors import (
    AlreadyExistsError,
    BlobNotFoundError,
    NotFoundError,
    ObjectNotFoundError,
    ObjectStoreError,
    ValidationError,
)
from object_store.logging_config import StructuredLogger
from object_store.models import (
    ById,
    ByPath,
    ConsistencyReport,
    ObjectRecord,
    ObjectRef,
    RecoveryReport,
    utcnow,
)
from object_store.storage import BlobStore, MetadataIndex

logger = StructuredLogger(__name__)

VERIFY_PAGE_SIZE = 500


def compute_object_id(data: bytes) -> str:
    """Identifier for new content: lowercase hex SHA256."""
    return BlobStore.hash_content(data)


class ObjectStore:
    """Reconciles a BlobStore and a MetadataIndex into one object store.

    Concurrency Model:
    - Single process, no application-level locks
    - Concurrent creates of identical content are serialized by the index
      primary key; the loser gets AlreadyExistsError
    """

    def __init__(self, blobs: BlobStore, index: MetadataIndex):
        self.blobs = blobs
        self.index = index

    @classmethod
    def from_config(cls, config: StoreConfig) -> ObjectStore:
        ensure_directories(config)
        return cls(
            BlobStore(config.storage_directory),
            MetadataIndex(config.database_path),
        )

    async def open(self) -> RecoveryReport:
        """Connect the index and recover interrupted creates."""
        await self.index.connect()
        try:
            return await self.recover()
        except ObjectStoreError:
            await self.index.close()
            raise

    async def close(self) -> None:
        await self.index.close()

    # --- CRUD ---

    async def create_object(self, object_path: str, data: bytes) -> str:
        """Store data under object_path and return its identifier.

        Raises:
            ValidationError: empty path
            AlreadyExistsError: identical content is already stored (under
                any path), or the path is taken
        """
        if not object_path:
            raise ValidationError("Object path must not be empty")

        object_id = compute_object_id(data)
        if await self.index.exists(object_id):
            raise AlreadyExistsError(
                f"Object with ID {object_id} already exists",
                object_id=object_id,
                object_path=object_path,
            )

        now = utcnow()
        record = ObjectRecord(
            object_id=object_id,
            object_path=object_path,
            local_path=str(self.blobs.path_for(object_id)),
            content_hash=object_id,
            size_bytes=len(data),
            created_at=now,
            updated_at=now,
        )

        staged = self.blobs.stage(object_id, data)
        try:
            await self.index.create(record)
        except ObjectStoreError:
            self._discard_staged(staged, object_id)
            raise

        # The row insert won the id, so a blob already at the final name is
        # an unindexed orphan and gets replaced
        if self.blobs.exists(object_id):
            logger.warning(
                "Replacing unindexed blob",
                object_id=object_id,
                operation="create",
            )

        try:
            self.blobs.commit(staged, object_id, overwrite=True)
        except ObjectStoreError as e:
            logger.error(
                f"Failed to publish blob, removing index record: {e}",
                object_id=object_id,
                operation="create",
            )
            await self._remove_record(object_id)
            self._discard_staged(staged, object_id)
            raise

        logger.info(
            f"Created object {object_path}",
            object_id=object_id,
            operation="create",
            size_bytes=len(data),
        )
        return object_id

    async def read_object(self, ref: ObjectRef | str) -> bytes:
        """Return the current bytes of the referenced object."""
        _, data = await self.read_with_record(ref)
        return data

    async def read_with_record(self, ref: ObjectRef | str) -> tuple[ObjectRecord, bytes]:
        """Return the index record together with the current bytes."""
        record = await self.resolve(ref)
        return record, self.blobs.read(record.object_id)

    async def update_object(self, ref: ObjectRef | str, data: bytes) -> ObjectRecord:
        """Overwrite the referenced object's bytes.

        The identifier is kept; content_hash, size_bytes and updated_at are
        refreshed.
        """
        record = await self.resolve(ref)
        self.blobs.update(record.object_id, data)

        updated = record.model_copy(
            update={
                "content_hash": compute_object_id(data),
                "size_bytes": len(data),
                "updated_at": utcnow(),
            }
        )
        await self.index.update(updated)

        logger.info(
            f"Updated object {record.object_path}",
            object_id=record.object_id,
            operation="update",
            size_bytes=len(data),
        )
        return updated

    async def delete_object(self, ref: ObjectRef | str) -> ObjectRecord:
        """Delete the referenced object's blob, then its index record."""
        record = await self.resolve(ref)

        try:
            self.blobs.delete(record.object_id)
        except BlobNotFoundError:
            # Row without blob: still drop the row so it can be cleaned up
            logger.warning(
                "Blob already missing, removing dangling index record",
                object_id=record.object_id,
                operation="delete",
            )

        try:
            await self.index.delete(record.object_id)
        except ObjectStoreError as e:
            logger.error(
                f"Blob deleted but index record remains: {e}",
                object_id=record.object_id,
                operation="delete",
            )
            raise

        logger.info(
            f"Deleted object {record.object_path}",
            object_id=record.object_id,
            operation="delete",
        )
        return record

    # --- Lookup ---

    async def resolve(self, ref: ObjectRef | str) -> ObjectRecord:
        """Resolve a reference to its index record.

        ById and ByPath look in one namespace only. A bare string is tried
        as an identifier first, then as a path; a path that happens to equal
        another object's identifier resolves to that other object.

        Raises:
            ObjectNotFoundError: nothing matched
        """
        if isinstance(ref, ById):
            return await self.index.get_by_id(ref.object_id)
        if isinstance(ref, ByPath):
            return await self.index.get_by_path(ref.object_path)

        if not ref:
            raise ValidationError("Object reference must not be empty")

        try:
            return await self.index.get_by_id(ref)
        except NotFoundError:
            pass  # not an identifier; try the path namespace

        try:
            return await self.index.get_by_path(ref)
        except NotFoundError as e:
            raise ObjectNotFoundError(ref) from e

    async def stat(self, ref: ObjectRef | str) -> ObjectRecord:
        return await self.resolve(ref)

    async def list_objects(
        self,
        prefix: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[ObjectRecord], int]:
        """Page through records ordered by path. Returns (records, total)."""
        if limit < 1 or offset < 0:
            raise ValidationError(
                "limit must be positive and offset non-negative",
                limit=limit,
                offset=offset,
            )
        records = await self.index.list(prefix=prefix, limit=limit, offset=offset)
        total = await self.index.count(prefix=prefix)
        return records, total

    # --- Maintenance ---

    async def recover(self) -> RecoveryReport:
        """Finish or discard creates interrupted before their blob was published.

        A staged blob whose index row exists and whose final blob is missing
        is published; every other staged file is discarded.
        """
        report = RecoveryReport()
        indexed = await self.index.list_ids()

        for object_id, staged in self.blobs.list_staged():
            if object_id in indexed and not self.blobs.exists(object_id):
                self.blobs.commit(staged, object_id)
                report.rolled_forward.append(object_id)
            else:
                self.blobs.discard(staged)
                report.discarded.append(staged.name)

        if report.rolled_forward or report.discarded:
            logger.warning(
                "Recovered interrupted writes",
                operation="recover",
                rolled_forward=len(report.rolled_forward),
                discarded=len(report.discarded),
            )
        return report

    async def verify(self) -> ConsistencyReport:
        """Compare the blob directory with the index."""
        blob_ids = self.blobs.list()
        records: dict[str, ObjectRecord] = {}

        offset = 0
        while True:
            page = await self.index.list(limit=VERIFY_PAGE_SIZE, offset=offset)
            records.update((record.object_id, record) for record in page)
            if len(page) < VERIFY_PAGE_SIZE:
                break
            offset += VERIFY_PAGE_SIZE

        report = ConsistencyReport(
            blob_count=len(blob_ids),
            record_count=len(records),
            orphan_blobs=sorted(blob_ids - records.keys()),
            missing_blobs=sorted(records.keys() - blob_ids),
        )

        for object_id in sorted(blob_ids & records.keys()):
            digest = compute_object_id(self.blobs.read(object_id))
            if digest != records[object_id].content_hash:
                report.corrupted.append(object_id)

        if not report.consistent:
            logger.warning(
                "Blob directory and index disagree",
                operation="verify",
                orphan_blobs=len(report.orphan_blobs),
                missing_blobs=len(report.missing_blobs),
                corrupted=len(report.corrupted),
            )
        return report

    # --- Compensation helpers ---

    async def _remove_record(self, object_id: str) -> None:
        try:
            await self.index.delete(object_id)
        except ObjectStoreError as e:
            logger.error(
                f"Failed to remove index record during rollback: {e}",
                object_id=object_id,
                operation="create",
            )

    def _discard_staged(self, staged: Path, object_id: str) -> None:
        try:
            self.blobs.discard(staged)
        except ObjectStoreError as e:
            # Left for recover() on the next open
            logger.error(
                f"Failed to discard staged blob: {e}",
                object_id=object_id,
                operation="create",
            )


@asynccontextmanager
async def open_store(config: StoreConfig | None = None) -> AsyncIterator[ObjectStore]:
    """Open an ObjectStore for the duration of the block; always closes."""
    store = ObjectStore.from_config(config or load_config())
    await store.open()
    try:
        yield store
    finally:
        await store.close()
