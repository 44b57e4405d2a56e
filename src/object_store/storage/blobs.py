"""Blob store for object-store.

Layout:
    {storage_dir}/{object_id}                         # published blobs
    {storage_dir}/.staging/{object_id}.{token}.staged # not yet published

The staging area is a directory, so it never shows up in list(). Staged
files carry the id they were written for, which lets startup recovery
decide whether to publish or discard them.
"""

from __future__ import annotations

import hashlib
import os
import uuid
from pathlib import Path

from object_store.errors import (
    AlreadyExistsError,
    BlobNotFoundError,
    StorageIOError,
    ValidationError,
)


STAGING_DIRNAME = ".staging"
STAGED_SUFFIX = ".staged"


class BlobStore:
    """Key -> bytes storage on local disk, keyed by opaque identifier."""

    def __init__(self, storage_dir: Path):
        self.storage_dir = storage_dir
        self.staging_dir = storage_dir / STAGING_DIRNAME
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.staging_dir.mkdir(exist_ok=True)

    @staticmethod
    def hash_content(data: bytes) -> str:
        """SHA256 (hex) of data, without storing it."""
        return hashlib.sha256(data).hexdigest()

    def path_for(self, object_id: str) -> Path:
        """Final on-disk location of a blob."""
        if (
            not object_id
            or object_id.startswith(".")
            or "/" in object_id
            or os.sep in object_id
        ):
            raise ValidationError("Invalid blob identifier", object_id=object_id)
        return self.storage_dir / object_id

    def exists(self, object_id: str) -> bool:
        return self.path_for(object_id).is_file()

    # --- CRUD ---

    def create(self, object_id: str, data: bytes) -> None:
        """Write a new blob.

        Raises:
            AlreadyExistsError: a blob with this id is already present
            StorageIOError: the write failed
        """
        blob_path = self.path_for(object_id)
        try:
            # "x" mode fails if the file exists, so concurrent creators cannot
            # both succeed
            with open(blob_path, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise AlreadyExistsError(
                f"Blob '{object_id}' already exists", object_id=object_id
            ) from e
        except OSError as e:
            raise StorageIOError(
                f"Failed to write blob: {e}", object_id=object_id, path=blob_path
            ) from e

    def read(self, object_id: str) -> bytes:
        """Return the bytes of a blob.

        Raises:
            BlobNotFoundError: no blob with this id
            StorageIOError: the read failed
        """
        blob_path = self.path_for(object_id)
        try:
            return blob_path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(object_id) from e
        except OSError as e:
            raise StorageIOError(
                f"Failed to read blob: {e}", object_id=object_id, path=blob_path
            ) from e

    def update(self, object_id: str, data: bytes) -> None:
        """Overwrite an existing blob.

        The new bytes are written to the staging area and moved over the old
        blob with os.replace(), so readers see either the old or the new
        content, never a truncated file.

        Raises:
            BlobNotFoundError: no blob with this id
            StorageIOError: the write failed
        """
        blob_path = self.path_for(object_id)
        if not blob_path.is_file():
            raise BlobNotFoundError(object_id)

        staged = self.stage(object_id, data)
        try:
            os.replace(staged, blob_path)
        except OSError as e:
            self.discard(staged)
            raise StorageIOError(
                f"Failed to overwrite blob: {e}", object_id=object_id, path=blob_path
            ) from e

    def delete(self, object_id: str) -> None:
        """Remove a blob.

        Raises:
            BlobNotFoundError: no blob with this id
            StorageIOError: the unlink failed
        """
        blob_path = self.path_for(object_id)
        try:
            blob_path.unlink()
        except FileNotFoundError as e:
            raise BlobNotFoundError(object_id) from e
        except OSError as e:
            raise StorageIOError(
                f"Failed to delete blob: {e}", object_id=object_id, path=blob_path
            ) from e

    def list(self) -> set[str]:
        """Ids of all published blobs (non-recursive, files only)."""
        try:
            return {
                entry.name for entry in self.storage_dir.iterdir() if entry.is_file()
            }
        except OSError as e:
            raise StorageIOError(
                f"Failed to list storage directory: {e}", path=self.storage_dir
            ) from e

    # --- Staging ---

    def stage(self, object_id: str, data: bytes) -> Path:
        """Write data under a unique staged name and return its path.

        The blob is not visible through read() or list() until commit().
        """
        self.path_for(object_id)  # validates the id
        staged = self.staging_dir / f"{object_id}.{uuid.uuid4().hex}{STAGED_SUFFIX}"
        try:
            staged.write_bytes(data)
        except OSError as e:
            staged.unlink(missing_ok=True)
            raise StorageIOError(
                f"Failed to stage blob: {e}", object_id=object_id, path=staged
            ) from e
        return staged

    def commit(self, staged: Path, object_id: str, overwrite: bool = False) -> Path:
        """Publish a staged file under its final name.

        Args:
            staged: Path returned by stage()
            object_id: Final blob name
            overwrite: Replace a blob already published under object_id

        Raises:
            AlreadyExistsError: a blob with this id is already published and
                overwrite is False
            StorageIOError: the rename failed
        """
        blob_path = self.path_for(object_id)
        if not overwrite and blob_path.exists():
            raise AlreadyExistsError(
                f"Blob '{object_id}' already exists", object_id=object_id
            )
        try:
            os.replace(staged, blob_path)
        except OSError as e:
            raise StorageIOError(
                f"Failed to publish staged blob: {e}",
                object_id=object_id,
                path=staged,
            ) from e
        return blob_path

    def discard(self, staged: Path) -> None:
        """Remove a staged file; missing files are ignored."""
        try:
            staged.unlink(missing_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"Failed to discard staged blob: {e}", path=staged
            ) from e

    def list_staged(self) -> list[tuple[str, Path]]:
        """(object_id, staged path) for every file in the staging area."""
        try:
            entries = sorted(self.staging_dir.iterdir())
        except OSError as e:
            raise StorageIOError(
                f"Failed to list staging directory: {e}", path=self.staging_dir
            ) from e

        staged = []
        for entry in entries:
            if (
                entry.is_file()
                and entry.name.endswith(STAGED_SUFFIX)
                and not entry.name.startswith(".")
            ):
                staged.append((entry.name.split(".", 1)[0], entry))
        return staged
