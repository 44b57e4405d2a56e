"""Core data models for object-store.

Identifier semantics:
- object_id: SHA256 (hex) of the bytes the object was created with. It is a
  stable handle: updates never change it.
- content_hash: SHA256 (hex) of the bytes currently stored. Equal to
  object_id until the first update.
- object_path: caller-chosen unique name.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, Field

from object_store.errors import ValidationError


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ObjectRecord(BaseModel):
    """Index row for one live object."""
    object_id: str
    object_path: str
    local_path: str
    content_hash: str
    size_bytes: int = Field(ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def content_drifted(self) -> bool:
        """True once an update has replaced the initial content."""
        return self.content_hash != self.object_id


# --- References ---

class ById(BaseModel):
    """Reference an object by its identifier only."""
    kind: Literal["id"] = "id"
    object_id: str

    def __str__(self) -> str:
        return self.object_id


class ByPath(BaseModel):
    """Reference an object by its path only."""
    kind: Literal["path"] = "path"
    object_path: str

    def __str__(self) -> str:
        return self.object_path


ObjectRef = Union[ById, ByPath]

REF_NAMESPACES = ("id", "path")


def make_ref(token: str, by: str | None = None) -> ObjectRef | str:
    """Build a reference from a surface token and optional namespace selector.

    Args:
        token: Identifier or path supplied by the caller
        by: "id", "path", or None to keep the bare token (probes id, then path)

    Returns:
        ById / ByPath, or the bare token when no namespace was given
    """
    if not token:
        raise ValidationError("Object reference must not be empty")
    if by is None:
        return token
    if by == "id":
        return ById(object_id=token)
    if by == "path":
        return ByPath(object_path=token)
    raise ValidationError(
        f"Unknown reference namespace '{by}', expected one of {', '.join(REF_NAMESPACES)}",
        by=by,
    )


# --- Maintenance reports ---

class RecoveryReport(BaseModel):
    """Outcome of startup recovery over the staging area."""
    rolled_forward: list[str] = Field(default_factory=list)
    discarded: list[str] = Field(default_factory=list)


class ConsistencyReport(BaseModel):
    """Differences between the blob directory and the index."""
    blob_count: int = 0
    record_count: int = 0
    orphan_blobs: list[str] = Field(default_factory=list)  # blob without row
    missing_blobs: list[str] = Field(default_factory=list)  # row without blob
    corrupted: list[str] = Field(default_factory=list)  # digest != content_hash

    @property
    def consistent(self) -> bool:
        return not (self.orphan_blobs or self.missing_blobs or self.corrupted)
