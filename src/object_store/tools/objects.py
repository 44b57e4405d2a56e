"""Object CRUD tools: objstore.object.*

Content crosses the MCP boundary as a string. `encoding` selects how it maps
to bytes: "utf-8" (default) for text, "base64" for arbitrary binary data.
References accept an optional `by` selector ("id" or "path"); without it the
reference is tried as an identifier first, then as a path.
"""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any

from object_store.errors import ValidationError
from object_store.models import ObjectRecord, make_ref
from object_store.server import tool_handler

if TYPE_CHECKING:
    from object_store.server import ObjectStoreServer

ENCODINGS = ("utf-8", "base64")
MAX_LIST_LIMIT = 1000


def decode_content(content: str, encoding: str) -> bytes:
    """Convert tool input to bytes."""
    if encoding == "utf-8":
        return content.encode("utf-8")
    if encoding == "base64":
        try:
            return base64.b64decode(content, validate=True)
        except binascii.Error as e:
            raise ValidationError(f"Content is not valid base64: {e}") from e
    raise ValidationError(
        f"Unknown encoding '{encoding}', expected one of {', '.join(ENCODINGS)}",
        encoding=encoding,
    )


def encode_content(data: bytes, encoding: str) -> str:
    """Convert stored bytes to tool output."""
    if encoding == "utf-8":
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(
                "Object content is not valid UTF-8; read it with encoding='base64'"
            ) from e
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    raise ValidationError(
        f"Unknown encoding '{encoding}', expected one of {', '.join(ENCODINGS)}",
        encoding=encoding,
    )


def record_to_dict(record: ObjectRecord) -> dict[str, Any]:
    data = record.model_dump(mode="json")
    data["content_drifted"] = record.content_drifted
    return data


def register_object_tools(server: ObjectStoreServer) -> None:
    """Register object CRUD tools."""

    @server.tool("objstore.object.create")
    async def objstore_object_create(
        path: str,
        content: str,
        encoding: str = "utf-8",
    ) -> dict[str, Any]:
        """Store content under a path. Returns the object's identifier.

        Args:
            path: Unique object path (e.g., "reports/2024/q1.txt")
            content: Object content
            encoding: "utf-8" (default) or "base64"
        """
        return await _object_create(server, path=path, content=content, encoding=encoding)

    @server.tool("objstore.object.read")
    async def objstore_object_read(
        ref: str,
        by: str | None = None,
        encoding: str = "utf-8",
    ) -> dict[str, Any]:
        """Read an object's content.

        Args:
            ref: Object identifier or path
            by: "id" or "path" to restrict lookup to one namespace
            encoding: "utf-8" (default) or "base64"
        """
        return await _object_read(server, ref=ref, by=by, encoding=encoding)

    @server.tool("objstore.object.update")
    async def objstore_object_update(
        ref: str,
        content: str,
        by: str | None = None,
        encoding: str = "utf-8",
    ) -> dict[str, Any]:
        """Overwrite an object's content. The identifier does not change.

        Args:
            ref: Object identifier or path
            content: New content
            by: "id" or "path" to restrict lookup to one namespace
            encoding: "utf-8" (default) or "base64"
        """
        return await _object_update(
            server, ref=ref, content=content, by=by, encoding=encoding
        )

    @server.tool("objstore.object.delete")
    async def objstore_object_delete(ref: str, by: str | None = None) -> dict[str, Any]:
        """Delete an object.

        Args:
            ref: Object identifier or path
            by: "id" or "path" to restrict lookup to one namespace
        """
        return await _object_delete(server, ref=ref, by=by)

    @server.tool("objstore.object.stat")
    async def objstore_object_stat(ref: str, by: str | None = None) -> dict[str, Any]:
        """Get an object's index record without reading its content.

        Args:
            ref: Object identifier or path
            by: "id" or "path" to restrict lookup to one namespace
        """
        return await _object_stat(server, ref=ref, by=by)

    @server.tool("objstore.object.list")
    async def objstore_object_list(
        prefix: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict[str, Any]:
        """List objects ordered by path.

        Args:
            prefix: Only paths starting with this prefix
            limit: Max results (default 100, max 1000)
            offset: Pagination offset
        """
        return await _object_list(server, prefix=prefix, limit=limit, offset=offset)


@tool_handler("objstore.object.create")
async def _object_create(
    server: ObjectStoreServer,
    path: str,
    content: str,
    encoding: str = "utf-8",
) -> dict[str, Any]:
    if not path:
        raise ValidationError("Missing object path")
    data = decode_content(content, encoding)
    object_id = await server.store.create_object(path, data)
    return {
        "object_id": object_id,
        "object_path": path,
        "size_bytes": len(data),
    }


@tool_handler("objstore.object.read")
async def _object_read(
    server: ObjectStoreServer,
    ref: str,
    by: str | None = None,
    encoding: str = "utf-8",
) -> dict[str, Any]:
    record, data = await server.store.read_with_record(make_ref(ref, by))
    return {
        "object_id": record.object_id,
        "object_path": record.object_path,
        "content": encode_content(data, encoding),
        "encoding": encoding,
        "size_bytes": len(data),
    }


@tool_handler("objstore.object.update")
async def _object_update(
    server: ObjectStoreServer,
    ref: str,
    content: str,
    by: str | None = None,
    encoding: str = "utf-8",
) -> dict[str, Any]:
    data = decode_content(content, encoding)
    record = await server.store.update_object(make_ref(ref, by), data)
    return {
        "object_id": record.object_id,
        "object_path": record.object_path,
        "content_hash": record.content_hash,
        "updated_at": record.updated_at.isoformat(),
    }


@tool_handler("objstore.object.delete")
async def _object_delete(
    server: ObjectStoreServer,
    ref: str,
    by: str | None = None,
) -> dict[str, Any]:
    record = await server.store.delete_object(make_ref(ref, by))
    return {
        "object_id": record.object_id,
        "object_path": record.object_path,
        "deleted": True,
    }


@tool_handler("objstore.object.stat")
async def _object_stat(
    server: ObjectStoreServer,
    ref: str,
    by: str | None = None,
) -> dict[str, Any]:
    record = await server.store.stat(make_ref(ref, by))
    return record_to_dict(record)


@tool_handler("objstore.object.list")
async def _object_list(
    server: ObjectStoreServer,
    prefix: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> dict[str, Any]:
    limit = min(limit, MAX_LIST_LIMIT)
    records, total = await server.store.list_objects(
        prefix=prefix, limit=limit, offset=offset
    )
    return {
        "objects": [record_to_dict(record) for record in records],
        "total": total,
        "offset": offset,
        "limit": limit,
    }
