"""Tests for the MCP tool handlers and server wiring."""

from __future__ import annotations

import base64
import hashlib

import pytest

from object_store.errors import NotFoundError, ValidationError
from object_store.server import ObjectStoreServer
from object_store.tools.objects import (
    _object_create,
    _object_delete,
    _object_list,
    _object_read,
    _object_stat,
    _object_update,
    decode_content,
    encode_content,
)
from object_store.tools.store import _store_verify


EXPECTED_TOOLS = {
    "objstore.object.create",
    "objstore.object.read",
    "objstore.object.update",
    "objstore.object.delete",
    "objstore.object.stat",
    "objstore.object.list",
    "objstore.store.verify",
}


@pytest.mark.asyncio
async def test_tools_registered_with_canonical_names(server: ObjectStoreServer):
    tools = await server.mcp.list_tools()
    names = {tool.name for tool in tools}

    assert EXPECTED_TOOLS <= names


@pytest.mark.asyncio
async def test_text_object_workflow(server: ObjectStoreServer):
    created = await _object_create(server, path="notes/todo.txt", content="buy milk")
    object_id = created["object_id"]
    assert object_id == hashlib.sha256(b"buy milk").hexdigest()

    read = await _object_read(server, ref="notes/todo.txt")
    assert read["content"] == "buy milk"
    assert read["object_id"] == object_id

    updated = await _object_update(server, ref=object_id, by="id", content="buy bread")
    assert updated["object_id"] == object_id
    assert updated["content_hash"] == hashlib.sha256(b"buy bread").hexdigest()

    stat = await _object_stat(server, ref="notes/todo.txt", by="path")
    assert stat["content_drifted"] is True
    assert stat["size_bytes"] == len(b"buy bread")

    deleted = await _object_delete(server, ref="notes/todo.txt")
    assert deleted == {
        "object_id": object_id,
        "object_path": "notes/todo.txt",
        "deleted": True,
    }

    with pytest.raises(NotFoundError):
        await _object_read(server, ref="notes/todo.txt")


@pytest.mark.asyncio
async def test_binary_content_via_base64(server: ObjectStoreServer, binary_bytes: bytes):
    encoded = base64.b64encode(binary_bytes).decode("ascii")
    await _object_create(server, path="blob.bin", content=encoded, encoding="base64")

    assert await server.store.read_object("blob.bin") == binary_bytes

    read = await _object_read(server, ref="blob.bin", encoding="base64")
    assert base64.b64decode(read["content"]) == binary_bytes

    with pytest.raises(ValidationError, match="base64"):
        await _object_read(server, ref="blob.bin")


@pytest.mark.asyncio
async def test_read_goes_through_store(server: ObjectStoreServer, monkeypatch):
    await _object_create(server, path="routed", content="via store")

    calls = []
    original = server.store.read_with_record

    async def recording_read(ref):
        calls.append(ref)
        return await original(ref)

    monkeypatch.setattr(server.store, "read_with_record", recording_read)

    read = await _object_read(server, ref="routed", by="path")

    assert read["content"] == "via store"
    assert [str(ref) for ref in calls] == ["routed"]


@pytest.mark.asyncio
async def test_list_tool(server: ObjectStoreServer):
    for i in range(3):
        await _object_create(server, path=f"items/{i}", content=f"item {i}")

    result = await _object_list(server, prefix="items/", limit=2)

    assert result["total"] == 3
    assert [o["object_path"] for o in result["objects"]] == ["items/0", "items/1"]


@pytest.mark.asyncio
async def test_list_limit_is_capped(server: ObjectStoreServer):
    result = await _object_list(server, limit=50_000)
    assert result["limit"] == 1000


@pytest.mark.asyncio
async def test_verify_tool(server: ObjectStoreServer):
    await _object_create(server, path="a", content="a")

    result = await _store_verify(server)

    assert result["consistent"] is True
    assert result["record_count"] == 1


@pytest.mark.asyncio
async def test_create_requires_path(server: ObjectStoreServer):
    with pytest.raises(ValidationError):
        await _object_create(server, path="", content="x")


class TestContentEncoding:
    def test_utf8_round_trip(self):
        assert decode_content("héllo", "utf-8") == "héllo".encode("utf-8")
        assert encode_content("héllo".encode("utf-8"), "utf-8") == "héllo"

    def test_invalid_base64(self):
        with pytest.raises(ValidationError):
            decode_content("not base64!!", "base64")

    def test_unknown_encoding(self):
        with pytest.raises(ValidationError):
            decode_content("x", "latin-1")
        with pytest.raises(ValidationError):
            encode_content(b"x", "latin-1")
