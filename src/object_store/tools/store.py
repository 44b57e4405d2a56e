"""Store maintenance tools: objstore.store.*"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from object_store.server import tool_handler

if TYPE_CHECKING:
    from object_store.server import ObjectStoreServer


def register_store_tools(server: ObjectStoreServer) -> None:
    """Register store maintenance tools."""

    @server.tool("objstore.store.verify")
    async def objstore_store_verify() -> dict[str, Any]:
        """Compare the blob directory with the index and report differences.

        Reports orphan blobs (no index record), missing blobs (record without
        a file) and corrupted blobs (content does not match the recorded hash).
        """
        return await _store_verify(server)


@tool_handler("objstore.store.verify")
async def _store_verify(server: ObjectStoreServer) -> dict[str, Any]:
    report = await server.store.verify()
    return {
        **report.model_dump(),
        "consistent": report.consistent,
    }
