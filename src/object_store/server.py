"""MCP server exposing the object store as tools.

Tool naming convention: objstore.<category>.<action>
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, TypeVar

from mcp.server.fastmcp import FastMCP

from object_store.config import StoreConfig, load_config
from object_store.logging_config import StructuredLogger, configure_logging, correlation_id_var
from object_store.store import ObjectStore

logger = StructuredLogger(__name__)

T = TypeVar("T")


class ObjectStoreServer:
    """MCP server wrapping one ObjectStore."""

    def __init__(self, config: StoreConfig | None = None):
        self.config = config or load_config()
        self.store = ObjectStore.from_config(self.config)

        self.mcp = FastMCP("object-store")

        self._register_tools()

    async def start(self) -> None:
        """Open the store (connects the index, runs recovery)."""
        report = await self.store.open()
        logger.info(
            "Object store opened",
            operation="server.start",
            rolled_forward=len(report.rolled_forward),
            discarded=len(report.discarded),
        )

    async def stop(self) -> None:
        await self.store.close()

    def _register_tools(self) -> None:
        """Register all MCP tools."""
        from object_store.tools.objects import register_object_tools
        from object_store.tools.store import register_store_tools

        register_object_tools(self)
        register_store_tools(self)

    def tool(self, name: str):
        """Register a tool under its canonical name.

        Args:
            name: Canonical tool name (e.g., "objstore.object.read")
        """
        return self.mcp.tool(name=name)


def tool_handler(operation: str):
    """Decorator for tool handlers: correlation ID, timing and structured logging.

    Args:
        operation: Canonical operation name (e.g., "objstore.object.create")
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(server: ObjectStoreServer, **kwargs: Any) -> Any:
            correlation_id = str(uuid.uuid4())
            correlation_id_var.set(correlation_id)

            start_time = time.time()

            logger.debug(
                f"Starting {operation}",
                operation=operation,
                input_keys=list(kwargs.keys())
            )

            try:
                result = await func(server, **kwargs)
                duration_ms = int((time.time() - start_time) * 1000)

                logger.info(
                    f"Completed {operation}",
                    object_id=result.get("object_id") if isinstance(result, dict) else None,
                    operation=operation,
                    duration_ms=duration_ms,
                    success=True
                )
                return result

            except Exception as e:
                duration_ms = int((time.time() - start_time) * 1000)

                logger.error(
                    f"Failed {operation}: {str(e)}",
                    operation=operation,
                    duration_ms=duration_ms,
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise

            finally:
                # Clear correlation ID to prevent leaks
                correlation_id_var.set(None)

        return wrapper
    return decorator


@asynccontextmanager
async def create_server(config: StoreConfig | None = None):
    """Create and manage server lifecycle."""
    server = ObjectStoreServer(config)
    await server.start()
    try:
        yield server
    finally:
        await server.stop()


async def run_server() -> None:
    """Run the MCP server over stdio."""
    config = load_config()

    configure_logging(
        log_level=config.log_level,
        structured=config.structured_logging,
        log_file=config.log_file
    )

    async with create_server(config) as server:
        await server.mcp.run_stdio_async()


def main() -> None:
    """Entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
