"""Test fixtures for object-store."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from object_store.api import create_app
from object_store.config import StoreConfig
from object_store.server import ObjectStoreServer, create_server
from object_store.storage import BlobStore, MetadataIndex
from object_store.store import ObjectStore, open_store


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def config(temp_dir: Path) -> StoreConfig:
    """Create test configuration."""
    return StoreConfig(
        data_dir=temp_dir,
        storage_directory=temp_dir / "storage",
        database_path=temp_dir / "metadata.db",
    )


@pytest.fixture
def blob_store(config: StoreConfig) -> BlobStore:
    """Create test blob store."""
    return BlobStore(config.storage_directory)


@pytest_asyncio.fixture
async def index(config: StoreConfig) -> AsyncGenerator[MetadataIndex, None]:
    """Create a connected test index."""
    idx = MetadataIndex(config.database_path)
    await idx.connect()
    yield idx
    await idx.close()


@pytest_asyncio.fixture
async def store(config: StoreConfig) -> AsyncGenerator[ObjectStore, None]:
    """Create an open object store."""
    async with open_store(config) as s:
        yield s


@pytest_asyncio.fixture
async def server(config: StoreConfig) -> AsyncGenerator[ObjectStoreServer, None]:
    """Create test MCP server."""
    async with create_server(config) as srv:
        yield srv


@pytest_asyncio.fixture
async def client(config: StoreConfig, store: ObjectStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app serving the test store."""
    app = create_app(config)
    # ASGITransport does not run the lifespan; hand the open store over directly
    app.state.store = store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def hello_bytes() -> bytes:
    return b"Hello, world!"


@pytest.fixture
def binary_bytes() -> bytes:
    """Bytes that are not valid UTF-8."""
    return bytes(range(256)) * 4
