"""HTTP API for object-store.

Routes:
    POST   /objects?path=<path>      create (raw body)
    GET    /objects                  list
    GET    /objects/{ref}            read (raw body)
    PUT    /objects/{ref}            update (raw body)
    DELETE /objects/{ref}            delete
    GET    /metadata/{ref}           index record
    GET    /health                   blob/index consistency

`ref` may contain slashes. Add ?by=id or ?by=path to look in one namespace
only; without it the reference is tried as an identifier, then as a path.
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Annotated, Any

import uvicorn
from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from object_store import __version__
from object_store.config import StoreConfig, load_config
from object_store.errors import (
    AlreadyExistsError,
    InternalError,
    NotFoundError,
    ObjectStoreError,
    StorageIOError,
    ValidationError,
)
from object_store.logging_config import StructuredLogger, configure_logging, correlation_id_var
from object_store.models import ObjectRecord, make_ref
from object_store.store import ObjectStore, open_store

logger = StructuredLogger(__name__)

ERROR_STATUS: dict[type[ObjectStoreError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    StorageIOError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ByQuery = Annotated[
    str | None,
    Query(description="Restrict lookup to one namespace: 'id' or 'path'"),
]


def status_for(error: ObjectStoreError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_store(request: Request) -> ObjectStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise InternalError("Object store is not open")
    return store


def record_summary(record: ObjectRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", exclude={"local_path"})


def create_app(config: StoreConfig | None = None) -> FastAPI:
    """Build the ASGI app.

    The store is opened by the lifespan handler. Callers that manage the
    store themselves can set app.state.store before serving requests.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with open_store(config) as store:
            app.state.store = store
            logger.info("Object store opened", operation="http.start")
            yield
            app.state.store = None

    app = FastAPI(
        title="object-store",
        description="Single-node object store: byte blobs addressed by path or content identifier",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = None

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        correlation_id_var.set(request.headers.get("x-correlation-id") or str(uuid.uuid4()))
        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.debug(
                f"{request.method} {request.url.path}",
                operation="http.request",
                duration_ms=duration_ms,
            )
            correlation_id_var.set(None)
        return response

    @app.exception_handler(ObjectStoreError)
    async def object_store_error_handler(request: Request, exc: ObjectStoreError):
        code = status_for(exc)
        log = logger.error if code >= 500 else logger.info
        log(
            f"{request.method} {request.url.path} failed: {exc}",
            operation="http.request",
            status_code=code,
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.post("/objects", status_code=status.HTTP_201_CREATED)
    async def create_object(
        request: Request,
        path: Annotated[str | None, Query(description="Object path to create")] = None,
        store: ObjectStore = Depends(get_store),
    ):
        """Create an object from the raw request body."""
        if not path:
            raise ValidationError("Missing 'path' query parameter")
        data = await request.body()
        object_id = await store.create_object(path, data)
        return {"object_id": object_id, "object_path": path, "size_bytes": len(data)}

    @app.get("/objects")
    async def list_objects(
        prefix: str | None = None,
        limit: Annotated[int, Query(ge=1, le=1000)] = 100,
        offset: Annotated[int, Query(ge=0)] = 0,
        store: ObjectStore = Depends(get_store),
    ):
        """List objects ordered by path."""
        records, total = await store.list_objects(prefix=prefix, limit=limit, offset=offset)
        return {
            "objects": [record_summary(record) for record in records],
            "total": total,
            "offset": offset,
            "limit": limit,
        }

    @app.get("/objects/{ref:path}")
    async def read_object(
        ref: str,
        by: ByQuery = None,
        store: ObjectStore = Depends(get_store),
    ):
        """Return the object's bytes."""
        data = await store.read_object(make_ref(ref, by))
        return Response(content=data, media_type="application/octet-stream")

    @app.put("/objects/{ref:path}")
    async def update_object(
        ref: str,
        request: Request,
        by: ByQuery = None,
        store: ObjectStore = Depends(get_store),
    ):
        """Overwrite the object's bytes with the raw request body."""
        data = await request.body()
        record = await store.update_object(make_ref(ref, by), data)
        return {
            "object_id": record.object_id,
            "object_path": record.object_path,
            "updated_at": record.updated_at.isoformat(),
        }

    @app.delete("/objects/{ref:path}")
    async def delete_object(
        ref: str,
        by: ByQuery = None,
        store: ObjectStore = Depends(get_store),
    ):
        """Delete the object."""
        record = await store.delete_object(make_ref(ref, by))
        return {"object_id": record.object_id, "object_path": record.object_path, "deleted": True}

    @app.get("/metadata/{ref:path}")
    async def object_metadata(
        ref: str,
        by: ByQuery = None,
        store: ObjectStore = Depends(get_store),
    ):
        """Return the object's index record."""
        record = await store.stat(make_ref(ref, by))
        return {**record_summary(record), "content_drifted": record.content_drifted}

    @app.get("/health")
    async def health(store: ObjectStore = Depends(get_store)):
        """Report whether the blob directory and the index agree."""
        report = await store.verify()
        return {
            "status": "ok" if report.consistent else "inconsistent",
            **report.model_dump(),
        }

    return app


def main() -> None:
    """Entry point: serve the HTTP API with uvicorn."""
    config = load_config()
    configure_logging(
        log_level=config.log_level,
        structured=config.structured_logging,
        log_file=config.log_file,
    )
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
