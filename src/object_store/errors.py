"""Exceptions for object-store with structured context."""

from typing import Any


class ObjectStoreError(Exception):
    """Base error for object-store."""

    kind = "error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context."""
        parts = [self.message]

        if self.context:
            ctx_parts = [f"{k}={v}" for k, v in self.context.items() if v is not None]
            if ctx_parts:
                parts.append(f"({', '.join(ctx_parts)})")

        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used by the HTTP and MCP surfaces."""
        return {
            "error": self.kind,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items() if v is not None},
        }


class NotFoundError(ObjectStoreError):
    """No blob or index record for the given reference."""

    kind = "not_found"


class AlreadyExistsError(ObjectStoreError):
    """Identifier or path collision on create."""

    kind = "already_exists"


class ValidationError(ObjectStoreError):
    """Missing or malformed caller input."""

    kind = "validation"


class StorageIOError(ObjectStoreError):
    """Underlying disk or database failure."""

    kind = "io_failure"


class InternalError(ObjectStoreError):
    """Backend is in a state it should never be in."""

    kind = "internal"


class ObjectNotFoundError(NotFoundError):
    """Reference did not resolve to any index record."""

    def __init__(self, ref: str, namespace: str | None = None, **context: Any):
        if namespace:
            msg = f"Object '{ref}' not found by {namespace}"
        else:
            msg = f"Object '{ref}' not found by id or path"
        super().__init__(msg, ref=ref, namespace=namespace, **context)


class BlobNotFoundError(NotFoundError):
    """Blob file missing from the storage directory."""

    def __init__(self, object_id: str, **context: Any):
        super().__init__(
            f"Blob '{object_id}' not found in storage directory",
            object_id=object_id,
            **context
        )
