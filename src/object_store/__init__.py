"""object-store: a single-node object store.

Byte blobs are written under a caller-chosen path and addressed afterwards
by that path or by their content identifier (SHA256 of the initial bytes).

Key features:
- Content-addressed blob directory on local disk
- SQLite index mapping paths to identifiers
- Staged creates with startup recovery
- HTTP API (FastAPI) and MCP tool server surfaces

Tool naming convention: objstore.<category>.<action>
"""

__version__ = "0.1.0"

from object_store.models import ById, ByPath, ObjectRecord
from object_store.store import ObjectStore, compute_object_id, open_store

__all__ = [
    "ById",
    "ByPath",
    "ObjectRecord",
    "ObjectStore",
    "compute_object_id",
    "open_store",
    "__version__",
]
