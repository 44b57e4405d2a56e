"""MCP tools for object-store.

Tools use canonical naming: objstore.<category>.<action>
"""

from object_store.tools.objects import register_object_tools
from object_store.tools.store import register_store_tools

__all__ = [
    "register_object_tools",
    "register_store_tools",
]
