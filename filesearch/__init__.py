"""
file-search - CLI and MCP server for the Gemini File Search API.

Manage file search stores, upload and import documents, and ask
natural-language questions answered from a store's indexed content.

Architecture:
- Commands accept human display names; the resolver maps them to
  resource IDs through a process-lifetime cache
- Shell completion reads the same cache without blocking the terminal
- `file-search mcp` exposes the same operations as MCP tools over stdio
"""

__version__ = "0.3.0"
__license__ = "Apache-2.0"

from filesearch.core.cache import ResolutionCache
from filesearch.core.completion import CompletionProvider
from filesearch.core.resolver import NameResolver
from filesearch.core.resources import ResourceKind, ResourceRecord

__all__ = [
    "CompletionProvider",
    "NameResolver",
    "ResolutionCache",
    "ResourceKind",
    "ResourceRecord",
    "__version__",
]
