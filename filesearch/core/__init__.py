"""
file-search core module.

Name resolution and the completion cache shared by the CLI and MCP server.
"""

from filesearch.core.cache import ResolutionCache
from filesearch.core.completion import CompletionProvider
from filesearch.core.resolver import NameResolver
from filesearch.core.resources import DirectoryClient, ResourceKind, ResourceRecord

__all__ = [
    "CompletionProvider",
    "DirectoryClient",
    "NameResolver",
    "ResolutionCache",
    "ResourceKind",
    "ResourceRecord",
]
