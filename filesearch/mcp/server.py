"""
file-search MCP server - File Search tools for MCP clients over stdio.

Tools are grouped so an operator can expose only what an agent needs:

- query:  query
- list:   list_stores, list_files, list_documents
- import: import_file
- upload: upload_file
- manage: create_store, delete_store, delete_document, delete_file, get_operation

Every tool runs in a worker thread via anyio.to_thread so a slow API call
or cache refresh never blocks the event loop. All tools share one Session
and therefore one resolution cache.
"""

import functools
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence

import anyio
from mcp.server.fastmcp import FastMCP

from filesearch.cli.output import to_jsonable
from filesearch.constants import DEFAULT_MODEL, MODEL_RESOURCE_PREFIX
from filesearch.core.resources import ResourceKind, store_of
from filesearch.core.session import Session
from filesearch.gemini.client import UploadOptions
from filesearch.validation.config import MCP_TOOL_GROUPS

logger = logging.getLogger(__name__)

SERVER_NAME = "file-search"

TOOL_GROUPS: Dict[str, List[str]] = {
    "query": ["query"],
    "list": ["list_stores", "list_files", "list_documents"],
    "import": ["import_file"],
    "upload": ["upload_file"],
    "manage": ["create_store", "delete_store", "delete_document", "delete_file", "get_operation"],
}


def _dump(data: Any) -> str:
    return json.dumps(to_jsonable(data), indent=2, default=str)


class FileSearchTools:
    """
    Synchronous implementations of the MCP tools.

    Store, file, document and model arguments accept display names or
    resource IDs. Mutations invalidate the affected cache entries so the
    next lookup sees them.

    Example:
        >>> tools = FileSearchTools(session)
        >>> tools.list_stores()
        '[{"name": "fileSearchStores/abc", ...}]'
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    def client(self):
        return self.session.require_client()

    @property
    def resolver(self):
        return self.session.resolver

    # ── query ─────────────────────────────────────────────────────────────

    def query(
        self,
        query: str,
        store: Optional[str] = None,
        model: Optional[str] = None,
        metadata_filter: Optional[str] = None,
    ) -> str:
        """Ask a question, grounded on a File Search Store when one is given."""
        store_id = self.resolver.resolve_store(store) if store else None
        model_id = self.resolver.resolve_model(model or MODEL_RESOURCE_PREFIX + DEFAULT_MODEL)
        response = self.client.query(query, store_id, model_id, metadata_filter)

        sources: List[str] = []
        for candidate in response.candidates or []:
            metadata = candidate.grounding_metadata
            if metadata and metadata.grounding_chunks:
                for chunk in metadata.grounding_chunks:
                    context = chunk.retrieved_context
                    if context and context.title and context.title not in sources:
                        sources.append(context.title)

        text = response.text or ""
        if sources:
            text += "\n\nSources:\n" + "\n".join(f"- {title}" for title in sources)
        return text

    # ── list ──────────────────────────────────────────────────────────────

    def list_stores(self) -> str:
        """List all File Search Stores."""
        return _dump(self.client.list_stores())

    def list_files(self) -> str:
        """List files uploaded to the Files API."""
        return _dump(self.client.list_files())

    def list_documents(self, store: str) -> str:
        """List documents in a store."""
        store_id = self.resolver.resolve_store(store)
        return _dump(self.client.list_documents(store_id))

    # ── import / upload ───────────────────────────────────────────────────

    def import_file(self, file: str, store: str) -> str:
        """Import a Files API file into a store and wait for indexing."""
        file_id = self.resolver.resolve_file(file)
        store_id = self.resolver.resolve_store(store)
        client = self.client
        client.wait_for_operation(client.import_file(file_id, store_id))
        self.session.cache.invalidate(ResourceKind.DOCUMENT, store_id)
        return _dump({"status": "imported", "file": file_id, "store": store_id})

    def upload_file(
        self,
        path: str,
        store: Optional[str] = None,
        display_name: Optional[str] = None,
        mime_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Upload a local file, indexing it into a store when one is given."""
        store_id = self.resolver.resolve_store(store) if store else None
        options = UploadOptions(
            store_name=store_id,
            display_name=display_name or os.path.basename(path),
            mime_type=mime_type,
            metadata=dict(metadata or {}),
        )
        client = self.client
        result = client.upload_file(path, options)

        if store_id is None:
            self.session.cache.invalidate(ResourceKind.FILE)
            return _dump(result)

        operation = client.wait_for_operation(result)
        self.session.cache.invalidate(ResourceKind.DOCUMENT, store_id)
        response = operation.response
        return _dump({
            "status": "uploaded_and_indexed",
            "store": store_id,
            "document": response.document_name if response is not None else None,
        })

    # ── manage ────────────────────────────────────────────────────────────

    def create_store(self, display_name: str) -> str:
        """Create a File Search Store."""
        created = self.client.create_store(display_name)
        self.session.cache.invalidate(ResourceKind.STORE)
        return _dump(created)

    def delete_store(self, store: str, force: bool = False) -> str:
        """Delete a File Search Store."""
        store_id = self.resolver.resolve_store(store)
        self.client.delete_store(store_id, force=force)
        self.session.cache.invalidate(ResourceKind.STORE)
        self.session.cache.invalidate(ResourceKind.DOCUMENT, store_id)
        return _dump({"status": "deleted", "name": store_id})

    def delete_document(self, document: str, store: Optional[str] = None, force: bool = False) -> str:
        """Delete a document, given by ID or by display name within ``store``."""
        document_id = self.resolver.resolve_document(store, document)
        self.client.delete_document(document_id, force=force)
        self.session.cache.invalidate(ResourceKind.DOCUMENT, store_of(document_id))
        return _dump({"status": "deleted", "document": document_id})

    def delete_file(self, file: str) -> str:
        """Delete a Files API file."""
        file_id = self.resolver.resolve_file(file)
        self.client.delete_file(file_id)
        self.session.cache.invalidate(ResourceKind.FILE)
        return _dump({"status": "deleted", "file": file_id})

    def get_operation(self, name: str, op_type: Optional[str] = None) -> str:
        """Get the status of an upload or import operation."""
        return _dump(self.client.get_operation(name, op_type))


def enabled_tool_names(groups: Sequence[str]) -> List[str]:
    """Expand tool groups to tool names, in a stable order."""
    names: List[str] = []
    for group in MCP_TOOL_GROUPS:
        if group in groups:
            names.extend(TOOL_GROUPS[group])
    return names


def _threaded(fn: Callable[..., str]) -> Callable[..., Any]:
    """Wrap a blocking tool so it runs on a worker thread."""

    @functools.wraps(fn)
    async def run(*args, **kwargs):
        logger.info("TOOL %s called", fn.__name__)
        try:
            return await anyio.to_thread.run_sync(functools.partial(fn, *args, **kwargs))
        except Exception as exc:
            logger.warning("TOOL %s failed (%s): %s", fn.__name__, type(exc).__name__, exc)
            raise

    return run


def build_server(session: Session, groups: Sequence[str]) -> FastMCP:
    """Create a FastMCP server exposing the tools of ``groups``."""
    server = FastMCP(SERVER_NAME)
    tools = FileSearchTools(session)

    for name in enabled_tool_names(groups):
        server.tool(name=name)(_threaded(getattr(tools, name)))
        logger.debug("Registered MCP tool %s", name)

    if session.client is None:
        logger.warning("No API key configured; tools will fail until one is set")
    return server


def run_server(session: Session, groups: Sequence[str]) -> None:
    """Serve MCP over stdio until the client disconnects."""
    server = build_server(session, groups)
    logger.info("Starting MCP server with tool groups: %s", ", ".join(groups))
    try:
        server.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("MCP server stopped (keyboard interrupt)")
