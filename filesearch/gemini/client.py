"""
file-search Gemini client - thin wrapper over the google-genai SDK.

Every remote call in file-search goes through GeminiClient. It also
implements DirectoryClient so the resolution cache can list stores,
files, documents and models through the same connection.
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx
from google import genai
from google.genai import errors, types

from filesearch.constants import (
    MODEL_RESOURCE_PREFIX,
    OPERATION_POLL_INTERVAL,
    OPERATION_RESOURCE_SEGMENT,
    OPERATION_TIMEOUT,
    UPLOAD_OPERATION_SEGMENT,
)
from filesearch.core.errors import (
    RateLimitedError,
    RemoteAPIError,
    UnauthenticatedError,
    UnavailableError,
)
from filesearch.core.resources import DirectoryClient, ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

OPERATION_TYPE_IMPORT = "import"
OPERATION_TYPE_UPLOAD = "upload"


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise SDK and transport errors as file-search errors."""
    try:
        yield
    except errors.APIError as exc:
        message = f"{action} failed: {exc.message or exc}"
        if exc.code in (401, 403):
            raise UnauthenticatedError(message) from exc
        if exc.code == 429:
            raise RateLimitedError(message) from exc
        if exc.code is not None and exc.code >= 500:
            raise UnavailableError(message) from exc
        raise RemoteAPIError(message, code=exc.code) from exc
    except (httpx.TimeoutException, httpx.TransportError) as exc:
        raise UnavailableError(f"{action} failed: {exc}") from exc


@dataclass
class UploadOptions:
    """Options for uploading a file, optionally straight into a store."""

    store_name: Optional[str] = None
    display_name: Optional[str] = None
    mime_type: Optional[str] = None
    max_chunk_tokens: int = 0
    chunk_overlap: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class OperationStatus:
    """Status of a long-running upload or import operation."""

    name: str
    type: str
    done: bool = False
    failed: bool = False
    error_message: Optional[str] = None
    parent: Optional[str] = None
    document_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_operation(cls, operation: Any, op_type: str) -> "OperationStatus":
        status = cls(
            name=operation.name or "",
            type=op_type,
            done=bool(operation.done),
            metadata=dict(operation.metadata or {}),
        )
        if operation.error:
            status.failed = True
            status.error_message = str(operation.error.get("message", operation.error))
        response = operation.response
        if response is not None:
            status.parent = getattr(response, "parent", None)
            status.document_name = getattr(response, "document_name", None)
        return status


def detect_operation_type(name: str) -> str:
    """Guess the operation type from its resource name."""
    if UPLOAD_OPERATION_SEGMENT in name:
        return OPERATION_TYPE_UPLOAD
    return OPERATION_TYPE_IMPORT


class GeminiClient(DirectoryClient):
    """
    Gemini File Search API client.

    Example:
        >>> client = GeminiClient(api_key)
        >>> stores = client.list_stores()
        >>> client.close()
    """

    def __init__(
        self,
        api_key: str,
        timeout: Optional[float] = None,
        client: Optional[genai.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key.
            timeout: Per-request timeout in seconds.
            client: Pre-built SDK client (tests).
        """
        if client is None:
            http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client

    def close(self) -> None:
        self._client.close()

    # ── Stores ────────────────────────────────────────────────────────────

    def list_stores(self) -> List[types.FileSearchStore]:
        with translate_errors("Listing stores"):
            return list(self._client.file_search_stores.list())

    def get_store(self, store_id: str) -> types.FileSearchStore:
        with translate_errors(f"Getting store {store_id}"):
            return self._client.file_search_stores.get(name=store_id)

    def create_store(self, display_name: str) -> types.FileSearchStore:
        with translate_errors(f'Creating store "{display_name}"'):
            return self._client.file_search_stores.create(config={"display_name": display_name})

    def delete_store(self, store_id: str, force: bool = False) -> None:
        with translate_errors(f"Deleting store {store_id}"):
            self._client.file_search_stores.delete(name=store_id, config={"force": force})

    def import_file(self, file_id: str, store_id: str) -> types.ImportFileOperation:
        """Start importing a Files API file into a store."""
        with translate_errors(f"Importing {file_id} into {store_id}"):
            return self._client.file_search_stores.import_file(
                file_search_store_name=store_id,
                file_name=file_id,
            )

    # ── Files ─────────────────────────────────────────────────────────────

    def list_files(self) -> List[types.File]:
        with translate_errors("Listing files"):
            return list(self._client.files.list())

    def get_file(self, file_id: str) -> types.File:
        with translate_errors(f"Getting file {file_id}"):
            return self._client.files.get(name=file_id)

    def delete_file(self, file_id: str) -> None:
        with translate_errors(f"Deleting file {file_id}"):
            self._client.files.delete(name=file_id)

    def upload_file(self, path: str, options: UploadOptions) -> Any:
        """
        Upload a local file.

        With ``options.store_name`` set the file goes straight into the
        store and the upload operation is returned; otherwise it goes to
        the Files API and the File is returned.
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"File not found: {path}")

        if not options.store_name:
            config: Dict[str, Any] = {}
            if options.display_name:
                config["display_name"] = options.display_name
            if options.mime_type:
                config["mime_type"] = options.mime_type
            with translate_errors(f"Uploading {path}"):
                return self._client.files.upload(file=path, config=config or None)

        config = {}
        if options.display_name:
            config["display_name"] = options.display_name
        if options.mime_type:
            config["mime_type"] = options.mime_type
        if options.max_chunk_tokens or options.chunk_overlap:
            white_space: Dict[str, int] = {}
            if options.max_chunk_tokens:
                white_space["max_tokens_per_chunk"] = options.max_chunk_tokens
            if options.chunk_overlap:
                white_space["max_overlap_tokens"] = options.chunk_overlap
            config["chunking_config"] = {"white_space_config": white_space}
        if options.metadata:
            config["custom_metadata"] = [
                {"key": key, "string_value": value} for key, value in options.metadata.items()
            ]

        with translate_errors(f"Uploading {path} to {options.store_name}"):
            return self._client.file_search_stores.upload_to_file_search_store(
                file=path,
                file_search_store_name=options.store_name,
                config=config or None,
            )

    # ── Documents ─────────────────────────────────────────────────────────

    def list_documents(self, store_id: str) -> List[types.Document]:
        with translate_errors(f"Listing documents in {store_id}"):
            return list(self._client.file_search_stores.documents.list(parent=store_id))

    def get_document(self, document_id: str) -> types.Document:
        with translate_errors(f"Getting document {document_id}"):
            return self._client.file_search_stores.documents.get(name=document_id)

    def delete_document(self, document_id: str, force: bool = False) -> None:
        with translate_errors(f"Deleting document {document_id}"):
            self._client.file_search_stores.documents.delete(
                name=document_id, config={"force": force}
            )

    # ── Models & Query ────────────────────────────────────────────────────

    def list_models(self) -> List[types.Model]:
        """List models that can answer queries (support generateContent)."""
        with translate_errors("Listing models"):
            models = list(self._client.models.list())
        return [
            m for m in models
            if not m.supported_actions or "generateContent" in m.supported_actions
        ]

    def query(
        self,
        text: str,
        store_id: Optional[str],
        model: str,
        metadata_filter: Optional[str] = None,
    ) -> types.GenerateContentResponse:
        """Ask a question, grounded on a store when one is given."""
        tools = None
        if store_id:
            file_search = types.FileSearch(
                file_search_store_names=[store_id],
                metadata_filter=metadata_filter or None,
            )
            tools = [types.Tool(file_search=file_search)]

        with translate_errors("Query"):
            return self._client.models.generate_content(
                model=model,
                contents=text,
                config=types.GenerateContentConfig(tools=tools),
            )

    # ── Operations ────────────────────────────────────────────────────────

    def get_operation(self, name: str, op_type: Optional[str] = None) -> OperationStatus:
        """Fetch an operation by name. ``op_type`` is detected when omitted."""
        if OPERATION_RESOURCE_SEGMENT not in name:
            raise ValueError(
                f"invalid operation name: {name} (expected fileSearchStores/{{store-id}}/operations/{{operation-id}})"
            )
        op_type = op_type or detect_operation_type(name)
        if op_type == OPERATION_TYPE_UPLOAD:
            operation = types.UploadToFileSearchStoreOperation(name=name)
        elif op_type == OPERATION_TYPE_IMPORT:
            operation = types.ImportFileOperation(name=name)
        else:
            raise ValueError(f"invalid operation type: {op_type} (must be 'import' or 'upload')")

        with translate_errors(f"Getting operation {name}"):
            operation = self._client.operations.get(operation)
        return OperationStatus.from_operation(operation, op_type)

    def wait_for_operation(
        self,
        operation: Any,
        poll_interval: float = OPERATION_POLL_INTERVAL,
        timeout: float = OPERATION_TIMEOUT,
        on_poll: Optional[Callable[[float], None]] = None,
    ) -> Any:
        """Poll an operation until it finishes. Raises if it fails or times out."""
        start = time.monotonic()
        while not operation.done:
            elapsed = time.monotonic() - start
            if elapsed > timeout:
                raise UnavailableError(
                    f"Operation {operation.name} still running after {timeout:g}s"
                )
            if on_poll:
                on_poll(elapsed)
            time.sleep(poll_interval)
            with translate_errors(f"Polling operation {operation.name}"):
                operation = self._client.operations.get(operation)

        if operation.error:
            message = operation.error.get("message", operation.error)
            raise RemoteAPIError(f"Operation {operation.name} failed: {message}")
        return operation

    # ── Directory ─────────────────────────────────────────────────────────

    def list_records(
        self, kind: ResourceKind, parent_id: Optional[str] = None
    ) -> List[ResourceRecord]:
        """List display name / identifier pairs for the resolution cache."""
        if kind is ResourceKind.STORE:
            return [
                ResourceRecord(display_name=s.display_name or "", identifier=s.name)
                for s in self.list_stores()
            ]
        if kind is ResourceKind.FILE:
            return [
                ResourceRecord(display_name=f.display_name or "", identifier=f.name)
                for f in self.list_files()
            ]
        if kind is ResourceKind.DOCUMENT:
            if not parent_id:
                raise ValueError("listing documents requires a store ID")
            return [
                ResourceRecord(
                    display_name=d.display_name or "",
                    identifier=d.name,
                    parent_identifier=parent_id,
                )
                for d in self.list_documents(parent_id)
            ]
        if kind is ResourceKind.MODEL:
            return [
                ResourceRecord(display_name=m.name[len(MODEL_RESOURCE_PREFIX):], identifier=m.name)
                for m in self.list_models()
                if m.name and m.name.startswith(MODEL_RESOURCE_PREFIX)
            ]
        raise ValueError(f"unknown resource kind: {kind}")
