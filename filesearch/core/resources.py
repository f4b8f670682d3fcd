"""
Resource kinds, records, and the directory interface.

A resource is addressed either by its display name (human-chosen,
non-unique) or by its identifier (opaque, prefixed per kind). This module
knows the identifier shape of each kind so callers can skip lookup when a
user already typed an identifier.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from filesearch.constants import (
    DOCUMENT_RESOURCE_SEGMENT,
    FILE_RESOURCE_PREFIX,
    MODEL_RESOURCE_PREFIX,
    STORE_RESOURCE_PREFIX,
)


class ResourceKind(str, Enum):
    """Category of named remote entity."""

    STORE = "store"
    FILE = "file"
    DOCUMENT = "document"
    MODEL = "model"

    @property
    def label(self) -> str:
        return self.value

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def is_scoped(self) -> bool:
        """Documents are only unique within their parent store."""
        return self is ResourceKind.DOCUMENT

    def is_identifier(self, value: str) -> bool:
        """Return True if ``value`` already has this kind's identifier shape."""
        if not value:
            return False

        if self is ResourceKind.STORE:
            rest = value[len(STORE_RESOURCE_PREFIX):]
            return value.startswith(STORE_RESOURCE_PREFIX) and bool(rest) and "/" not in rest

        if self is ResourceKind.DOCUMENT:
            if not value.startswith(STORE_RESOURCE_PREFIX):
                return False
            store_part, sep, doc_part = value.partition(DOCUMENT_RESOURCE_SEGMENT)
            return bool(sep) and ResourceKind.STORE.is_identifier(store_part) and bool(doc_part)

        prefix = FILE_RESOURCE_PREFIX if self is ResourceKind.FILE else MODEL_RESOURCE_PREFIX
        return value.startswith(prefix) and len(value) > len(prefix)


@dataclass(frozen=True)
class ResourceRecord:
    """One entry of a directory listing."""

    display_name: str
    identifier: str
    parent_identifier: Optional[str] = None


def store_of(document_id: str) -> str:
    """Return the parent store identifier of a document identifier."""
    return document_id.partition(DOCUMENT_RESOURCE_SEGMENT)[0]


class DirectoryClient(ABC):
    """
    Lists the records of one resource kind from the remote API.

    Implementations raise ``UnauthenticatedError``, ``UnavailableError``
    or ``RateLimitedError`` on failure.
    """

    @abstractmethod
    def list_records(
        self, kind: ResourceKind, parent_id: Optional[str] = None
    ) -> List[ResourceRecord]:
        """
        List every record of ``kind``.

        Args:
            kind: Resource kind to list.
            parent_id: Parent store identifier (documents only).

        Returns:
            Records in the order the API returned them.
        """
        pass
