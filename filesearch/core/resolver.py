"""
file-search Name Resolver - display names to resource identifiers.

Resolution rules:
1. Input already shaped like an identifier of the target kind is
   returned unchanged, without network access.
2. Otherwise the input is an exact, case-sensitive display name looked
   up in the resolution cache.
3. Zero matches raise NotFoundError; several raise AmbiguousError with
   every conflicting identifier. Ties are never broken silently.
"""

import logging
from typing import Optional

from filesearch.core.cache import ResolutionCache
from filesearch.core.errors import (
    AmbiguousError,
    NotFoundError,
    ParentRequiredError,
    ResolutionDisabledError,
    UnauthenticatedError,
)
from filesearch.core.resources import ResourceKind

logger = logging.getLogger(__name__)


class NameResolver:
    """
    Maps one user-supplied string to one authoritative identifier.

    Example:
        >>> resolver = NameResolver(cache)
        >>> resolver.resolve(ResourceKind.STORE, "Manuals")
        'fileSearchStores/abc'
    """

    def __init__(
        self,
        cache: ResolutionCache,
        allow_stale: bool = True,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            cache: Shared resolution cache.
            allow_stale: Fall back to an expired listing when a refresh fails.
            timeout: Longest this resolver waits for one refresh, in seconds.
        """
        self.cache = cache
        self.allow_stale = allow_stale
        self.timeout = timeout

    def resolve(self, kind: ResourceKind, value: str, parent: Optional[str] = None) -> str:
        """
        Resolve ``value`` to an identifier of ``kind``.

        Args:
            kind: Target resource kind.
            value: Identifier or display name typed by the user.
            parent: Store identifier or display name (documents only).

        Raises:
            NotFoundError, AmbiguousError, ParentRequiredError,
            UnauthenticatedError, ResolutionDisabledError, or a
            DirectoryError from the refresh.
        """
        if kind.is_identifier(value):
            return value

        if self.cache.disabled_by_config:
            raise ResolutionDisabledError(
                f'Cannot resolve {kind.label} name "{value}": {self.cache.disabled_reason}. '
                f"Pass the {kind.label} ID instead."
            )
        if not self.cache.enabled:
            raise UnauthenticatedError(
                f'Cannot resolve {kind.label} name "{value}": {self.cache.disabled_reason}. '
                f"Pass the {kind.label} ID instead."
            )

        parent_id = None
        if kind.is_scoped:
            if not parent:
                raise ParentRequiredError(kind, value)
            parent_id = self.resolve(ResourceKind.STORE, parent)

        records = self.cache.get(
            kind, parent_id, timeout=self.timeout, allow_stale=self.allow_stale
        )
        matches = [r.identifier for r in records if r.display_name == value]

        if not matches:
            logger.debug("No %s named %r", kind.label, value)
            raise NotFoundError(kind, value, parent_id)
        if len(matches) > 1:
            logger.debug("%d %s records named %r", len(matches), kind.label, value)
            raise AmbiguousError(kind, value, matches)

        logger.debug("Resolved %s %r -> %s", kind.label, value, matches[0])
        return matches[0]

    def resolve_store(self, value: str) -> str:
        return self.resolve(ResourceKind.STORE, value)

    def resolve_file(self, value: str) -> str:
        return self.resolve(ResourceKind.FILE, value)

    def resolve_document(self, store: Optional[str], value: str) -> str:
        return self.resolve(ResourceKind.DOCUMENT, value, parent=store)

    def resolve_model(self, value: str) -> str:
        return self.resolve(ResourceKind.MODEL, value)
