"""
file-search Completion Provider - display names for shell completion.

Reads the resolution cache without forcing a refresh, so a completion
request never stalls the terminal on the network. Errors never reach the
shell; the worst case is an empty list.
"""

import logging
from typing import Iterable, List, Optional

from filesearch.core.cache import ResolutionCache
from filesearch.core.resources import ResourceKind

logger = logging.getLogger(__name__)


def filter_prefix(names: Iterable[str], incomplete: str) -> List[str]:
    """Keep names starting with what the user typed so far, without duplicates."""
    seen = set()
    result = []
    for name in names:
        if name and name.startswith(incomplete) and name not in seen:
            seen.add(name)
            result.append(name)
    return result


class CompletionProvider:
    """
    Best-effort completion candidates from the resolution cache.

    ``wait`` bounds how long a call may wait for a refresh it started.
    The default of 0 returns immediately with whatever is cached.
    """

    def __init__(self, cache: ResolutionCache, wait: float = 0.0):
        self.cache = cache
        self.wait = wait

    def names(self, kind: ResourceKind, parent_id: Optional[str] = None) -> List[str]:
        """Return display names for ``kind``. Never raises."""
        if not self.cache.enabled:
            return []
        if kind.is_scoped and not parent_id:
            return []
        try:
            records = self.cache.peek(kind, parent_id, wait=self.wait)
        except Exception as exc:
            logger.debug("Completion for %s failed: %s", kind.label, exc)
            return []
        return [r.display_name for r in records if r.display_name]

    def identifiers(self, kind: ResourceKind, parent_id: Optional[str] = None) -> List[str]:
        """Return identifiers for ``kind`` (used by ID-only flags). Never raises."""
        if not self.cache.enabled or (kind.is_scoped and not parent_id):
            return []
        try:
            records = self.cache.peek(kind, parent_id, wait=self.wait)
        except Exception as exc:
            logger.debug("Completion for %s IDs failed: %s", kind.label, exc)
            return []
        return [r.identifier for r in records]

    def document_names(self, store_ref: Optional[str]) -> List[str]:
        """
        Return document names inside a store given by ID or display name.

        A display name is matched against cached store records only; if it
        is unknown or ambiguous there is nothing to complete.
        """
        if not store_ref or not self.cache.enabled:
            return []

        store_id = store_ref
        if not ResourceKind.STORE.is_identifier(store_ref):
            try:
                stores = self.cache.peek(ResourceKind.STORE, wait=self.wait)
            except Exception as exc:
                logger.debug("Completion for stores failed: %s", exc)
                return []
            matches = [s.identifier for s in stores if s.display_name == store_ref]
            if len(matches) != 1:
                return []
            store_id = matches[0]

        return self.names(ResourceKind.DOCUMENT, store_id)
