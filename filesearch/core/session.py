"""
file-search Session - the per-process bundle of client, cache and resolver.

One Session is built per CLI invocation, or once for the lifetime of an
MCP server. Everything that needs the cache receives it from here rather
than from module-level state.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from filesearch.core.cache import ResolutionCache
from filesearch.core.completion import CompletionProvider
from filesearch.core.errors import UnauthenticatedError
from filesearch.core.resolver import NameResolver
from filesearch.gemini.client import GeminiClient
from filesearch.validation.config import Config

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "API key not set. Use --api-key, --api-key-env, config file, "
    "or GOOGLE_API_KEY/GEMINI_API_KEY"
)


@dataclass
class Session:
    """Client, cache, resolver and completer sharing one lifetime."""

    config: Config
    client: Optional[GeminiClient]
    cache: ResolutionCache
    resolver: NameResolver
    completer: CompletionProvider

    def require_client(self) -> GeminiClient:
        """Return the API client or fail with a clear cause."""
        if self.client is None:
            raise UnauthenticatedError(MISSING_KEY_MESSAGE)
        return self.client

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None


def create_session(
    config: Config,
    client: Optional[GeminiClient] = None,
    completion_wait: Optional[float] = None,
) -> Session:
    """
    Build a Session from configuration.

    Without an API key the session has no client and a disabled cache:
    identifiers still work, display names fail fast.

    Args:
        config: Loaded configuration.
        client: Pre-built client (tests and embedding).
        completion_wait: Override for how long completion waits on a cold cache.
    """
    settings = config.merged

    if client is None:
        api_key = config.get_api_key()
        if api_key:
            client = GeminiClient(api_key, timeout=settings.request_timeout)
        else:
            logger.debug("No API key configured; name resolution disabled")

    cache = ResolutionCache(
        client,
        ttl=settings.completion_cache_ttl,
        enabled=settings.completion_enabled,
        disabled_reason=None if client is not None else MISSING_KEY_MESSAGE,
    )
    resolver = NameResolver(
        cache,
        allow_stale=settings.resolve_stale_on_error,
        timeout=settings.request_timeout,
    )
    wait = settings.completion_wait if completion_wait is None else completion_wait
    completer = CompletionProvider(cache, wait=wait)

    return Session(
        config=config,
        client=client,
        cache=cache,
        resolver=resolver,
        completer=completer,
    )
