"""
file-search CLI Completer - click shell-completion callbacks.

Provides suggestions for store, file, document and model arguments from
the resolution cache. Every callback returns a list, never an error.
"""

import logging
from typing import Callable, List

import click

from filesearch.cli.context import get_session
from filesearch.core.completion import filter_prefix
from filesearch.core.resources import ResourceKind

logger = logging.getLogger(__name__)

CompleteFn = Callable[[click.Context, click.Parameter, str], List[str]]


def _complete(fetch) -> CompleteFn:
    def callback(ctx: click.Context, param: click.Parameter, incomplete: str) -> List[str]:
        try:
            completer = get_session(ctx, for_completion=True).completer
            return filter_prefix(fetch(ctx, completer), incomplete)
        except Exception as exc:
            logger.debug("Shell completion for %s failed: %s", param.name, exc)
            return []

    return callback


def _store_ref(ctx: click.Context):
    return ctx.params.get("store") or ctx.params.get("store_id")


complete_stores = _complete(lambda ctx, c: c.names(ResourceKind.STORE))
complete_store_ids = _complete(lambda ctx, c: c.identifiers(ResourceKind.STORE))
complete_files = _complete(lambda ctx, c: c.names(ResourceKind.FILE))
complete_models = _complete(lambda ctx, c: c.names(ResourceKind.MODEL))
complete_documents = _complete(lambda ctx, c: c.document_names(_store_ref(ctx)))
