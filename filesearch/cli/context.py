"""Per-invocation CLI state: options, configuration and the lazily built Session."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from filesearch.core.session import Session, create_session
from filesearch.validation.config import Config

SESSION_KEY = "filesearch.session"


@dataclass
class CLIState:
    """Global options shared by every command."""

    output_format: str = "text"
    quiet: bool = False


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr through rich."""
    logger = logging.getLogger("filesearch")
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def load_config(params: Dict[str, Any]) -> Config:
    """Load configuration using the root command's parameters."""
    return Config.load(
        config_file=params.get("config_file"),
        overrides={
            "api_key": params.get("api_key"),
            "api_key_env": params.get("api_key_env"),
        },
    )


def get_session(ctx: click.Context, for_completion: bool = False) -> Session:
    """
    Return the Session for this invocation, building it on first use.

    The session lives in the root context so every subcommand and
    completion callback of one process shares the same cache.
    """
    root = ctx.find_root()
    session: Optional[Session] = root.meta.get(SESSION_KEY)
    if session is None:
        config = load_config(root.params)
        session = create_session(config, completion_wait=None if for_completion else 0.0)
        root.meta[SESSION_KEY] = session
        root.call_on_close(session.close)
    return session


def get_state(ctx: click.Context) -> CLIState:
    state = ctx.find_object(CLIState)
    return state if state is not None else CLIState()
