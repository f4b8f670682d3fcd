"""
file-search CLI - manage Gemini File Search stores and query them.

Run `file-search --help` for the command tree. Store, file, document and
model arguments accept display names or resource IDs.
"""

import functools
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import click
from click.shell_completion import get_completion_class
from rich.markup import escape

from filesearch import __version__
from filesearch.cli.completer import (
    complete_documents,
    complete_files,
    complete_models,
    complete_store_ids,
    complete_stores,
)
from filesearch.cli.context import CLIState, get_session, get_state, setup_logging
from filesearch.cli.output import err_console, print_output
from filesearch.constants import DEFAULT_MODEL, MODEL_RESOURCE_PREFIX, STORE_RESOURCE_PREFIX
from filesearch.core.errors import FileSearchError
from filesearch.core.resources import ResourceKind, store_of
from filesearch.gemini.client import OPERATION_TYPE_IMPORT, OPERATION_TYPE_UPLOAD, UploadOptions
from filesearch.validation.config import ConfigError, parse_mcp_tools

PROG_NAME = "file-search"
COMPLETE_VAR = "_FILE_SEARCH_COMPLETE"


class AliasedGroup(click.Group):
    """Group that also accepts short aliases for its subcommands."""

    def __init__(self, *args, aliases: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.aliases = aliases or {}

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(self, ctx: click.Context, args):
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


LIST_DELETE_ALIASES = {"ls": "list", "rm": "delete", "del": "delete"}


def handle_errors(func):
    """Print user-facing errors in red and exit 1 instead of dumping a traceback."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (FileSearchError, ConfigError, FileNotFoundError, ValueError) as e:
            err_console.print(f"[red]Error: {escape(str(e))}[/red]", highlight=False, soft_wrap=True)
            sys.exit(1)

    return wrapper


def parse_metadata(entries: Iterable[str]) -> Dict[str, str]:
    """Parse repeated key=value flags. Entries without '=' are ignored."""
    metadata: Dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if sep:
            metadata[key] = value
    return metadata


def resolve_store_option(
    ctx: click.Context,
    store: Optional[str],
    store_id: Optional[str],
    required: bool = True,
) -> Optional[str]:
    """Turn --store/--store-id into a store ID."""
    if store_id:
        if not ResourceKind.STORE.is_identifier(store_id):
            raise click.BadParameter(
                f"expected {STORE_RESOURCE_PREFIX}xxx, got {store_id!r}", param_hint="--store-id"
            )
        return store_id
    if store:
        return get_session(ctx).resolver.resolve_store(store)
    if required:
        raise click.UsageError("either --store or --store-id is required")
    return None


def store_options(required: bool = True):
    """Add --store and --store-id with completion."""
    suffix = "" if required else " (optional)"

    def decorator(func):
        func = click.option(
            "--store-id",
            help=f"Store resource ID ({STORE_RESOURCE_PREFIX}xxx){suffix}",
            shell_complete=complete_store_ids,
        )(func)
        func = click.option(
            "--store",
            help=f"Store display name or ID{suffix}",
            shell_complete=complete_stores,
        )(func)
        return func

    return decorator


def wait_for(ctx: click.Context, operation: Any, label: str) -> Any:
    """Wait for a long-running operation, with a spinner unless --quiet."""
    client = get_session(ctx).require_client()
    if get_state(ctx).quiet:
        return client.wait_for_operation(operation)
    with err_console.status(f"[bold blue]{label}...[/bold blue]", spinner="dots"):
        operation = client.wait_for_operation(operation)
    err_console.print(f"[green]{label} complete[/green]")
    return operation


def emit(ctx: click.Context, data: Any, message: Optional[str] = None) -> None:
    """Print ``data`` as JSON, or ``message`` (falling back to ``data``) as text."""
    fmt = get_state(ctx).output_format
    if fmt == "json" or message is None:
        print_output(data, fmt)
    else:
        click.echo(message)


@click.group(
    cls=AliasedGroup,
    aliases={"doc": "document", "docs": "document", "q": "query",
             "op": "operation", "ops": "operation", "operations": "operation"},
)
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path),
              help="config file (default is $HOME/.file-search.yaml)")
@click.option("--api-key", help="Gemini API Key")
@click.option("--api-key-env", help="Environment variable to read API Key from")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default="text", show_default=True, help="Output format")
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress indicators")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def cli(ctx, config_file, api_key, api_key_env, output_format, quiet, verbose) -> None:
    """
    File Search Query & MCP Tool.

    A CLI and Model Context Protocol (MCP) server for the Google Gemini
    File Search API: manage stores, upload documents, and run semantic
    searches.
    """
    setup_logging(verbose)
    ctx.obj = CLIState(output_format=output_format, quiet=quiet)


# ═══════════════════════════════════════════════════════════════════════════════
# Stores
# ═══════════════════════════════════════════════════════════════════════════════

@cli.group(cls=AliasedGroup, aliases={**LIST_DELETE_ALIASES, "new": "create", "add": "create"})
def store() -> None:
    """Manage File Search Stores."""


@store.command("list")
@click.pass_context
@handle_errors
def store_list(ctx) -> None:
    """List all File Search Stores."""
    client = get_session(ctx).require_client()
    print_output(client.list_stores(), get_state(ctx).output_format)


@store.command("get")
@click.argument("name", shell_complete=complete_stores)
@click.pass_context
@handle_errors
def store_get(ctx, name: str) -> None:
    """Get details of a File Search Store."""
    session = get_session(ctx)
    store_id = session.resolver.resolve_store(name)
    print_output(session.require_client().get_store(store_id), get_state(ctx).output_format)


@store.command("delete")
@click.argument("name", shell_complete=complete_stores)
@click.option("--force", is_flag=True, help="Force delete even if store contains documents")
@click.pass_context
@handle_errors
def store_delete(ctx, name: str, force: bool) -> None:
    """Delete a File Search Store."""
    session = get_session(ctx)
    store_id = session.resolver.resolve_store(name)
    session.require_client().delete_store(store_id, force=force)
    session.cache.invalidate(ResourceKind.STORE)
    session.cache.invalidate(ResourceKind.DOCUMENT, store_id)
    emit(ctx, {"status": "deleted", "name": store_id}, f"Deleted store: {name}")


@store.command("create")
@click.argument("display_name")
@click.pass_context
@handle_errors
def store_create(ctx, display_name: str) -> None:
    """Create a new File Search Store."""
    session = get_session(ctx)
    created = session.require_client().create_store(display_name)
    session.cache.invalidate(ResourceKind.STORE)
    emit(ctx, created, f"Created store: {created.display_name} ({created.name})")


@store.command("import-file")
@click.argument("file", shell_complete=complete_files)
@store_options()
@click.pass_context
@handle_errors
def store_import_file(ctx, file: str, store: Optional[str], store_id: Optional[str]) -> None:
    """Import a file from the Files API into a Store."""
    session = get_session(ctx)
    file_id = session.resolver.resolve_file(file)
    target = resolve_store_option(ctx, store, store_id)

    operation = session.require_client().import_file(file_id, target)
    wait_for(ctx, operation, f"Importing {file_id}")
    session.cache.invalidate(ResourceKind.DOCUMENT, target)

    if get_state(ctx).output_format == "json":
        print_output({"status": "imported", "file": file_id, "store": target}, "json")


# ═══════════════════════════════════════════════════════════════════════════════
# Files
# ═══════════════════════════════════════════════════════════════════════════════

@cli.group(cls=AliasedGroup, aliases=LIST_DELETE_ALIASES)
def file() -> None:
    """Manage Files."""


@file.command("list")
@click.pass_context
@handle_errors
def file_list(ctx) -> None:
    """List uploaded files."""
    client = get_session(ctx).require_client()
    print_output(client.list_files(), get_state(ctx).output_format)


@file.command("get")
@click.argument("name", shell_complete=complete_files)
@click.pass_context
@handle_errors
def file_get(ctx, name: str) -> None:
    """Get details of a file."""
    session = get_session(ctx)
    file_id = session.resolver.resolve_file(name)
    print_output(session.require_client().get_file(file_id), get_state(ctx).output_format)


@file.command("delete")
@click.argument("name", shell_complete=complete_files)
@click.pass_context
@handle_errors
def file_delete(ctx, name: str) -> None:
    """Delete a file."""
    session = get_session(ctx)
    file_id = session.resolver.resolve_file(name)
    session.require_client().delete_file(file_id)
    session.cache.invalidate(ResourceKind.FILE)
    emit(ctx, {"status": "deleted", "file": file_id}, f"Deleted file: {name}")


@file.command("upload")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@store_options(required=False)
@click.option("--name", "display_name", help="Display name (defaults to the file name)")
@click.option("--mime-type", help="MIME type (e.g. text/plain, application/pdf)")
@click.option("--chunk-size", type=int, default=0, help="Max tokens per chunk (store uploads)")
@click.option("--chunk-overlap", type=int, default=0, help="Overlap tokens between chunks (store uploads)")
@click.option("--metadata", multiple=True, help="Custom metadata as key=value (repeatable, store uploads)")
@click.pass_context
@handle_errors
def file_upload(ctx, path, store, store_id, display_name, mime_type, chunk_size, chunk_overlap, metadata) -> None:
    """Upload a file, and index it into a store when one is given."""
    session = get_session(ctx)
    client = session.require_client()
    target = resolve_store_option(ctx, store, store_id, required=False)

    options = UploadOptions(
        store_name=target,
        display_name=display_name or os.path.basename(path),
        mime_type=mime_type,
        max_chunk_tokens=chunk_size,
        chunk_overlap=chunk_overlap,
        metadata=parse_metadata(metadata),
    )
    result = client.upload_file(path, options)

    if target is None:
        session.cache.invalidate(ResourceKind.FILE)
        emit(ctx, result, f"Uploaded file: {result.display_name} (URI: {result.uri})")
        return

    operation = wait_for(ctx, result, f"Indexing {options.display_name}")
    session.cache.invalidate(ResourceKind.DOCUMENT, target)
    response = operation.response
    document = response.document_name if response is not None else None
    emit(
        ctx,
        {"status": "uploaded_and_indexed", "store": target, "document": document},
        f"Uploaded {options.display_name} to {target}" + (f" as {document}" if document else ""),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Documents
# ═══════════════════════════════════════════════════════════════════════════════

@cli.group(cls=AliasedGroup, aliases=LIST_DELETE_ALIASES)
def document() -> None:
    """Manage Documents in Stores."""


@document.command("list")
@store_options()
@click.pass_context
@handle_errors
def document_list(ctx, store: Optional[str], store_id: Optional[str]) -> None:
    """List documents in a store."""
    target = resolve_store_option(ctx, store, store_id)
    client = get_session(ctx).require_client()
    print_output(client.list_documents(target), get_state(ctx).output_format)


def _resolve_document(ctx, name: str, store: Optional[str], store_id: Optional[str]) -> str:
    parent = resolve_store_option(ctx, store, store_id, required=False)
    return get_session(ctx).resolver.resolve_document(parent, name)


@document.command("get")
@click.argument("name", shell_complete=complete_documents)
@store_options(required=False)
@click.pass_context
@handle_errors
def document_get(ctx, name: str, store: Optional[str], store_id: Optional[str]) -> None:
    """Get document details."""
    document_id = _resolve_document(ctx, name, store, store_id)
    client = get_session(ctx).require_client()
    print_output(client.get_document(document_id), get_state(ctx).output_format)


@document.command("delete")
@click.argument("name", shell_complete=complete_documents)
@store_options(required=False)
@click.option("--force", is_flag=True, help="Force delete even if document contains chunks")
@click.pass_context
@handle_errors
def document_delete(ctx, name: str, store: Optional[str], store_id: Optional[str], force: bool) -> None:
    """Delete a document."""
    session = get_session(ctx)
    document_id = _resolve_document(ctx, name, store, store_id)
    session.require_client().delete_document(document_id, force=force)
    session.cache.invalidate(ResourceKind.DOCUMENT, store_of(document_id))
    emit(ctx, {"status": "deleted", "document": document_id}, f"Deleted document: {name}")


# ═══════════════════════════════════════════════════════════════════════════════
# Query, operations, MCP
# ═══════════════════════════════════════════════════════════════════════════════

@cli.command("query")
@click.argument("text", nargs=-1, required=True)
@store_options(required=False)
@click.option("--model", default=MODEL_RESOURCE_PREFIX + DEFAULT_MODEL, show_default=True,
              help="Model name or ID", shell_complete=complete_models)
@click.option("--metadata-filter", help="Metadata filter expression")
@click.pass_context
@handle_errors
def query(ctx, text, store, store_id, model, metadata_filter) -> None:
    """Query Gemini File Search."""
    session = get_session(ctx)
    client = session.require_client()
    target = resolve_store_option(ctx, store, store_id, required=False)
    model_id = session.resolver.resolve_model(model)

    response = client.query(" ".join(text), target, model_id, metadata_filter)
    print_output(response, get_state(ctx).output_format)


@cli.group(cls=AliasedGroup)
def operation() -> None:
    """Manage long-running operations."""


@operation.command("get")
@click.argument("name")
@click.option("--type", "op_type", type=click.Choice([OPERATION_TYPE_IMPORT, OPERATION_TYPE_UPLOAD]),
              help="Operation type (auto-detected if not specified)")
@click.pass_context
@handle_errors
def operation_get(ctx, name: str, op_type: Optional[str]) -> None:
    """
    Get the status of a long-running upload or import operation.

    \b
    Operation names look like fileSearchStores/{store-id}/operations/{operation-id}
    Examples:
        file-search operation get "fileSearchStores/abc123/operations/op456"
        file-search operation get "fileSearchStores/abc123/operations/op456" --type import
    """
    client = get_session(ctx).require_client()
    print_output(client.get_operation(name, op_type), get_state(ctx).output_format)


@cli.command("mcp")
@click.option("--mcp-tools", help="Comma-separated MCP tool groups to enable (query,list,import,upload,manage or all)")
@click.pass_context
@handle_errors
def mcp(ctx, mcp_tools: Optional[str]) -> None:
    """Start the MCP server on stdio."""
    from filesearch.mcp.server import run_server

    session = get_session(ctx)
    tools = parse_mcp_tools(mcp_tools) if mcp_tools is not None else session.config.merged.mcp_tools
    run_server(session, tools)


@cli.command("completion")
@click.argument("shell", type=click.Choice(["bash", "zsh", "fish"]))
def completion(shell: str) -> None:
    """
    Print the shell completion script.

    \b
    Example:
        eval "$(file-search completion bash)"
    """
    comp_cls = get_completion_class(shell)
    click.echo(comp_cls(cli, {}, PROG_NAME, COMPLETE_VAR).source())


@cli.command("version")
def version() -> None:
    """Print the version number."""
    click.echo(f"{PROG_NAME} {__version__}")


def main() -> None:
    """Entry point."""
    cli(prog_name=PROG_NAME, complete_var=COMPLETE_VAR)


if __name__ == "__main__":
    main()
