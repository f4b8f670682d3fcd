"""Output formatting for CLI results: rich text or JSON."""

import json
from dataclasses import asdict, is_dataclass
from typing import Any, List, Optional

import click
from google.genai import types
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from filesearch.gemini.client import OperationStatus

console = Console()
err_console = Console(stderr=True)


def to_jsonable(data: Any) -> Any:
    """Convert SDK models, dataclasses and containers to plain JSON values."""
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json", exclude_none=True)
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    if isinstance(data, dict):
        return {str(k): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    return data


def print_output(data: Any, fmt: str = "text", out: Optional[Console] = None) -> None:
    """Print a result as JSON or human-readable text."""
    if fmt == "json":
        click.echo(json.dumps(to_jsonable(data), indent=2, default=str))
        return

    out = out or console

    if isinstance(data, list):
        _print_list(data, out)
    elif isinstance(data, types.FileSearchStore):
        _print_fields(out, [
            ("Name", data.name),
            ("Display Name", data.display_name),
            ("Create Time", data.create_time),
            ("Update Time", data.update_time),
            ("Active Documents", data.active_documents_count or 0),
            ("Pending Documents", data.pending_documents_count or 0),
            ("Failed Documents", data.failed_documents_count or 0),
            ("Total Size", f"{data.size_bytes or 0} bytes"),
        ])
    elif isinstance(data, types.File):
        _print_fields(out, [
            ("Name", data.name),
            ("Display Name", data.display_name),
            ("URI", data.uri),
            ("MIME Type", data.mime_type),
            ("Size", f"{data.size_bytes or 0} bytes"),
            ("Create Time", data.create_time),
            ("Update Time", data.update_time),
            ("State", _enum_text(data.state)),
        ])
    elif isinstance(data, types.Document):
        _print_fields(out, [
            ("Name", data.name),
            ("Display Name", data.display_name),
            ("State", _enum_text(data.state)),
            ("Size", f"{data.size_bytes or 0} bytes"),
            ("MIME Type", data.mime_type),
            ("Create Time", data.create_time),
            ("Update Time", data.update_time),
        ])
        if data.custom_metadata:
            out.print("[cyan]Custom Metadata:[/cyan]")
            for meta in data.custom_metadata:
                value = meta.string_value if meta.string_value is not None else meta.numeric_value
                out.print(f"  {escape(str(meta.key))}: {escape(str(value))}")
    elif isinstance(data, types.GenerateContentResponse):
        _print_response(data, out)
    elif isinstance(data, OperationStatus):
        _print_operation(data, out)
    elif isinstance(data, dict):
        _print_fields(out, [(str(k), v) for k, v in data.items()])
    else:
        out.print(escape(str(data)))


def _enum_text(value: Any) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def _print_fields(out: Console, fields: List[tuple]) -> None:
    for label, value in fields:
        if value is None:
            continue
        out.print(f"[cyan]{label}:[/cyan] {escape(str(value))}")


def _print_list(items: List[Any], out: Console) -> None:
    if not items:
        out.print("[dim]No results[/dim]")
        return

    first = items[0]
    table = Table(show_header=True, header_style="bold")
    table.add_column("Display Name", style="white")
    table.add_column("ID", style="cyan")

    if isinstance(first, types.FileSearchStore):
        table.add_column("Documents", justify="right")
        for s in items:
            table.add_row(escape(s.display_name or ""), s.name, str(s.active_documents_count or 0))
    elif isinstance(first, types.File):
        table.add_column("URI", style="dim")
        for f in items:
            table.add_row(escape(f.display_name or ""), f.name, f.uri or "")
    elif isinstance(first, types.Document):
        table.add_column("State")
        table.add_column("Size", justify="right")
        for d in items:
            table.add_row(
                escape(d.display_name or ""), d.name, _enum_text(d.state), f"{d.size_bytes or 0} bytes"
            )
    else:
        for item in items:
            out.print(escape(str(item)))
        return

    out.print(table)


def _print_response(response: types.GenerateContentResponse, out: Console) -> None:
    sources = []
    for candidate in response.candidates or []:
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if part.text:
                    out.print(escape(part.text))
        metadata = candidate.grounding_metadata
        if metadata and metadata.grounding_chunks:
            for chunk in metadata.grounding_chunks:
                context = chunk.retrieved_context
                if context and context.title and context.title not in sources:
                    sources.append(context.title)

    if sources:
        out.print()
        out.print("[dim]Sources:[/dim]")
        for title in sources:
            out.print(f"[dim]  - {escape(title)}[/dim]")


def _print_operation(status: OperationStatus, out: Console) -> None:
    out.print(f"[cyan]Operation:[/cyan] {escape(status.name)}")
    out.print(f"[cyan]Type:[/cyan] {status.type}")

    if status.failed:
        out.print("[cyan]Status:[/cyan] [red]FAILED[/red]")
        out.print(f"[cyan]Error:[/cyan] {escape(status.error_message or '')}")
    elif status.done:
        out.print("[cyan]Status:[/cyan] [green]DONE[/green]")
        if status.parent:
            out.print(f"[cyan]Store:[/cyan] {status.parent}")
        if status.document_name:
            out.print(f"[cyan]Document:[/cyan] {status.document_name}")
    else:
        out.print("[cyan]Status:[/cyan] [yellow]PENDING[/yellow]")

    if status.metadata:
        out.print()
        out.print("[cyan]Metadata:[/cyan]")
        for key, value in status.metadata.items():
            out.print(f"  {escape(str(key))}: {escape(str(value))}")
