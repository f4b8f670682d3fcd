"""Tests for CLI output formatting."""

import io
import json

from google.genai import types
from rich.console import Console

from filesearch.cli.output import print_output, to_jsonable
from filesearch.gemini.client import OperationStatus


def render(data):
    buf = io.StringIO()
    print_output(data, "text", out=Console(file=buf, width=200, color_system=None))
    return buf.getvalue()


class TestTextOutput:
    """Tests for rich text output."""

    def test_store_list_table(self):
        """Test rendering a store list as a table."""
        text = render([
            types.FileSearchStore(name="fileSearchStores/abc", display_name="Manuals",
                                  active_documents_count=3),
        ])

        assert "Manuals" in text
        assert "fileSearchStores/abc" in text
        assert "3" in text

    def test_empty_list(self):
        """Test rendering an empty list."""
        assert "No results" in render([])

    def test_document_metadata(self):
        """Test rendering document metadata."""
        doc = types.Document(
            name="fileSearchStores/abc/documents/d1",
            display_name="intro.md",
            custom_metadata=[types.CustomMetadata(key="team", string_value="docs")],
        )

        text = render(doc)

        assert "Display Name: intro.md" in text
        assert "team: docs" in text

    def test_operation_status(self):
        """Test rendering operation status."""
        status = OperationStatus(name="fileSearchStores/abc/operations/o1", type="import",
                                 done=True, parent="fileSearchStores/abc")

        text = render(status)

        assert "DONE" in text
        assert "Store: fileSearchStores/abc" in text

    def test_markup_in_names_is_escaped(self):
        """Test that rich markup in names is escaped."""
        assert "[bold]x[/bold]" in render({"Name": "[bold]x[/bold]"})


class TestJsonOutput:
    """Tests for JSON output."""

    def test_sdk_models_drop_empty_fields(self):
        """Test that JSON output drops empty SDK fields."""
        data = to_jsonable(types.FileSearchStore(name="fileSearchStores/abc"))
        assert data == {"name": "fileSearchStores/abc"}

    def test_dataclasses(self, capsys):
        """Test JSON output of dataclasses."""
        print_output(OperationStatus(name="op", type="upload"), "json")

        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "op"
        assert data["done"] is False
