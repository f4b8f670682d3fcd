"""Tests for the click command tree."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import click
import pytest
from click.testing import CliRunner
from google.genai import types

from filesearch import __version__
from filesearch.cli import context
from filesearch.cli.completer import complete_documents, complete_stores
from filesearch.cli.main import cli, parse_metadata
from filesearch.core.cache import ResolutionCache
from filesearch.core.completion import CompletionProvider
from filesearch.core.resolver import NameResolver
from filesearch.core.resources import ResourceKind
from filesearch.core.session import MISSING_KEY_MESSAGE, Session
from filesearch.gemini.client import UploadOptions
from filesearch.validation.config import Config

STORE = ResourceKind.STORE
DOCUMENT = ResourceKind.DOCUMENT


def make_session(client, cache):
    return Session(
        config=Config(environ={}),
        client=client,
        cache=cache,
        resolver=NameResolver(cache),
        completer=CompletionProvider(cache, wait=2),
    )


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def session(api, cache):
    return make_session(api, cache)


@pytest.fixture
def runner(monkeypatch, session):
    monkeypatch.setattr(context, "load_config", lambda params: Config(environ={}))
    monkeypatch.setattr(context, "create_session", lambda config, completion_wait=None: session)
    return CliRunner()


class TestBasics:
    """Top-level commands and helpers."""

    def test_version(self, runner):
        """Test the version command."""
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"file-search {__version__}"

    def test_completion_script(self, runner):
        """Test printing a shell completion script."""
        result = runner.invoke(cli, ["completion", "zsh"])

        assert result.exit_code == 0
        assert "_FILE_SEARCH_COMPLETE" in result.output

    def test_parse_metadata(self):
        """Test parsing of repeated metadata options."""
        assert parse_metadata(["a=1", "b=x=y", "junk"]) == {"a": "1", "b": "x=y"}


class TestStoreCommands:
    """store subcommands resolve names and keep the cache current."""

    def test_get_by_display_name(self, runner, api):
        """Test getting a store by display name."""
        api.get_store.return_value = types.FileSearchStore(
            name="fileSearchStores/abc", display_name="Manuals"
        )

        result = runner.invoke(cli, ["--format", "json", "store", "get", "Manuals"])

        assert result.exit_code == 0, result.output
        api.get_store.assert_called_once_with("fileSearchStores/abc")
        assert json.loads(result.output)["display_name"] == "Manuals"

    def test_list_alias(self, runner, api):
        """Test the ls alias."""
        api.list_stores.return_value = []

        result = runner.invoke(cli, ["store", "ls"])

        assert result.exit_code == 0
        api.list_stores.assert_called_once()

    def test_ambiguous_name_exits_with_error(self, runner, api, directory):
        """Test that an ambiguous name exits with an error."""
        directory.set(STORE, [("Docs", "fileSearchStores/abc"), ("Docs", "fileSearchStores/def")])

        result = runner.invoke(cli, ["store", "get", "Docs"])

        assert result.exit_code == 1
        assert "Error: Multiple stores" in result.output
        api.get_store.assert_not_called()

    def test_not_found(self, runner):
        """Test that an unknown name exits with an error."""
        result = runner.invoke(cli, ["store", "delete", "Missing"])

        assert result.exit_code == 1
        assert 'No store found with display name "Missing"' in result.output

    def test_delete_invalidates_store_list(self, runner, api, cache, directory):
        """Test that deleting a store invalidates the store list."""
        result = runner.invoke(cli, ["store", "rm", "Manuals", "--force"])

        assert result.exit_code == 0, result.output
        api.delete_store.assert_called_once_with("fileSearchStores/abc", force=True)
        cache.get(STORE)
        assert directory.count(STORE) == 2

    def test_create_invalidates_store_list(self, runner, api, cache, directory):
        """Test that creating a store invalidates the store list."""
        cache.get(STORE)
        api.create_store.return_value = SimpleNamespace(name="fileSearchStores/new", display_name="New")

        result = runner.invoke(cli, ["store", "create", "New"])

        assert result.exit_code == 0, result.output
        assert "Created store: New (fileSearchStores/new)" in result.output
        cache.get(STORE)
        assert directory.count(STORE) == 2

    def test_import_file(self, runner, api, cache, directory):
        """Test importing a file into a store."""
        cache.get(DOCUMENT, "fileSearchStores/abc")

        result = runner.invoke(cli, ["-q", "store", "import-file", "report.pdf", "--store", "Manuals"])

        assert result.exit_code == 0, result.output
        api.import_file.assert_called_once_with("files/r1", "fileSearchStores/abc")
        api.wait_for_operation.assert_called_once()
        cache.get(DOCUMENT, "fileSearchStores/abc")
        assert directory.count(DOCUMENT, "fileSearchStores/abc") == 2


class TestDocumentCommands:
    """Tests for the document commands."""

    def test_list_requires_store(self, runner):
        """Test that listing documents requires a store."""
        result = runner.invoke(cli, ["document", "list"])

        assert result.exit_code == 2
        assert "--store" in result.output

    def test_store_id_must_be_identifier(self, runner):
        """Test that --store-id rejects display names."""
        result = runner.invoke(cli, ["docs", "ls", "--store-id", "Manuals"])

        assert result.exit_code == 2

    def test_get_by_name_in_store(self, runner, api):
        """Test getting a document by name within a store."""
        api.get_document.return_value = types.Document(
            name="fileSearchStores/abc/documents/d1", display_name="intro.md"
        )

        result = runner.invoke(cli, ["doc", "get", "intro.md", "--store", "Manuals"])

        assert result.exit_code == 0, result.output
        api.get_document.assert_called_once_with("fileSearchStores/abc/documents/d1")
        assert "intro.md" in result.output

    def test_name_without_store(self, runner):
        """Test a document name given without a store."""
        result = runner.invoke(cli, ["document", "get", "intro.md"])

        assert result.exit_code == 1
        assert "without a store" in result.output

    def test_delete_invalidates_parent_store(self, runner, api, cache, directory):
        """Test that deleting a document invalidates its store's documents."""
        cache.get(DOCUMENT, "fileSearchStores/abc")

        result = runner.invoke(cli, ["document", "delete", "fileSearchStores/abc/documents/d1"])

        assert result.exit_code == 0, result.output
        api.delete_document.assert_called_once_with("fileSearchStores/abc/documents/d1", force=False)
        cache.get(DOCUMENT, "fileSearchStores/abc")
        assert directory.count(DOCUMENT, "fileSearchStores/abc") == 2


class TestFileCommands:
    """Tests for the file commands."""

    def test_upload_to_store(self, runner, api, cache, directory, tmp_path):
        """Test uploading a file into a store."""
        path = tmp_path / "guide.txt"
        path.write_text("hello")
        cache.get(DOCUMENT, "fileSearchStores/abc")
        api.wait_for_operation.return_value = SimpleNamespace(
            response=SimpleNamespace(document_name="fileSearchStores/abc/documents/new")
        )

        result = runner.invoke(cli, [
            "-q", "--format", "json", "file", "upload", str(path),
            "--store", "Manuals", "--metadata", "team=docs", "--metadata", "bogus",
        ])

        assert result.exit_code == 0, result.output
        args = api.upload_file.call_args.args
        assert args[1] == UploadOptions(
            store_name="fileSearchStores/abc",
            display_name="guide.txt",
            metadata={"team": "docs"},
        )
        assert json.loads(result.output)["document"] == "fileSearchStores/abc/documents/new"
        cache.get(DOCUMENT, "fileSearchStores/abc")
        assert directory.count(DOCUMENT, "fileSearchStores/abc") == 2

    def test_upload_without_store_invalidates_files(self, runner, api, cache, directory, tmp_path):
        """Test that a plain upload invalidates the file list."""
        path = tmp_path / "guide.txt"
        path.write_text("hello")
        cache.get(ResourceKind.FILE)
        api.upload_file.return_value = SimpleNamespace(display_name="guide.txt", uri="https://x/files/g")

        result = runner.invoke(cli, ["file", "upload", str(path)])

        assert result.exit_code == 0, result.output
        assert "Uploaded file: guide.txt" in result.output
        cache.get(ResourceKind.FILE)
        assert directory.count(ResourceKind.FILE) == 2


class TestQuery:
    """Tests for the query command."""

    def test_query_resolves_store_and_model(self, runner, api):
        """Test that query resolves store and model names."""
        api.query.return_value = "answer"

        result = runner.invoke(cli, ["q", "what", "is", "this", "--store", "Manuals",
                                     "--model", "gemini-2.5-flash"])

        assert result.exit_code == 0, result.output
        api.query.assert_called_once_with(
            "what is this", "fileSearchStores/abc", "models/gemini-2.5-flash", None
        )

    def test_default_model_needs_no_lookup(self, runner, api, directory):
        """Test that the default model needs no model lookup."""
        api.query.return_value = "answer"

        result = runner.invoke(cli, ["query", "hi"])

        assert result.exit_code == 0, result.output
        api.query.assert_called_once_with("hi", None, "models/gemini-2.5-flash", None)
        assert directory.calls == []


class TestWithoutApiKey:
    """Behavior when no API key is configured."""

    @pytest.fixture
    def session(self):
        cache = ResolutionCache(None, disabled_reason=MISSING_KEY_MESSAGE)
        return make_session(None, cache)

    def test_listing_fails_with_key_hint(self, runner):
        """Test listing without an API key."""
        result = runner.invoke(cli, ["store", "list"])

        assert result.exit_code == 1
        assert "API key not set" in result.output

    def test_display_name_fails_fast(self, runner):
        """Test that display names fail fast without an API key."""
        result = runner.invoke(cli, ["store", "get", "Manuals"])

        assert result.exit_code == 1
        assert "Pass the store ID instead" in result.output


class TestShellCompletion:
    """Completion callbacks read the session cache."""

    def _ctx(self, session, **params):
        ctx = click.Context(cli)
        ctx.meta[context.SESSION_KEY] = session
        ctx.params.update(params)
        return ctx

    def test_complete_stores(self, session):
        """Test completing store names."""
        param = click.Argument(["name"])
        assert complete_stores(self._ctx(session), param, "Ma") == ["Manuals"]

    def test_complete_documents_uses_store_option(self, session):
        """Test that document completion reads the --store option."""
        param = click.Argument(["name"])
        ctx = self._ctx(session, store="Manuals")

        assert complete_documents(ctx, param, "") == ["intro.md"]

    def test_complete_documents_without_store(self, session):
        """Test document completion without a store."""
        param = click.Argument(["name"])
        assert complete_documents(self._ctx(session), param, "") == []

    def test_completion_errors_are_swallowed(self, session, directory):
        """Test that completion errors produce no candidates."""
        directory.error = RuntimeError("boom")
        param = click.Argument(["name"])

        assert complete_stores(self._ctx(session), param, "") == []
