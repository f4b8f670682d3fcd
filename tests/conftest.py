"""Shared fixtures: a scriptable directory client and a manual clock."""

import threading
from typing import Dict, List, Optional

import pytest

from filesearch.core.cache import ResolutionCache
from filesearch.core.resources import DirectoryClient, ResourceKind, ResourceRecord


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDirectory(DirectoryClient):
    """
    In-memory directory with call counting.

    ``gate`` (when set) blocks every listing until the test releases it,
    and ``started`` is set once a listing is blocked on the gate.
    """

    def __init__(self, records: Optional[Dict] = None):
        self.records: Dict = records or {}
        self.calls: List = []
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None
        self.started = threading.Event()
        self._lock = threading.Lock()

    def set(self, kind: ResourceKind, pairs, parent_id: Optional[str] = None) -> None:
        self.records[(kind, parent_id)] = [
            ResourceRecord(display_name=name, identifier=ident, parent_identifier=parent_id)
            for name, ident in pairs
        ]

    def count(self, kind: ResourceKind, parent_id: Optional[str] = None) -> int:
        with self._lock:
            return self.calls.count((kind, parent_id))

    def list_records(self, kind, parent_id=None):
        with self._lock:
            self.calls.append((kind, parent_id))
        if self.gate is not None:
            self.started.set()
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return list(self.records.get((kind, parent_id), []))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.set(ResourceKind.STORE, [("Manuals", "fileSearchStores/abc"), ("Notes", "fileSearchStores/n1")])
    d.set(ResourceKind.FILE, [("report.pdf", "files/r1")])
    d.set(ResourceKind.MODEL, [("gemini-2.5-flash", "models/gemini-2.5-flash")])
    d.set(
        ResourceKind.DOCUMENT,
        [("intro.md", "fileSearchStores/abc/documents/d1")],
        parent_id="fileSearchStores/abc",
    )
    return d


@pytest.fixture
def cache(directory, clock):
    return ResolutionCache(directory, ttl=300, clock=clock)
