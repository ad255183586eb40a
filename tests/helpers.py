"""
Fakes shared by the tests: record store, clock, DTOs and thread helpers.
"""
import threading
import time
from collections import Counter
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional

import pytest


@dataclass(frozen=True)
class ThingDTO:
    id: int
    name: str
    slug: str = ""


def thing_mapper(record) -> Optional[ThingDTO]:
    """Hidden records are rejected, like a mapper that filters drafts."""
    if getattr(record, "hidden", False):
        return None
    return ThingDTO(id=record.id, name=record.name, slug=record.slug or "")


def make_record(record_id, name=None, slug=None, hidden=False):
    return SimpleNamespace(
        id=record_id,
        name=name or f"Thing {record_id}",
        slug=slug if slug is not None else f"thing-{record_id}",
        hidden=hidden,
    )


class FakeClock:
    """
    Monotonic clock driven by the test.

    hold(name) parks the next read made by the thread called name until
    release is set, with the time it read before parking.
    """

    def __init__(self, start: float = 0.0):
        self.now = start
        self.held = threading.Event()
        self.release = threading.Event()
        self._hold_thread: Optional[str] = None

    def hold(self, thread_name: str) -> None:
        self._hold_thread = thread_name

    def __call__(self) -> float:
        now = self.now
        if threading.current_thread().name == self._hold_thread:
            self._hold_thread = None
            self.held.set()
            assert self.release.wait(timeout=5), "clock was never released"
        return now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStore:
    """
    In-memory record store counting every call.

    Set `gate` to a threading.Event to hold loads until it is set, and
    `error` to make every call raise.
    """

    collection = "things"

    def __init__(self, records=()):
        self.records = {r.id: r for r in records}
        self.calls = Counter()
        self.selections = []
        self.gate: Optional[threading.Event] = None
        self.started = threading.Event()
        self.error: Optional[Exception] = None

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        self.started.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5), "gate was never opened"
        if self.error is not None:
            raise self.error

    def put(self, record) -> None:
        self.records[record.id] = record

    def remove(self, record_id: int) -> None:
        self.records.pop(record_id, None)

    def find_by_id(self, record_id):
        self._enter("find_by_id")
        return self.records.get(record_id)

    def find_all(self, selection=None):
        self._enter("find_all")
        self.selections.append(selection)
        return list(self.records.values())

    def find_by_filter(self, where, limit=None):
        self._enter("find_by_filter")
        found = [
            r for r in self.records.values()
            if all(getattr(r, k, None) == v for k, v in where.items())
        ]
        return found[:limit] if limit is not None else found


def wait_until(predicate, timeout: float = 5.0) -> None:
    """Poll predicate until it is true or fail the test."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("condition not reached in time")
        time.sleep(0.005)


def run_in_thread(fn, name=None):
    """Start fn in a thread; returns (thread, results list, errors list)."""
    results, errors = [], []

    def target():
        try:
            results.append(fn())
        except Exception as e:
            errors.append(e)

    thread = threading.Thread(target=target, name=name, daemon=True)
    thread.start()
    return thread, results, errors
