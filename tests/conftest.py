"""Shared fixtures."""

import pytest

from xkbmon.layout_base import LayoutSnapshot, LayoutSource


class FakeLayoutSource(LayoutSource):
    """In-memory layout source driven by the test."""

    def __init__(self, current_group=0, names=None):
        self.snapshot = LayoutSnapshot(current_group=current_group, names=dict(names or {}))
        self.pending = []
        self.reads = 0
        self.closed = False
        self.fail_with = None

    def read_layout(self):
        if self.fail_with is not None:
            raise self.fail_with
        self.reads += 1
        return LayoutSnapshot(self.snapshot.current_group, dict(self.snapshot.names))

    def poll_events(self):
        if self.fail_with is not None:
            raise self.fail_with
        events, self.pending = self.pending, []
        return events

    def close(self):
        self.closed = True


@pytest.fixture
def fake_source():
    return FakeLayoutSource(current_group=0, names={0: b"English (US)", 1: "Russian".encode("utf-8")})
