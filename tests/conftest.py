"""Shared fixtures: a hand-cranked timer backend and page builders."""

import pytest

from dark_audit.config import Settings
from dark_audit.dom import parse_html
from dark_audit.engine import PageEngine


class _ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimers:
    """Timer backend whose clock only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self._handles: list[_ManualHandle] = []

    def call_later(self, delay, callback):
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float):
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self._handles = [h for h in self._handles if not h.cancelled]
        self.now = target


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def make_engine(timers):
    def _make(markup: str, settings: Settings | None = None, **kwargs) -> PageEngine:
        doc = parse_html(markup, location="https://shop.example/checkout", **kwargs)
        return PageEngine(doc, settings=settings or Settings(), timers=timers)
    return _make
