"""Tests for mutation-driven rescans and the debounce timer."""

import asyncio

import pytest

from dark_audit.config import Settings
from dark_audit.dom import parse_html
from dark_audit.engine import install
from dark_audit.scheduler import AsyncioTimers, MutationScheduler, SchedulerState


def _page(buttons: int = 1) -> str:
    shaming = "".join("<button>No thanks, I hate saving money</button>" for _ in range(buttons))
    return f'<div id="feed">{shaming}</div>'


def _append(doc, markup="<p>more content</p>"):
    for node in doc.fragment(markup):
        doc.get_element_by_id("feed").append_child(node)


def test_initial_scan_runs_after_debounce(timers):
    doc = parse_html(_page())
    engine = install(doc, settings=Settings(), timers=timers)
    assert engine.scheduler.state is SchedulerState.DEBOUNCING
    assert engine.coordinator.scan_count == 0

    timers.advance(0.599)
    assert engine.coordinator.scan_count == 0
    timers.advance(0.001)
    assert engine.coordinator.scan_count == 1
    assert engine.scheduler.state is SchedulerState.IDLE


def test_initial_scan_waits_for_readiness(timers):
    doc = parse_html(_page(), ready_state="loading")
    engine = install(doc, settings=Settings(), timers=timers)
    assert timers.pending == 0

    doc.set_ready_state("interactive")
    assert timers.pending == 1
    timers.advance(0.6)
    assert engine.coordinator.scan_count == 1


def test_burst_of_mutations_triggers_one_scan(timers):
    doc = parse_html(_page())
    engine = install(doc, settings=Settings(), timers=timers)
    timers.advance(0.6)
    assert engine.coordinator.scan_count == 1

    for _ in range(10):
        _append(doc)
        timers.advance(0.05)
    assert engine.coordinator.scan_count == 1
    assert timers.pending == 1

    timers.advance(0.6)
    assert engine.coordinator.scan_count == 2
    assert engine.scheduler.scans_run == 2


def test_non_structural_mutations_are_ignored(timers):
    doc = parse_html(_page())
    engine = install(doc, settings=Settings(), timers=timers)
    timers.advance(0.6)

    doc.get_element_by_id("feed").set_attr("data-seen", "1")
    assert timers.pending == 0
    assert engine.scheduler.state is SchedulerState.IDLE


def test_cap_disables_scheduler_permanently(timers):
    doc = parse_html(_page(buttons=50))
    engine = install(doc, settings=Settings(), timers=timers)

    timers.advance(0.6)
    _append(doc)
    timers.advance(0.6)
    _append(doc)
    timers.advance(0.6)
    assert engine.total_findings == 128
    assert engine.scheduler.state is SchedulerState.DISABLED
    assert not engine.scheduler.observing

    scans = engine.coordinator.scan_count
    for _ in range(5):
        _append(doc)
        timers.advance(1.0)
    assert timers.pending == 0
    assert engine.coordinator.scan_count == scans
    assert engine.total_findings == 128


def test_small_cap_trips_on_first_scan(timers):
    doc = parse_html(_page(buttons=5))
    engine = install(doc, settings=Settings(MAX_FINDINGS=3), timers=timers)
    timers.advance(0.6)
    assert engine.total_findings == 3
    assert len(engine.get_findings()["findings"]) == 3

    _append(doc)
    assert timers.pending == 0
    assert engine.scheduler.state is SchedulerState.DISABLED


def test_teardown_cancels_pending_scan(timers):
    doc = parse_html(_page())
    engine = install(doc, settings=Settings(), timers=timers)
    engine.teardown()
    timers.advance(1.0)
    assert engine.coordinator.scan_count == 0
    _append(doc)
    assert timers.pending == 0


def test_scheduler_standalone_last_write_wins(timers):
    calls = []
    scheduler = MutationScheduler(lambda: calls.append(timers.now), lambda: False, timers, delay_ms=600)
    scheduler.schedule()
    timers.advance(0.3)
    scheduler.schedule()
    timers.advance(0.3)
    assert calls == []
    timers.advance(0.3)
    assert calls == [pytest.approx(0.9)]
    assert scheduler.state is SchedulerState.IDLE


def test_install_outside_event_loop_defers_initial_scan():
    doc = parse_html(_page())
    engine = install(doc, settings=Settings(DEBOUNCE_MS=10))
    assert engine.scheduler.state is SchedulerState.DEBOUNCING
    assert engine.timers.deferred == 1

    async def run():
        engine.timers.attach()
        await asyncio.sleep(0.1)

    asyncio.run(run())
    assert engine.timers.deferred == 0
    assert engine.coordinator.scan_count == 1
    assert engine.total_findings == 1


def test_ready_transition_outside_event_loop_defers_scan():
    doc = parse_html(_page(), ready_state="loading")
    engine = install(doc, settings=Settings(DEBOUNCE_MS=10))
    doc.set_ready_state("interactive")
    assert engine.timers.deferred == 1

    _append(doc)
    # The restarted debounce cancels the first deferred timer
    assert engine.timers.deferred == 1


def test_asyncio_timers_cancelled_before_attach_never_fire():
    fired = []
    timers = AsyncioTimers()
    handle = timers.call_later(0.01, lambda: fired.append(1))
    handle.cancel()

    async def run():
        timers.attach()
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert fired == []
