"""Tests for finding records, ids and target handles."""

import gc

from dark_audit.dom import DomNode, parse_html
from dark_audit.findings import (
    Finding, FindingFactory, FindingType, Severity, Snapshot, TargetRegistry,
)


def test_ids_unique_under_timestamp_collision():
    factory = FindingFactory(clock=lambda: 1700000000000)
    ids = {factory.create(FindingType.DISGUISED_AD, Severity.MEDIUM, "x").id for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("dp-1700000000000-") for i in ids)


def test_ids_unique_across_factories():
    a = FindingFactory(clock=lambda: 1)
    b = FindingFactory(clock=lambda: 1)
    assert a.create("trick_question", "medium", "x").id != b.create("trick_question", "medium", "x").id


def test_create_coerces_enum_values():
    f = FindingFactory().create("countdown_timer", "low", "Potential urgency timer")
    assert f.type is FindingType.COUNTDOWN_TIMER
    assert f.severity is Severity.LOW


def test_to_public_strips_target():
    registry = TargetRegistry()
    doc = parse_html('<b id="t">x</b>')
    handle = registry.register(doc.get_element_by_id("t"))
    f = FindingFactory().create(FindingType.CONFIRM_SHAMING, Severity.HIGH, "desc", handle)
    public = f.to_public()
    assert set(public) == {"id", "type", "severity", "description"}
    assert public["type"] == "confirm_shaming"
    assert public["severity"] == "high"


def test_registry_handles_go_stale_on_detach():
    doc = parse_html('<div id="a"><span id="s">x</span></div>')
    span = doc.get_element_by_id("s")
    registry = TargetRegistry()
    handle = registry.register(span)
    assert registry.resolve(handle) is span

    span.remove()
    assert registry.resolve(handle) is None


def test_registry_handles_go_stale_on_collection():
    registry = TargetRegistry()
    node = DomNode("div")
    handle = registry.register(node)
    del node
    gc.collect()
    assert registry.resolve(handle) is None


def test_registry_reuses_handle_for_same_node():
    doc = parse_html('<b id="t">x</b>')
    node = doc.get_element_by_id("t")
    registry = TargetRegistry()
    assert registry.register(node) == registry.register(node)
    assert len(registry) == 1
    assert registry.resolve(None) is None


def test_snapshot_lookup():
    doc = parse_html('<b id="t">x</b>')
    registry = TargetRegistry()
    handle = registry.register(doc.get_element_by_id("t"))
    finding = Finding("dp-1-1", FindingType.DISGUISED_AD, Severity.MEDIUM, "d", handle)
    snap = Snapshot(findings=(finding,), registry=registry)
    assert snap.find("dp-1-1") is finding
    assert snap.find("missing") is None
    assert snap.target_of(finding).id == "t"
    assert len(snap) == 1
