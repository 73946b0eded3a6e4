"""Tests for the dark-audit command line."""

import json
import sys

import pytest

from dark_audit import cli


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["dark-audit", *argv])
    cli.main()


def _write_page(tmp_path):
    page = tmp_path / "page.html"
    page.write_text(
        '<div id="feed"><button>No thanks, I hate saving money</button></div>',
        encoding="utf-8",
    )
    return page


def test_scan_json(monkeypatch, capsys, tmp_path):
    page = _write_page(tmp_path)
    _run(monkeypatch, "scan", str(page), "--format", "json", "--url", "https://shop.example/")
    out = json.loads(capsys.readouterr().out)
    assert out["location"] == "https://shop.example/"
    assert out["total_findings"] == 1
    assert out["findings"][0]["type"] == "confirm_shaming"
    assert "target" not in out["findings"][0]


def test_scan_summary_and_annotated_output(monkeypatch, capsys, tmp_path):
    page = _write_page(tmp_path)
    annotated = tmp_path / "out" / "flagged.html"
    _run(monkeypatch, "scan", str(page), "--annotated", str(annotated))
    out = capsys.readouterr().out
    assert "dark-audit scan results" in out
    assert "confirm_shaming" in out
    html = annotated.read_text(encoding="utf-8")
    assert "outline: 2px solid orange" in html
    assert "Possible dark pattern detected by extension" in html


def test_scan_markdown(monkeypatch, capsys, tmp_path):
    page = _write_page(tmp_path)
    _run(monkeypatch, "scan", str(page), "--format", "markdown")
    assert "## Confirm-shaming / guilt (1)" in capsys.readouterr().out


def test_watch_replays_mutations(monkeypatch, capsys, tmp_path):
    page = _write_page(tmp_path)
    steps = tmp_path / "steps.json"
    steps.write_text(json.dumps([
        {"at_ms": 0, "op": "append", "target": "#feed",
         "html": '<label id="nl"><input type="checkbox" checked> Weekly newsletter</label>'},
        {"at_ms": 20, "op": "append", "target": "body", "html": "<p>Hurry, only 3 left!</p>"},
    ]))
    _run(monkeypatch, "watch", str(page), str(steps), "--format", "json")
    out = json.loads(capsys.readouterr().out)
    types = sorted(f["type"] for f in out["findings"])
    assert types == ["confirm_shaming", "countdown_timer", "preselected_opt_in"]
    assert out["scans"] == 1


def test_missing_file_exits_nonzero(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "scan", str(tmp_path / "missing.html"))
    assert exc.value.code == 1
    assert "File not found" in capsys.readouterr().err


def test_bad_viewport_exits_nonzero(monkeypatch, capsys, tmp_path):
    page = _write_page(tmp_path)
    with pytest.raises(SystemExit):
        _run(monkeypatch, "scan", str(page), "--viewport", "wide")


def test_scan_render_uses_browser_capture(monkeypatch, capsys):
    from dark_audit import capture
    from dark_audit.dom import parse_dom_json

    requested = []

    async def fake_capture(target, viewport=(1280, 800), timeout_ms=30000):
        requested.append((target, viewport))
        return parse_dom_json({
            "location": target,
            "viewport": {"width": viewport[0], "height": viewport[1]},
            "root": {"tag": "html", "children": [{"tag": "body", "children": [{
                "tag": "div", "attrs": {"id": "gate"},
                "computed": {"position": "fixed", "z-index": "5000"},
                "rect": {"x": 0, "y": 0, "width": 390, "height": 844},
                "children": [{"tag": "button", "children": [{"type": "text", "content": "Close"}]}],
            }]}]},
        })

    monkeypatch.setattr(capture, "capture_page", fake_capture)
    _run(monkeypatch, "scan", "https://shop.example/checkout", "--render",
         "--viewport", "390x844", "--format", "json")
    out = json.loads(capsys.readouterr().out)
    assert requested == [("https://shop.example/checkout", (390, 844))]
    assert out["location"] == "https://shop.example/checkout"
    assert [f["type"] for f in out["findings"]] == ["obscured_interface"]
