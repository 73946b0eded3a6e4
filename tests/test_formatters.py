"""Tests for output formatters."""

from dark_audit.formatters.markdown import generate_markdown


def _sample_response() -> dict:
    return {
        "location": "https://shop.example/checkout",
        "findings": [
            {"id": "dp-1-0", "type": "confirm_shaming", "severity": "high",
             "description": "Possibly manipulative opt-out copy on button"},
            {"id": "dp-1-1", "type": "countdown_timer", "severity": "low",
             "description": "Potential urgency timer on span#clock"},
            {"id": "dp-1-2", "type": "countdown_timer", "severity": "high",
             "description": "Potential urgency timer on span#copy"},
            {"id": "dp-1-3", "type": "mystery", "severity": "unknown", "description": ""},
        ],
    }


def test_markdown_report_groups_by_type():
    md = generate_markdown(_sample_response(), total_findings=7)
    assert "# Dark Pattern Report" in md
    assert "**Page**: `https://shop.example/checkout`" in md
    assert "**Findings**: 4" in md
    assert "**Lifetime total**: 7" in md
    assert "## Confirm-shaming / guilt (1)" in md
    assert "## Countdown / fake urgency (2)" in md
    assert "## mystery (1)" in md
    assert "(no description)" in md
    assert md.index("Confirm-shaming") < md.index("Countdown")


def test_markdown_severity_table():
    md = generate_markdown(_sample_response())
    assert "| high | 2 |" in md
    assert "| low | 1 |" in md
    assert "| medium |" not in md
    assert "Lifetime total" not in md


def test_markdown_empty_page():
    md = generate_markdown({"findings": [], "location": "about:blank"})
    assert "No obvious dark patterns detected on this page." in md
