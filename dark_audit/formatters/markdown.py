"""Markdown formatter: renders a findings response as a report."""

from __future__ import annotations

from ..findings import FindingType, TYPE_LABELS

_SEVERITY_ORDER = ["high", "medium", "low", "unknown"]


def _label(type_key: str) -> str:
    try:
        return TYPE_LABELS[FindingType(type_key)]
    except ValueError:
        return type_key


def generate_markdown(response: dict, total_findings: int | None = None) -> str:
    """Generate a markdown report from a getFindings response."""
    findings = response.get("findings", [])
    location = response.get("location", "")

    lines = [
        "# Dark Pattern Report",
        "",
        f"**Page**: `{location}`",
        f"**Findings**: {len(findings)}",
    ]
    if total_findings is not None:
        lines.append(f"**Lifetime total**: {total_findings}")
    lines.append("")

    if not findings:
        lines.append("No obvious dark patterns detected on this page.")
        lines.append("")
        return "\n".join(lines)

    # Severity summary
    counts: dict[str, int] = {}
    for f in findings:
        severity = f.get("severity", "unknown")
        counts[severity] = counts.get(severity, 0) + 1
    lines.append("| Severity | Count |")
    lines.append("|----------|-------|")
    for severity in _SEVERITY_ORDER:
        if counts.get(severity):
            lines.append(f"| {severity} | {counts[severity]} |")
    lines.append("")

    # Group by type, in first-seen order
    grouped: dict[str, list[dict]] = {}
    for f in findings:
        grouped.setdefault(f.get("type", "unknown"), []).append(f)

    for type_key, group in grouped.items():
        lines.append(f"## {_label(type_key)} ({len(group)})")
        lines.append("")
        for f in group:
            description = f.get("description") or "(no description)"
            lines.append(f"- **{f.get('severity', 'unknown')}** {description} `{f.get('id', '')}`")
        lines.append("")

    return "\n".join(lines)
