"""CLI entry point for dark-audit."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .utils import c, parse_viewport, print_box, print_table, severity_badge


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dark-audit",
        description="dark-audit: heuristic dark pattern scanner for web pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  dark-audit scan checkout.html
  dark-audit scan checkout.html --format markdown
  dark-audit scan page-export.json --viewport 390x844 --annotated flagged.html
  dark-audit scan https://shop.example/checkout --render --format json
  dark-audit watch shop.html mutations.json --format json
""",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log scan progress (-v info, -vv debug)")
    parser.add_argument("--log-format", choices=["text", "json"], default=None)

    sub = parser.add_subparsers(dest="command", required=True)

    # scan: one scan cycle over a page
    p_scan = sub.add_parser("scan", help="Scan an HTML page or JSON node export once")
    p_scan.add_argument("file", type=str, help="Path to .html page or .json node export")
    p_scan.add_argument("--format", type=str, default="summary",
                        choices=["summary", "json", "markdown"],
                        help="Output format (default: summary)")
    p_scan.add_argument("--annotated", type=str, default=None,
                        help="Write the page with flagged elements outlined to this path")
    p_scan.add_argument("--viewport", type=str, default=None, help="Viewport as WIDTHxHEIGHT")
    p_scan.add_argument("--url", type=str, default=None, help="Location reported with findings")
    p_scan.add_argument("--render", action="store_true",
                        help="Render FILE (a path or http(s) URL) in headless Chromium first "
                             "and scan the computed layout")

    # watch: replay timed mutations through the live scheduler
    p_watch = sub.add_parser("watch", help="Replay timed mutations against a page and rescan")
    p_watch.add_argument("file", type=str, help="Path to .html page or .json node export")
    p_watch.add_argument("mutations", type=str, help="JSON list of {at_ms, op, target, html|text}")
    p_watch.add_argument("--format", type=str, default="summary",
                         choices=["summary", "json", "markdown"])
    p_watch.add_argument("--viewport", type=str, default=None, help="Viewport as WIDTHxHEIGHT")
    p_watch.add_argument("--url", type=str, default=None)

    return parser


def _load(args):
    from .config import settings
    from .dom import load_document

    viewport = parse_viewport(args.viewport) if args.viewport else None
    if getattr(args, "render", False):
        from .capture import capture_page
        doc = asyncio.run(capture_page(args.file, viewport=viewport or settings.viewport))
        if args.url:
            doc.location = args.url
        return doc

    doc = load_document(args.file, viewport=viewport, location=args.url)
    # JSON exports may carry their own viewport
    if viewport is None and not args.file.lower().endswith(".json"):
        doc.viewport = settings.viewport
    return doc


def _emit(engine, fmt: str, report=None):
    response = engine.get_findings()

    if fmt == "json":
        print(json.dumps({
            **response,
            "total_findings": engine.total_findings,
            "scans": engine.coordinator.scan_count,
        }, indent=2))
    elif fmt == "markdown":
        from .formatters.markdown import generate_markdown
        print(generate_markdown(response, total_findings=engine.total_findings))
    else:
        _print_scan_summary(engine, response, report)


def _print_scan_summary(engine, response, report=None):
    """Print the scan summary box and a findings table."""
    findings = response["findings"]

    by_type: dict[str, int] = {}
    for f in findings:
        by_type[f["type"]] = by_type.get(f["type"], 0) + 1

    lines = [
        "dark-audit scan results",
        "",
        f"Page:       {response['location'][:36]}",
        f"Findings:   {len(findings)}",
        f"Lifetime:   {engine.total_findings}/{engine.settings.MAX_FINDINGS}",
        f"Scans:      {engine.coordinator.scan_count}",
    ]
    if report is not None and report.skipped:
        lines.append(f"Skipped:    {len(report.skipped)} elements")
    lines.append("")
    for type_key, count in sorted(by_type.items()):
        lines.append(f"{type_key:<22} {count:3d}")

    print_box(lines)
    print()

    if not findings:
        print(c("  No obvious dark patterns detected on this page.", "green"))
        print()
        return

    rows = [[severity_badge(f["severity"]), f["type"], f["description"]] for f in findings]
    print_table(["Severity", "Type", "Description"], rows, [8, 20, 70])
    print()


def cmd_scan(args):
    """Run a single scan cycle and print the findings."""
    from .config import settings
    from .dom import to_html
    from .engine import PageEngine

    doc = _load(args)
    engine = PageEngine(doc, settings=settings)
    report = engine.scan_now()
    _emit(engine, args.format, report)

    if args.annotated:
        out = Path(args.annotated)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text("<!DOCTYPE html>\n" + to_html(doc.root) + "\n", encoding="utf-8")
        print(c(f"  Written: {out}", "green"), file=sys.stderr)


def _find_target(doc, ref: str):
    if ref in ("body", "", None):
        return doc.body
    node = doc.get_element_by_id(ref.lstrip("#"))
    if node is None:
        raise ValueError(f"Mutation target not found: {ref!r}")
    return node


def _apply_step(doc, step: dict):
    op = step.get("op")
    target = _find_target(doc, step.get("target", "body"))
    if op == "append":
        for node in doc.fragment(step.get("html", "")):
            target.append_child(node)
    elif op == "remove":
        target.remove()
    elif op == "text":
        target.set_text(step.get("text", ""))
    else:
        raise ValueError(f"Unknown mutation op: {op!r}")


def _load_steps(path: str) -> list[dict]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        steps = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid mutations file {path}: {e}") from e
    if not isinstance(steps, list) or not all(isinstance(s, dict) for s in steps):
        raise ValueError(f"Invalid mutations file {path}: expected a list of objects")
    return sorted(steps, key=lambda s: s.get("at_ms", 0))


async def _watch(args):
    from .config import settings
    from .engine import install

    doc = _load(args)
    steps = _load_steps(args.mutations)

    # Replay the load: the engine starts before the page is ready
    doc.ready_state = "loading"
    engine = install(doc, settings=settings)
    doc.set_ready_state("interactive")

    elapsed = 0
    for step in steps:
        at_ms = step.get("at_ms", 0)
        if at_ms > elapsed:
            await asyncio.sleep((at_ms - elapsed) / 1000)
            elapsed = at_ms
        _apply_step(doc, step)

    # Let the last debounce window close
    await asyncio.sleep(settings.DEBOUNCE_MS / 1000 + 0.05)
    doc.set_ready_state("complete")
    _emit(engine, args.format)
    engine.teardown()


def cmd_watch(args):
    """Replay timed mutations through the live scheduler."""
    asyncio.run(_watch(args))


def main():
    parser = create_parser()
    args = parser.parse_args()

    from .logging import setup_logging
    level = {0: None, 1: "INFO"}.get(args.verbose, "DEBUG")
    setup_logging(level, args.log_format)

    commands = {
        "scan": cmd_scan,
        "watch": cmd_watch,
    }

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        print(c(f"  Error: {e}", "red"), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
