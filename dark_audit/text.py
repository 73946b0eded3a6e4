"""Text canonicalization shared by the detectors and the target resolver."""

from __future__ import annotations

import re

from .dom import DomNode

_WS_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Collapse whitespace runs, trim and case-fold. Idempotent."""
    return _WS_RE.sub(" ", text or "").strip().casefold()


def element_text(node: DomNode | None) -> str:
    """Normalized rendered text of an element ('' for None).

    Form controls that render their label from ``value`` (buttons, submit
    inputs) contribute that value instead of their (empty) children.
    """
    if node is None:
        return ""
    if node.tag == "input":
        return normalize(node.get("value", ""))
    return normalize(node.inner_text())


def contains_any(text: str, keywords) -> bool:
    return any(k in text for k in keywords)


def tokens(text: str) -> list[str]:
    """Whitespace tokens of normalized text with surrounding punctuation stripped."""
    return [t.strip(".,;:!?\"()[]") for t in text.split(" ") if t]
