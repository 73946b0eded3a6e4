"""Countdown detector: clocks and urgency copy pressuring a decision."""

from __future__ import annotations

import re

from .base import BaseDetector, Match, ScanContext
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..resolver import resolve
from ..text import contains_any, normalize

_CLOCK_RE = re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b")
_MERIDIEM_RE = re.compile(r"(?<![a-z])[ap]\.?m\b\.?", re.IGNORECASE)

_URGENCY_KEYWORDS = [
    "for free",
    "save more", "savings",
    "lowest price", "cheapest",
    "deal ends in", "ends", "deal",
    "offer ends in", "offer expires in", "expires in", "ends in",
    "limited time", "time left",
    "only a few left", "left",
    "limited stock", "limited quantity",
    "hurry", "act now", "last chance", "ending soon", "today only",
    "sale ends in",
]

_CANDIDATE_TAGS = ("span", "div", "p", "strong", "time")


class CountdownTimerDetector(BaseDetector):
    """Flags countdown clocks and urgency wording.

    Nested candidates usually resolve to the same innermost element, so a
    target is reported once per run. Runs in later scan cycles report it
    again.
    """

    name = "countdown_timer"
    description = "Identifies countdown timers and urgency messaging"
    finding_type = FindingType.COUNTDOWN_TIMER
    severity = Severity.LOW
    color = "green"
    dedupe_targets = True

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements(*_CANDIDATE_TAGS)

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        raw = node.inner_text()
        text = normalize(raw)
        if not text:
            return None

        has_clock = bool(_CLOCK_RE.search(raw))
        has_urgency = contains_any(text, _URGENCY_KEYWORDS)
        if not has_clock and not has_urgency:
            return None
        # "10:30 AM" is a time of day, not a countdown
        if not has_urgency and _MERIDIEM_RE.search(raw):
            return None

        target = resolve(node, _URGENCY_KEYWORDS)
        return Match(
            target,
            f"Potential urgency timer on {describe(target)}",
            Severity.HIGH if has_urgency else Severity.LOW,
        )
