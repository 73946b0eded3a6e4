"""Confirm-shaming detector: opt-out controls worded to guilt the user."""

from __future__ import annotations

from .base import BaseDetector, Match, ScanContext, is_actionable
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..resolver import resolve
from ..text import contains_any, element_text

_GUILT_PHRASES = [
    "regret",
    "miss out", "missing out", "fear of missing",
    "you'll be sorry", "you will be sorry",
    "don't leave", "dont leave",
    "wait, don't go", "wait dont go",
    "are you sure",
    "really want to leave", "really want to miss",
    "before you go",
]

# Self-deprecating statements the user is made to click
_SELF_DEPRECATING_PHRASES = [
    "pay full price",
    "hate saving", "hate savings", "hate discounts", "hate deals", "hate money",
    "i don't like saving", "i dont like saving",
    "i don't like discounts", "i dont like discounts",
    "i don't like deals", "i dont like deals",
]

_OPT_OUT_PHRASES = [
    "no thanks", "no, thanks",
    "no thank you", "no, thank you",
    "no i'm good", "no im good", "no i am good",
    "i'll pass", "ill pass",
]

_ALL_PHRASES = _GUILT_PHRASES + _SELF_DEPRECATING_PHRASES + _OPT_OUT_PHRASES


def looks_like_shaming(text: str) -> bool:
    guilt = contains_any(text, _GUILT_PHRASES)
    self_deprecating = contains_any(text, _SELF_DEPRECATING_PHRASES)
    opt_out = contains_any(text, _OPT_OUT_PHRASES)
    return (opt_out and (guilt or self_deprecating)) or (guilt and self_deprecating)


class ConfirmShamingDetector(BaseDetector):
    """Flags buttons and links whose opt-out copy shames the user."""

    name = "confirm_shaming"
    description = "Identifies guilt-tripping or self-deprecating opt-out controls"
    finding_type = FindingType.CONFIRM_SHAMING
    severity = Severity.HIGH
    color = "orange"

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements(predicate=is_actionable)

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        text = element_text(node)
        if not text or not looks_like_shaming(text):
            return None

        target = resolve(node, _ALL_PHRASES)
        return Match(target, f"Possibly manipulative opt-out copy on {describe(target)}")
