"""Trick question detector: consent labels worded to confuse."""

from __future__ import annotations

from .base import BaseDetector, Match, ScanContext
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..resolver import resolve
from ..text import contains_any, element_text, tokens

_CONFUSION_PHRASES = [
    "uncheck if", "un-check if", "un check if",
    "check if you don't want", "check if you dont want", "check if you do not want",
    "do not uncheck", "don't uncheck", "dont uncheck",
    "opt out", "opt-out", "optout",
]

_CONSENT_CONTEXT = [
    "email", "emails",
    "newsletter", "newsletters",
    "offers", "promotions",
    "marketing",
    "ads", "advertising",
    "news and updates", "updates",
]

_NEGATION_WORDS = {"don't", "dont", "not", "no", "never"}
_ACTION_WORDS = {"unsubscribe", "subscribe", "send", "emails", "email", "marketing"}

_ALL_KEYWORDS = _CONFUSION_PHRASES + _CONSENT_CONTEXT + sorted(_NEGATION_WORDS) + sorted(_ACTION_WORDS)

_MIN_DOUBLE_NEGATIVE_TOKENS = 6

_LABELABLE = ("input", "select", "textarea", "button", "meter", "output", "progress")


def looks_double_negative(text: str) -> bool:
    """Coarse proxy: a negation and an action word in a label longer than six tokens."""
    words = tokens(text)
    if len(words) <= _MIN_DOUBLE_NEGATIVE_TOKENS:
        return False
    return any(w in _NEGATION_WORDS for w in words) and any(w in _ACTION_WORDS for w in words)


def bound_control(doc: DomDocument, label: DomNode) -> DomNode | None:
    """The control a label is bound to: for= target, else a nested checkbox/radio."""
    target_id = label.get("for")
    if target_id:
        control = doc.get_element_by_id(target_id)
        if control is not None and control.tag in _LABELABLE:
            return control
    return label.find("input", predicate=lambda n: (n.get("type") or "").lower() in ("checkbox", "radio"))


class TrickQuestionDetector(BaseDetector):
    """Flags labels with opt-out inversions or double negatives."""

    name = "trick_question"
    description = "Identifies confusing or double-negative consent wording"
    finding_type = FindingType.TRICK_QUESTION
    severity = Severity.MEDIUM
    color = "brown"

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements("label")

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        text = element_text(node)
        if not text:
            return None

        confusing = contains_any(text, _CONFUSION_PHRASES)
        consent_context = contains_any(text, _CONSENT_CONTEXT)
        if not (confusing or (consent_context and looks_double_negative(text))):
            return None

        wording = resolve(node, _ALL_KEYWORDS)
        control = bound_control(ctx.document, node)
        return Match(control or wording, f"Potentially confusing consent text on {describe(wording)}")
