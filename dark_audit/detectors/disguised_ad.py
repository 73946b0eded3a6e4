"""Disguised ad detector: sponsored cards with a barely visible label."""

from __future__ import annotations

from .base import BaseDetector, Match, ScanContext
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..resolver import resolve
from ..style import font_size
from ..text import contains_any, element_text

# Substring match: "ad" also covers "ads" and "advertising"
_SPONSOR_KEYWORDS = [
    "sponsored", "sponsered",
    "promoted", "promotion", "promoted post",
    "ad", "advertisement",
    "paid partnership", "paid post",
    "partner content", "brand content",
]

_CARD_TAGS = ("article", "div", "li", "section")
_LABEL_TAGS = ("small", "span", "div")


class DisguisedAdDetector(BaseDetector):
    """Flags content cards whose sponsorship label is rendered tiny.

    Every enclosing card-like wrapper is its own candidate, so nested
    wrappers around one card each report the same label.
    """

    name = "disguised_ad"
    description = "Identifies sponsored content blended in with organic cards"
    finding_type = FindingType.DISGUISED_AD
    severity = Severity.MEDIUM
    color = "blue"

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements(*_CARD_TAGS)

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        if not contains_any(element_text(node), _SPONSOR_KEYWORDS):
            return None

        tiny_label = None
        for label in node.find_all(*_LABEL_TAGS):
            if not contains_any(element_text(label), _SPONSOR_KEYWORDS):
                continue
            size = font_size(label)
            if size and size < ctx.settings.TINY_FONT_PX:
                tiny_label = label

        if tiny_label is None:
            return None
        if node.find("a", predicate=lambda n: n.has_attr("href")) is None:
            return None
        if node.find("img") is None:
            return None

        target = resolve(tiny_label, _SPONSOR_KEYWORDS)
        return Match(
            target,
            f"Content card ({describe(target)}) appears to be sponsored but the label may be hard to notice.",
        )
