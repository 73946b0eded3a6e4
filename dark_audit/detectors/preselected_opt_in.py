"""Pre-selected opt-in detector: consent checkboxes that start out checked."""

from __future__ import annotations

from .base import BaseDetector, Match, ScanContext
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..resolver import resolve
from ..text import contains_any, element_text

_CONSENT_KEYWORDS = [
    "deal",
    "newsletter", "newsletters",
    "marketing",
    "offers",
    "promotions", "promo",
    "sale alerts",
    "updates", "product updates",
    "third party", "third-party",
    "partners",
    "share my data", "share our data",
    "personalized ads",
]


def _is_checked_checkbox(node: DomNode) -> bool:
    return (
        node.tag == "input"
        and (node.get("type") or "").lower() == "checkbox"
        and node.has_attr("checked")
    )


def label_region(doc: DomDocument, checkbox: DomNode) -> tuple[DomNode | None, str]:
    """The element that labels ``checkbox`` and its normalized text.

    Tries an explicit ``<label for=...>`` binding, then an enclosing label,
    then falls back to the checkbox's parent.
    """
    if checkbox.id:
        bound = doc.root.find("label", predicate=lambda n: n.get("for") == checkbox.id)
        if bound is not None:
            text = element_text(bound)
            if text:
                return bound, text

    enclosing = checkbox.closest("label")
    if enclosing is not None:
        text = element_text(enclosing)
        if text:
            return enclosing, text

    parent = checkbox.parent
    return parent, element_text(parent)


class PreselectedOptInDetector(BaseDetector):
    """Flags checked marketing/data-sharing checkboxes."""

    name = "preselected_opt_in"
    description = "Identifies consent checkboxes that are checked by default"
    finding_type = FindingType.PRESELECTED_OPT_IN
    severity = Severity.HIGH
    color = "purple"

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements("input", predicate=_is_checked_checkbox)

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        region, text = label_region(ctx.document, node)
        if not contains_any(text, _CONSENT_KEYWORDS):
            return None

        target = resolve(region or node, _CONSENT_KEYWORDS)
        return Match(target, f"Pre-checked consent box on {describe(target)}")
