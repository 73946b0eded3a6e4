"""Obscured interface detector: full-screen overlays that block the page."""

from __future__ import annotations

from .base import BaseDetector, Match, ScanContext, is_actionable
from ..dom import DomDocument, DomNode, describe
from ..findings import FindingType, Severity
from ..style import bounding_size, position, z_index

_CONTAINER_TAGS = ("div", "section", "aside")


class ObscuredInterfaceDetector(BaseDetector):
    """Flags fixed/absolute high-z containers covering most of the viewport."""

    name = "obscured_interface"
    description = "Identifies large stacked overlays that hide the interface"
    finding_type = FindingType.OBSCURED_INTERFACE
    severity = Severity.MEDIUM
    color = "red"

    def candidates(self, doc: DomDocument) -> list[DomNode]:
        return doc.elements(*_CONTAINER_TAGS)

    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        if position(node) not in ("fixed", "absolute"):
            return None
        z = z_index(node)
        if z is None or z < ctx.settings.OVERLAY_MIN_Z:
            return None

        vw, vh = ctx.document.viewport
        width, height = bounding_size(node, ctx.document.viewport)
        coverage = ctx.settings.OVERLAY_COVERAGE
        if width < vw * coverage or height < vh * coverage:
            return None

        if node.find(predicate=is_actionable) is None:
            return None

        return Match(
            node,
            f"Large overlay ({describe(node)}) with high z-index that might block the interface.",
        )
