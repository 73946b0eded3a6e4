"""Base class for dark pattern detectors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..annotate import Annotator
from ..config import Settings
from ..dom import DomDocument, DomNode, describe
from ..findings import Finding, FindingFactory, FindingType, Severity, TargetRegistry

logger = logging.getLogger(__name__)


@dataclass
class ScanContext:
    """Everything one detector run needs from the current scan cycle."""
    document: DomDocument
    settings: Settings
    factory: FindingFactory
    annotator: Annotator
    registry: TargetRegistry
    budget: int


@dataclass(frozen=True)
class Match:
    """A candidate element that triggered the detector."""
    target: DomNode
    description: str
    severity: Severity | None = None


@dataclass(frozen=True)
class ElementOutcome:
    """Why a candidate element was skipped instead of inspected."""
    element: str
    reason: str


@dataclass
class DetectorRun:
    detector: str
    findings: list[Finding] = field(default_factory=list)
    skipped: list[ElementOutcome] = field(default_factory=list)
    candidates: int = 0
    interrupted: bool = False


class BaseDetector(ABC):
    """Base class for all dark pattern detectors.

    Each detector picks its candidate elements from the document, inspects
    them one at a time and turns every Match into an annotated Finding. A
    fault on one element becomes a skipped ElementOutcome; the run carries
    on with the next candidate and keeps what it already found.
    """

    name: str = "base"
    description: str = ""
    finding_type: FindingType
    severity: Severity = Severity.UNKNOWN
    color: str = "red"
    # Report each resolved target at most once per run
    dedupe_targets: bool = False

    @abstractmethod
    def candidates(self, doc: DomDocument) -> list[DomNode]:
        """Elements to inspect, captured up front in document order."""
        ...

    @abstractmethod
    def inspect(self, node: DomNode, ctx: ScanContext) -> Match | None:
        """Return a Match when ``node`` shows the pattern, else None."""
        ...

    def detect(self, ctx: ScanContext) -> DetectorRun:
        run = DetectorRun(detector=self.name)
        if ctx.budget <= 0:
            run.interrupted = True
            return run

        used_targets: list[DomNode] = []
        for node in self.candidates(ctx.document):
            if len(run.findings) >= ctx.budget:
                run.interrupted = True
                break
            run.candidates += 1

            if not node.is_attached:
                run.skipped.append(ElementOutcome(describe(node), "detached"))
                continue
            try:
                match = self.inspect(node, ctx)
            except Exception as e:
                logger.debug("%s: skipping %s (%s)", self.name, describe(node), e)
                run.skipped.append(ElementOutcome(describe(node), f"{type(e).__name__}: {e}"))
                continue
            if match is None:
                continue

            if self.dedupe_targets:
                if any(t is match.target for t in used_targets):
                    continue
                used_targets.append(match.target)

            handle = ctx.registry.register(match.target)
            run.findings.append(ctx.factory.create(
                self.finding_type,
                match.severity or self.severity,
                match.description,
                handle,
            ))
            ctx.annotator.annotate(match.target, self.color)

        return run


def is_actionable(node: DomNode) -> bool:
    """Buttons, links, role=button and button/submit inputs."""
    if not node.is_element:
        return False
    if node.tag in ("button", "a"):
        return True
    if (node.get("role") or "").lower() == "button":
        return True
    return node.tag == "input" and (node.get("type") or "").lower() in ("button", "submit")
