"""Scan coordination and the per-page engine context.

One PageEngine exists per loaded document. It owns the scan snapshot, the
lifetime finding counter and the mutation scheduler; nothing survives a
reload because a new document gets a new engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .annotate import Annotator
from .cascade import apply_stylesheets
from .config import Settings, settings as default_settings
from .detectors import BaseDetector, DetectorRun, ElementOutcome, ScanContext, build_detectors
from .dom import DomDocument
from .findings import Finding, FindingFactory, Snapshot, TargetRegistry
from .scheduler import AsyncioTimers, MutationScheduler, Timers

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """What one scan cycle produced."""
    findings: list[Finding] = field(default_factory=list)
    runs: list[DetectorRun] = field(default_factory=list)
    total_findings: int = 0
    cap_reached: bool = False

    @property
    def skipped(self) -> list[ElementOutcome]:
        return [outcome for run in self.runs for outcome in run.skipped]


class ScanCoordinator:
    """Runs the detectors in order and enforces the lifetime finding cap."""

    def __init__(
        self,
        document: DomDocument,
        settings: Settings,
        factory: FindingFactory,
        annotator: Annotator,
        detectors: list[BaseDetector] | None = None,
    ):
        self.document = document
        self.settings = settings
        self.factory = factory
        self.annotator = annotator
        self.detectors = detectors if detectors is not None else build_detectors()
        self.snapshot = Snapshot()
        self.total_findings = 0
        self.scan_count = 0
        self._refresh_listeners: list[Callable[[Snapshot], None]] = []
        self._cap_listeners: list[Callable[[], None]] = []

    @property
    def cap_reached(self) -> bool:
        return self.total_findings >= self.settings.MAX_FINDINGS

    def subscribe(self, listener: Callable[[Snapshot], None]):
        """Call ``listener`` with each new snapshot (e.g. to refresh a panel)."""
        self._refresh_listeners.append(listener)

    def on_cap_reached(self, listener: Callable[[], None]):
        self._cap_listeners.append(listener)

    def run_scan(self) -> ScanReport | None:
        """Run one cycle and replace the snapshot. None when the cap was already hit."""
        if self.cap_reached:
            return None

        registry = TargetRegistry()
        report = ScanReport()

        # Stylesheet rules may have changed with the tree since the last cycle
        try:
            apply_stylesheets(self.document)
        except Exception as e:
            logger.warning("Stylesheet cascade failed, using inline styles only: %s", e)

        for detector in self.detectors:
            remaining = self.settings.MAX_FINDINGS - self.total_findings
            if remaining <= 0:
                break
            ctx = ScanContext(
                document=self.document,
                settings=self.settings,
                factory=self.factory,
                annotator=self.annotator,
                registry=registry,
                budget=remaining,
            )
            try:
                run = detector.detect(ctx)
            except Exception as e:
                logger.warning("Detector %s failed: %s", detector.name, e)
                continue

            report.runs.append(run)
            report.findings.extend(run.findings)
            self.total_findings += len(run.findings)
            if self.cap_reached:
                logger.info("Max findings reached, stopping further scans.")
                break

        self.snapshot = Snapshot(findings=tuple(report.findings), registry=registry)
        self.scan_count += 1
        report.total_findings = self.total_findings
        report.cap_reached = self.cap_reached

        logger.info(
            "Findings (this scan): %d, total so far: %d",
            len(report.findings), self.total_findings,
        )

        for listener in list(self._refresh_listeners):
            try:
                listener(self.snapshot)
            except Exception:
                logger.exception("Refresh listener failed")

        if report.cap_reached:
            for listener in list(self._cap_listeners):
                try:
                    listener()
                except Exception:
                    logger.exception("Cap listener failed")

        return report


class PageEngine:
    """Per-document engine context: coordinator, scheduler and annotations."""

    def __init__(
        self,
        document: DomDocument,
        settings: Settings | None = None,
        timers: Timers | None = None,
        clock: Callable[[], int] | None = None,
        detectors: list[BaseDetector] | None = None,
    ):
        self.document = document
        self.settings = settings or default_settings
        self.timers = timers or AsyncioTimers()
        self.annotator = Annotator()
        self.factory = FindingFactory(clock) if clock is not None else FindingFactory()
        self.coordinator = ScanCoordinator(
            document, self.settings, self.factory, self.annotator, detectors,
        )
        self.scheduler = MutationScheduler(
            run_scan=self.coordinator.run_scan,
            cap_reached=lambda: self.coordinator.cap_reached,
            timers=self.timers,
            delay_ms=self.settings.DEBOUNCE_MS,
        )
        self.coordinator.on_cap_reached(self.scheduler.disable)
        self._started = False

    @property
    def snapshot(self) -> Snapshot:
        return self.coordinator.snapshot

    @property
    def total_findings(self) -> int:
        return self.coordinator.total_findings

    def start(self):
        """Observe mutations and schedule the initial scan once the page is ready."""
        if self._started:
            return
        self._started = True
        self.scheduler.watch(self.document)
        if self.document.is_ready:
            self.scheduler.schedule()
        else:
            self.document.on_ready(self.scheduler.schedule)

    def scan_now(self) -> ScanReport | None:
        """Run a cycle immediately, bypassing the debounce (debugging hook)."""
        report = self.coordinator.run_scan()
        if self.coordinator.cap_reached:
            self.scheduler.disable()
        return report

    def get_findings(self) -> dict:
        from .query import get_findings
        return get_findings(self)

    def flash(self, finding_id: str) -> bool:
        """Highlight the live node behind a finding. False if unknown or stale."""
        finding = self.snapshot.find(finding_id)
        if finding is None:
            return False
        node = self.snapshot.target_of(finding)
        if node is None:
            return False
        self.annotator.flash(node, self.timers)
        return True

    def teardown(self):
        """Stop observing and drop the page's engine slot (navigation/unload)."""
        self.scheduler.disable()
        if self.document.engine is self:
            self.document.engine = None


def install(document: DomDocument, settings: Settings | None = None,
            timers: Timers | None = None, **kwargs) -> PageEngine:
    """Create and start the page's engine, or return the one already installed."""
    if isinstance(document.engine, PageEngine):
        logger.debug("Engine already installed for %s", document.location)
        return document.engine
    engine = PageEngine(document, settings=settings, timers=timers, **kwargs)
    document.engine = engine
    engine.start()
    return engine
