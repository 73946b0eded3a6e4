"""Finding records, the per-cycle target registry and scan snapshots."""

from __future__ import annotations

import itertools
import time
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .dom import DomNode


class FindingType(str, Enum):
    CONFIRM_SHAMING = "confirm_shaming"
    OBSCURED_INTERFACE = "obscured_interface"
    PRESELECTED_OPT_IN = "preselected_opt_in"
    TRICK_QUESTION = "trick_question"
    COUNTDOWN_TIMER = "countdown_timer"
    DISGUISED_AD = "disguised_ad"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


TYPE_LABELS = {
    FindingType.CONFIRM_SHAMING: "Confirm-shaming / guilt",
    FindingType.OBSCURED_INTERFACE: "Obscured interface / forced modal",
    FindingType.PRESELECTED_OPT_IN: "Pre-selected opt-in",
    FindingType.TRICK_QUESTION: "Trick question",
    FindingType.COUNTDOWN_TIMER: "Countdown / fake urgency",
    FindingType.DISGUISED_AD: "Disguised ad / sponsored content",
}


@dataclass(frozen=True)
class TargetHandle:
    """Opaque reference to a node held by one cycle's TargetRegistry."""
    index: int


@dataclass(frozen=True)
class Finding:
    id: str
    type: FindingType
    severity: Severity
    description: str
    target: TargetHandle | None = None

    def to_public(self) -> dict:
        """The sanitized shape that may cross the query boundary (no target)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
        }


class TargetRegistry:
    """Weakly maps handles to the nodes findings point at.

    A handle resolves to None once its node is garbage-collected or detached
    from the document, so a stale target never leaks out as a live node.
    """

    def __init__(self):
        self._refs: list[weakref.ref] = []
        self._index: dict[int, int] = {}

    def register(self, node: DomNode) -> TargetHandle:
        key = id(node)
        existing = self._index.get(key)
        if existing is not None and self._refs[existing]() is node:
            return TargetHandle(existing)
        self._refs.append(weakref.ref(node))
        handle = TargetHandle(len(self._refs) - 1)
        self._index[key] = handle.index
        return handle

    def resolve(self, handle: TargetHandle | None) -> DomNode | None:
        if handle is None or not 0 <= handle.index < len(self._refs):
            return None
        node = self._refs[handle.index]()
        if node is None or not node.is_attached:
            return None
        return node

    def __len__(self) -> int:
        return len(self._refs)


# Shared by every factory so ids stay unique for the whole process
_SEQUENCE = itertools.count()


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class FindingFactory:
    """Builds findings with ids of the form dp-<epoch-ms>-<seq>."""

    def __init__(self, clock: Callable[[], int] = _epoch_ms):
        self.clock = clock

    def create(self, type: FindingType, severity: Severity, description: str,
               target: TargetHandle | None = None) -> Finding:
        fid = f"dp-{self.clock()}-{next(_SEQUENCE)}"
        return Finding(
            id=fid,
            type=FindingType(type),
            severity=Severity(severity),
            description=description,
            target=target,
        )


@dataclass(frozen=True)
class Snapshot:
    """Findings of one scan cycle plus the registry their targets live in."""
    findings: tuple[Finding, ...] = ()
    registry: TargetRegistry = field(default_factory=TargetRegistry, compare=False)
    created: float = field(default_factory=time.time)

    def target_of(self, finding: Finding) -> DomNode | None:
        return self.registry.resolve(finding.target)

    def find(self, finding_id: str) -> Finding | None:
        for f in self.findings:
            if f.id == finding_id:
                return f
        return None

    def __len__(self) -> int:
        return len(self.findings)
