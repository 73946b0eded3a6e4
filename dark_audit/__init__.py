"""dark-audit: heuristic dark pattern detection over a live document tree."""

from .dom import DomDocument, DomNode, load_document, parse_dom_json, parse_html
from .engine import PageEngine, ScanCoordinator, ScanReport, install
from .findings import Finding, FindingType, Severity, Snapshot
from .query import EngineUnreachable, get_findings, handle_message, request_findings

__version__ = "0.1.0"
