"""Sanitized read access to the current snapshot.

Nothing that crosses this boundary carries a node reference: findings are
reduced to {id, type, severity, description}.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .engine import PageEngine


GET_FINDINGS = "darkPatterns:getFindings"


class EngineUnreachable(RuntimeError):
    """No usable answer came back from the page engine."""


def get_findings(engine: PageEngine) -> dict:
    """Latest snapshot without targets. Never triggers a scan."""
    return {
        "findings": [f.to_public() for f in engine.snapshot.findings],
        "location": engine.document.location,
    }


def handle_message(engine: PageEngine, message) -> dict | None:
    """Answer a getFindings request; any other message gets no response."""
    if not isinstance(message, dict) or message.get("type") != GET_FINDINGS:
        return None
    return get_findings(engine)


def request_findings(send: Callable[[dict], dict | None]) -> dict:
    """Caller-side query through ``send``.

    Raises EngineUnreachable when the transport fails or nothing answers,
    so a missing engine is never mistaken for a page without findings.
    """
    try:
        response = send({"type": GET_FINDINGS})
    except Exception as e:
        raise EngineUnreachable(f"Could not reach page engine: {e}") from e

    if response is None:
        raise EngineUnreachable("No response from page engine")
    if not isinstance(response, dict) or not isinstance(response.get("findings"), list):
        raise EngineUnreachable(f"Malformed response from page engine: {response!r}")
    return response
