"""Visible, once-per-node marking of flagged elements."""

from __future__ import annotations

import weakref

from .dom import DomNode
from .style import inline_style, set_inline_style

ADVISORY_NOTE = "Possible dark pattern detected by extension"

FLASH_MS = 1000


class Annotator:
    """Applies an outline and tooltip note to a node at most once.

    Marks live in an identity-keyed weak side table, so they last exactly as
    long as the node object and never leak detached subtrees.
    """

    def __init__(self):
        self._marked: weakref.WeakSet[DomNode] = weakref.WeakSet()
        # node -> (restore handle, saved background-color, saved transition)
        self._flashing: weakref.WeakKeyDictionary[DomNode, tuple] = weakref.WeakKeyDictionary()

    def is_annotated(self, node: DomNode) -> bool:
        return node in self._marked

    def annotate(self, node: DomNode | None, color: str = "red") -> bool:
        """Outline ``node`` and extend its tooltip. Returns False when already marked."""
        if node is None or not node.is_element or node in self._marked:
            return False
        self._marked.add(node)

        set_inline_style(node, outline=f"2px solid {color}", outline_offset="2px")

        old_title = node.get("title") or ""
        node.set_attr("title", (old_title + " | " if old_title else "") + ADVISORY_NOTE)
        return True

    def flash(self, node: DomNode, timers) -> None:
        """Briefly highlight ``node``, restoring its inline values after FLASH_MS.

        Flashing a node that is still highlighted extends the highlight; the
        values saved by the first flash are the ones restored.
        """
        pending = self._flashing.get(node)
        if pending is not None:
            handle, original_bg, original_transition = pending
            handle.cancel()
        else:
            original = inline_style(node)
            original_bg = original.get("background-color")
            original_transition = original.get("transition")
            set_inline_style(node, transition="background-color 0.3s ease",
                             background_color="rgba(255, 255, 0, 0.3)")

        def _restore():
            self._flashing.pop(node, None)
            set_inline_style(node, background_color=original_bg, transition=original_transition)

        handle = timers.call_later(FLASH_MS / 1000, _restore)
        self._flashing[node] = (handle, original_bg, original_transition)
