"""Target resolution: the most specific element carrying a keyword match."""

from __future__ import annotations

import logging

from .dom import DomNode
from .text import element_text, normalize

logger = logging.getLogger(__name__)


def resolve(root: DomNode | None, keywords) -> DomNode | None:
    """Find the smallest element inside ``root`` whose own text run matches a keyword.

    Text nodes are visited in document order; the parent element of each
    matching run is a candidate and the candidate with the shortest
    normalized text wins (first seen on ties). Falls back to ``root`` when
    nothing matches, when ``keywords`` is empty, or when traversal fails.
    """
    if root is None:
        return None
    if not keywords:
        return root

    lowered = [normalize(k) for k in keywords]
    best: DomNode | None = None
    best_len = None

    try:
        for text_node in root.text_nodes():
            text = normalize(text_node.text)
            if not text:
                continue
            if not any(k in text for k in lowered):
                continue

            el = text_node.parent
            if el is None:
                continue

            length = len(element_text(el))
            if length and (best_len is None or length < best_len):
                best_len = length
                best = el
    except Exception as e:
        logger.debug("Target resolution fell back to root: %s", e)
        return root

    return best or root
