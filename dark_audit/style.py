"""Computed style and geometry for document nodes.

Values are layered the way a browser cascade would resolve them:
- author stylesheet rules from the page's <style> elements (cascade.py)
- the node's inline ``style`` attribute
- ``!important`` stylesheet rules
- computed values and a ``rect`` captured from a rendered page (capture.py)

Without a rendered capture, font-size falls back to inheritance and
user-agent defaults, and sizes are resolved against the viewport or parent.
"""

from __future__ import annotations

import re

from .dom import DomNode

DEFAULT_FONT_PX = 16.0

# User-agent font scaling for tags that render smaller/larger by default
_TAG_FONT_SCALE = {
    "small": 0.833,
    "sub": 0.833,
    "sup": 0.833,
    "h1": 2.0,
    "h2": 1.5,
    "h3": 1.17,
    "h5": 0.83,
    "h6": 0.67,
}

_KEYWORD_FONT_PX = {
    "xx-small": 9.0,
    "x-small": 10.0,
    "small": 13.0,
    "medium": 16.0,
    "large": 18.0,
    "x-large": 24.0,
    "xx-large": 32.0,
}

_LENGTH_RE = re.compile(r"^\s*(-?\d*\.?\d+)\s*(px|pt|em|rem|%|vw|vh)?\s*$", re.IGNORECASE)


def parse_declarations(style: str | None) -> dict[str, str]:
    """Parse an inline style string into {property: value} (last one wins)."""
    result: dict[str, str] = {}
    if not style:
        return result
    for chunk in style.split(";"):
        if ":" not in chunk:
            continue
        prop, _, value = chunk.partition(":")
        prop = prop.strip().lower()
        value = value.replace("!important", "").strip()
        if prop and value:
            result[prop] = value
    return result


def serialize_declarations(decl: dict[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in decl.items())


def inline_style(node: DomNode) -> dict[str, str]:
    return parse_declarations(node.get("style"))


def declarations(node: DomNode) -> dict[str, str]:
    """Cascaded {property: value} for ``node`` (see module docstring for the order)."""
    result = {prop: value for prop, (value, _) in node.sheet.items()}
    result.update(inline_style(node))
    for prop, (value, important) in node.sheet.items():
        if important:
            result[prop] = value
    if node.computed:
        result.update(node.computed)
    return result


def set_inline_style(node: DomNode, **props: str | None):
    """Set (or with None, remove) inline style properties; underscores map to dashes."""
    current = inline_style(node)
    for key, value in props.items():
        prop = key.replace("_", "-")
        if value is None:
            current.pop(prop, None)
        else:
            current[prop] = value
    node.set_attr("style", serialize_declarations(current))


def parse_length(value: str | None, *, reference: float = 0.0, font_px: float = DEFAULT_FONT_PX,
                 viewport: tuple[float, float] = (0.0, 0.0)) -> float | None:
    """Resolve a CSS length to pixels. Returns None for auto/unparseable values."""
    if value is None:
        return None
    m = _LENGTH_RE.match(value)
    if not m:
        return None
    number = float(m.group(1))
    unit = (m.group(2) or "px").lower()
    if unit == "px":
        return number
    if unit == "pt":
        return number * 4 / 3
    if unit == "em":
        return number * font_px
    if unit == "rem":
        return number * DEFAULT_FONT_PX
    if unit == "%":
        return number / 100 * reference
    if unit == "vw":
        return number / 100 * viewport[0]
    if unit == "vh":
        return number / 100 * viewport[1]
    return None


def position(node: DomNode) -> str:
    return declarations(node).get("position", "static").lower()


def z_index(node: DomNode) -> int | None:
    """Numeric stacking order, or None for auto/missing values."""
    raw = declarations(node).get("z-index", "")
    m = re.match(r"^\s*(-?\d+)", raw)
    return int(m.group(1)) if m else None


def font_size(node: DomNode) -> float:
    """Computed font size in px: own declaration, else inherited, else UA default."""
    chain = []
    current: DomNode | None = node
    while current is not None:
        if current.is_element:
            chain.append(current)
        current = current.parent

    size = DEFAULT_FONT_PX
    for el in reversed(chain):
        declared = declarations(el).get("font-size")
        if declared is not None:
            keyword = _KEYWORD_FONT_PX.get(declared.lower())
            if keyword is not None:
                size = keyword
                continue
            if declared.lower() == "smaller":
                size = size * 0.833
                continue
            if declared.lower() == "larger":
                size = size * 1.2
                continue
            resolved = parse_length(declared, reference=size, font_px=size)
            if resolved is not None:
                size = resolved
                continue
        size = size * _TAG_FONT_SCALE.get(el.tag, 1.0)
    return size


def bounding_size(node: DomNode, viewport: tuple[float, float]) -> tuple[float, float]:
    """Rendered (width, height) in px.

    An explicit ``rect`` hint wins. Otherwise width/height declarations are
    resolved against the viewport for fixed elements (and against the
    parent's size for everything else); offsets such as ``inset: 0`` or
    ``left: 0; right: 0`` stretch a positioned element across its containing
    block when no explicit size is given.
    """
    if node.rect and "width" in node.rect and "height" in node.rect:
        return float(node.rect["width"]), float(node.rect["height"])

    decl = declarations(node)
    pos = decl.get("position", "static").lower()
    if pos == "fixed":
        container = viewport
    elif node.parent is not None and node.parent.is_element and node.parent.tag not in ("html", "body"):
        container = bounding_size(node.parent, viewport)
    else:
        container = viewport

    fs = font_size(node)
    width = parse_length(decl.get("width"), reference=container[0], font_px=fs, viewport=viewport)
    height = parse_length(decl.get("height"), reference=container[1], font_px=fs, viewport=viewport)

    if pos in ("fixed", "absolute"):
        top, right, bottom, left = _offsets(decl)
        if width is None and left is not None and right is not None:
            width = container[0] - _px(left, container[0], fs, viewport) - _px(right, container[0], fs, viewport)
        if height is None and top is not None and bottom is not None:
            height = container[1] - _px(top, container[1], fs, viewport) - _px(bottom, container[1], fs, viewport)
    elif width is None and node.tag not in _INLINE_TAGS:
        # Block boxes fill their container horizontally
        width = container[0]

    return max(width or 0.0, 0.0), max(height or 0.0, 0.0)


_INLINE_TAGS = {"span", "a", "small", "strong", "em", "b", "i", "img", "label", "button", "input", "time"}


def _offsets(decl: dict[str, str]) -> tuple[str | None, str | None, str | None, str | None]:
    top = decl.get("top")
    right = decl.get("right")
    bottom = decl.get("bottom")
    left = decl.get("left")
    inset = decl.get("inset")
    if inset:
        parts = inset.split()
        # CSS shorthand expansion: 1-4 values
        if len(parts) == 1:
            parts = parts * 4
        elif len(parts) == 2:
            parts = [parts[0], parts[1], parts[0], parts[1]]
        elif len(parts) == 3:
            parts = [parts[0], parts[1], parts[2], parts[1]]
        top = top or parts[0]
        right = right or parts[1]
        bottom = bottom or parts[2]
        left = left or parts[3]
    return top, right, bottom, left


def _px(value: str, reference: float, font_px: float, viewport: tuple[float, float]) -> float:
    resolved = parse_length(value, reference=reference, font_px=font_px, viewport=viewport)
    return resolved or 0.0
