"""Author stylesheet cascade for pages parsed without a browser.

Rules from the page's ``<style>`` elements are matched with BeautifulSoup's
CSS selector engine against a mirror of the current tree. The winning
declarations land on each node's ``sheet``; style.py layers inline styles
and captured computed values on top of them.

Supported: selector lists, specificity and source order, ``!important``,
and ``@media`` blocks evaluated against the document viewport. External
stylesheets (``<link rel="stylesheet">``) are not fetched.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import soupsieve
from bs4 import BeautifulSoup

from .dom import DomDocument, DomNode
from .style import parse_length

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_ATTR_RE = re.compile(r"\[[^\]]*\]")
_PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+")
_ID_RE = re.compile(r"#[\w-]+")
_CLASS_RE = re.compile(r"\.[\w-]+|:(?!not\(|is\(|where\()[\w-]+")
_TYPE_RE = re.compile(r"(?<![\w-])[a-zA-Z][\w-]*")
_SIMPLE_RE = re.compile(r"[#.:][\w-]+")
_FEATURE_RE = re.compile(r"\(([^)]*)\)")
_AT_RULE_RE = re.compile(r"(@[\w-]+)\s*(.*)", re.DOTALL)


@dataclass(frozen=True)
class StyleRule:
    selector: str
    declarations: tuple[tuple[str, str, bool], ...]  # (property, value, important)
    specificity: tuple[int, int, int]


def specificity(selector: str) -> tuple[int, int, int]:
    """(ids, classes/attributes/pseudo-classes, types/pseudo-elements)."""
    s = selector
    attrs = len(_ATTR_RE.findall(s))
    s = _ATTR_RE.sub(" ", s)
    pseudo_elements = len(_PSEUDO_ELEMENT_RE.findall(s))
    s = _PSEUDO_ELEMENT_RE.sub(" ", s)
    ids = len(_ID_RE.findall(s))
    classes = len(_CLASS_RE.findall(s))
    types = len(_TYPE_RE.findall(_SIMPLE_RE.sub(" ", s)))
    return ids, attrs + classes, types + pseudo_elements


def media_matches(query: str, viewport: tuple[float, float]) -> bool:
    """Evaluate a media query list for a screen of the given viewport size.

    Only width/height ranges and orientation are understood; any other
    feature (prefers-color-scheme, hover, ...) is treated as not matching.
    """
    parts = [p.strip() for p in query.lower().split(",") if p.strip()]
    if not parts:
        return True
    return any(_media_part_matches(part, viewport) for part in parts)


def _media_part_matches(part: str, viewport: tuple[float, float]) -> bool:
    if part.startswith("not "):
        return False
    words = [w for w in _FEATURE_RE.sub(" ", part).split() if w not in ("only", "and")]
    if any(w not in ("screen", "all") for w in words):
        return False

    width, height = viewport
    for feature in _FEATURE_RE.findall(part):
        name, _, value = feature.partition(":")
        name, value = name.strip(), value.strip()
        if name == "orientation":
            if (value == "landscape") != (width >= height):
                return False
        elif name in ("min-width", "max-width", "min-height", "max-height"):
            limit = parse_length(value, viewport=viewport)
            if limit is None:
                return False
            actual = width if name.endswith("width") else height
            if (actual < limit) if name.startswith("min") else (actual > limit):
                return False
        else:
            return False
    return True


def _blocks(css: str):
    """Yield (prelude, body) for each top-level ``prelude { body }`` block."""
    depth = 0
    start = 0
    body_start = 0
    prelude = ""
    for i, ch in enumerate(css):
        if ch == "{":
            if depth == 0:
                prelude = css[start:i].strip()
                body_start = i + 1
            depth += 1
        elif ch == "}":
            if depth == 0:
                start = i + 1
                continue
            depth -= 1
            if depth == 0:
                yield prelude, css[body_start:i]
                start = i + 1
        elif ch == ";" and depth == 0:
            # @import / @charset statements
            start = i + 1


def _split_selectors(prelude: str) -> list[str]:
    selectors = []
    depth = 0
    current = []
    for ch in prelude:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if ch == "," and depth == 0:
            selectors.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    selectors.append("".join(current).strip())
    return [s for s in selectors if s]


def _rule_declarations(body: str) -> tuple[tuple[str, str, bool], ...]:
    declarations = []
    for chunk in body.split(";"):
        prop, sep, value = chunk.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        value = value.strip()
        important = value.lower().endswith("!important")
        if important:
            value = value[: -len("!important")].strip()
        if prop and value:
            declarations.append((prop, value, important))
    return tuple(declarations)


def parse_stylesheet(css: str, viewport: tuple[float, float] = (1280, 800)) -> list[StyleRule]:
    """Flatten a stylesheet into rules in source order, keeping matching @media blocks."""
    rules: list[StyleRule] = []
    for prelude, body in _blocks(_COMMENT_RE.sub("", css)):
        if prelude.startswith("@"):
            m = _AT_RULE_RE.match(prelude)
            keyword, condition = (m.group(1).lower(), m.group(2)) if m else ("", "")
            if keyword == "@media" and media_matches(condition, viewport):
                rules.extend(parse_stylesheet(body, viewport))
            elif keyword == "@supports":
                rules.extend(parse_stylesheet(body, viewport))
            continue
        declarations = _rule_declarations(body)
        if not declarations:
            continue
        for selector in _split_selectors(prelude):
            rules.append(StyleRule(selector, declarations, specificity(selector)))
    return rules


def collect_rules(document: DomDocument) -> list[StyleRule]:
    rules: list[StyleRule] = []
    for style_el in document.elements("style"):
        media = style_el.get("media")
        if media and not media_matches(media, document.viewport):
            continue
        css = "".join(child.text for child in style_el.children if child.is_text)
        rules.extend(parse_stylesheet(css, document.viewport))
    return rules


def _mirror(root: DomNode) -> tuple[BeautifulSoup, dict[int, DomNode]]:
    """Build a BeautifulSoup copy of the tree, indexed back to the DomNodes."""
    soup = BeautifulSoup("", "html.parser")
    index: dict[int, DomNode] = {}

    def build(node: DomNode, parent):
        attrs = dict(node.attrs)
        if "class" in attrs:
            attrs["class"] = node.classes
        tag = soup.new_tag(node.tag, attrs=attrs)
        index[id(tag)] = node
        parent.append(tag)
        for child in node.children:
            if child.is_text:
                tag.append(soup.new_string(child.text))
            else:
                build(child, tag)

    build(root, soup)
    return soup, index


def apply_stylesheets(document: DomDocument) -> int:
    """Recompute every element's ``sheet`` from the page's <style> rules.

    Returns the number of rules applied. Selectors the engine cannot
    evaluate (e.g. pseudo-elements) are skipped.
    """
    rules = collect_rules(document)
    if not rules:
        for node in document.root.walk():
            if node.sheet:
                node.sheet = {}
        return 0

    soup, index = _mirror(document.root)
    hits: dict[int, list[tuple[int, StyleRule]]] = {}
    for order, rule in enumerate(rules):
        try:
            matched = soup.select(rule.selector)
        except (soupsieve.SelectorSyntaxError, NotImplementedError) as e:
            logger.debug("Skipping selector %r: %s", rule.selector, e)
            continue
        for tag in matched:
            hits.setdefault(id(index[id(tag)]), []).append((order, rule))

    for node in document.root.walk():
        if not node.is_element:
            continue
        entries = []
        for order, rule in hits.get(id(node), []):
            for prop, value, important in rule.declarations:
                entries.append(((important, rule.specificity, order), prop, value, important))
        entries.sort(key=lambda e: e[0])
        node.sheet = {prop: (value, important) for _, prop, value, important in entries}

    logger.debug("Applied %d stylesheet rule(s) to %s", len(rules), document.location)
    return len(rules)
