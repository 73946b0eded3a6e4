"""In-memory document tree that detectors walk and the page mutates.

The tree can be built from:
1. An HTML string or file (parsed with BeautifulSoup)
2. A JSON export of the node tree, or a dict already loaded into memory

Node kinds:
- element: any tag; carries attributes, inline style and children
- text: a run of character data (tag "#text")

Structural edits made through DomNode methods (append/insert/remove/text)
are delivered as MutationRecords to every observer registered on the
owning DomDocument, the way a page's mutation observer would see them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Callable, Iterator

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

logger = logging.getLogger(__name__)

TEXT = "#text"

READY_STATES = ("loading", "interactive", "complete")

_VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
}


class DetachedNodeError(RuntimeError):
    """Raised when an operation needs a node that is no longer in the tree."""


@dataclass(frozen=True)
class MutationRecord:
    """One change to the tree, shaped like a DOM mutation record."""
    type: str  # childList | characterData | attributes
    target: "DomNode"
    added_nodes: tuple = ()
    removed_nodes: tuple = ()
    attribute_name: str | None = None

    @property
    def is_structural(self) -> bool:
        return bool(self.added_nodes or self.removed_nodes)


@dataclass(eq=False)
class DomNode:
    """Represents an element or text node in the document tree."""
    tag: str
    attrs: dict = field(default_factory=dict)
    children: list["DomNode"] = field(default_factory=list)
    text: str = ""
    rect: dict | None = None
    parent: "DomNode | None" = field(default=None, repr=False)
    owner: "DomDocument | None" = field(default=None, repr=False)
    # Winning stylesheet declarations: {property: (value, important)}
    sheet: dict = field(default_factory=dict, repr=False)
    # Computed values captured from a rendered page, e.g. {"z-index": "2000"}
    computed: dict | None = field(default=None, repr=False)

    @property
    def is_text(self) -> bool:
        return self.tag == TEXT

    @property
    def is_element(self) -> bool:
        return self.tag != TEXT

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @property
    def classes(self) -> list[str]:
        return self.attrs.get("class", "").split()

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    def has_attr(self, name: str) -> bool:
        return name in self.attrs

    @property
    def is_attached(self) -> bool:
        """True while the node is reachable from its document's root."""
        node = self
        while node.parent is not None:
            node = node.parent
        return self.owner is not None and node is self.owner.root

    def walk(self) -> Iterator["DomNode"]:
        """Yield all nodes in the subtree (DFS, document order).

        Children are copied before descending so edits made while iterating
        never break the traversal.
        """
        yield self
        for child in list(self.children):
            yield from child.walk()

    def descendants(self) -> Iterator["DomNode"]:
        it = self.walk()
        next(it)
        yield from it

    def text_nodes(self) -> Iterator["DomNode"]:
        """Yield descendant text nodes in document order, skipping script-like content."""
        for child in list(self.children):
            if child.is_text:
                yield child
            elif child.tag not in _HIDDEN_TEXT_TAGS:
                yield from child.text_nodes()

    def find_all(self, *tags: str, predicate: Callable[["DomNode"], bool] | None = None) -> list["DomNode"]:
        """Find descendant elements (excluding self) matching any of the tags and the predicate."""
        wanted = set(tags)
        found = []
        for n in self.descendants():
            if not n.is_element:
                continue
            if wanted and n.tag not in wanted:
                continue
            if predicate is not None and not predicate(n):
                continue
            found.append(n)
        return found

    def find(self, *tags: str, predicate: Callable[["DomNode"], bool] | None = None) -> "DomNode | None":
        wanted = set(tags)
        for n in self.descendants():
            if n.is_element and (not wanted or n.tag in wanted) and (predicate is None or predicate(n)):
                return n
        return None

    def closest(self, tag: str) -> "DomNode | None":
        """Nearest inclusive ancestor with the given tag."""
        node: DomNode | None = self
        while node is not None:
            if node.tag == tag:
                return node
            node = node.parent
        return None

    def inner_text(self) -> str:
        """Rendered-ish text: block boundaries and <br> become newlines."""
        if self.is_text:
            return self.text
        if self.tag in _HIDDEN_TEXT_TAGS:
            return ""
        parts: list[str] = []
        self._collect_text(parts)
        return "".join(parts)

    def _collect_text(self, parts: list[str]):
        for child in list(self.children):
            if child.is_text:
                parts.append(child.text)
            elif child.tag == "br":
                parts.append("\n")
            elif child.tag in _HIDDEN_TEXT_TAGS:
                continue
            elif child.tag in _BLOCK_TAGS:
                parts.append("\n")
                child._collect_text(parts)
                parts.append("\n")
            else:
                child._collect_text(parts)

    # --- mutation -------------------------------------------------------

    def append_child(self, child: "DomNode") -> "DomNode":
        return self.insert_before(child, None)

    def insert_before(self, child: "DomNode", ref: "DomNode | None") -> "DomNode":
        if self.is_text:
            raise ValueError("Text nodes cannot have children")
        if child.parent is not None:
            child.parent.remove_child(child)
        if ref is None:
            self.children.append(child)
        else:
            try:
                index = self.children.index(ref)
            except ValueError:
                raise DetachedNodeError(f"{ref!r} is not a child of {describe(self)}") from None
            self.children.insert(index, child)
        child.parent = self
        for n in child.walk():
            n.owner = self.owner
        self._notify(MutationRecord("childList", self, added_nodes=(child,)))
        return child

    def remove_child(self, child: "DomNode") -> "DomNode":
        try:
            self.children.remove(child)
        except ValueError:
            raise DetachedNodeError(f"{describe(child)} is not a child of {describe(self)}") from None
        child.parent = None
        self._notify(MutationRecord("childList", self, removed_nodes=(child,)))
        return child

    def remove(self):
        """Detach this node from its parent (no-op when already detached)."""
        if self.parent is not None:
            self.parent.remove_child(self)

    def replace_children(self, *nodes: "DomNode"):
        removed = tuple(self.children)
        for old in removed:
            old.parent = None
        self.children = []
        for n in nodes:
            if n.parent is not None:
                n.parent.remove_child(n)
            n.parent = self
            for d in n.walk():
                d.owner = self.owner
            self.children.append(n)
        self._notify(MutationRecord("childList", self, added_nodes=tuple(nodes), removed_nodes=removed))

    def set_text(self, value: str):
        if not self.is_text:
            self.replace_children(DomNode(TEXT, text=value, owner=self.owner))
            return
        self.text = value
        self._notify(MutationRecord("characterData", self))

    def set_attr(self, name: str, value: str):
        self.attrs[name] = value
        self._notify(MutationRecord("attributes", self, attribute_name=name))

    def _notify(self, record: MutationRecord):
        if self.owner is not None and self.is_attached:
            self.owner.dispatch(record)


_HIDDEN_TEXT_TAGS = {"script", "style", "template", "noscript", "head", "title"}

_BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "dd", "details",
    "dialog", "div", "dl", "dt", "fieldset", "figcaption", "figure",
    "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
    "html", "li", "main", "nav", "ol", "p", "pre", "section", "summary",
    "table", "tr", "td", "th", "ul",
}


def describe(node: DomNode | None) -> str:
    """Short selector-like label: tag#id.class1.class2.class3."""
    if node is None or not node.is_element:
        return "Unknown element"
    parts = [node.tag]
    if node.id:
        parts.append(f"#{node.id}")
    if node.classes:
        parts.append("." + ".".join(node.classes[:3]))
    return "".join(parts)


class MutationObserver:
    """Handle returned by DomDocument.observe(); disconnect() stops delivery."""

    def __init__(self, document: "DomDocument", callback: Callable[[list[MutationRecord]], None]):
        self.document = document
        self.callback = callback
        self.connected = True

    def disconnect(self):
        if self.connected:
            self.connected = False
            self.document._observers.remove(self)


@dataclass(eq=False)
class DomDocument:
    """Represents one loaded page: its tree, viewport and lifecycle."""
    root: DomNode
    location: str = "about:blank"
    viewport: tuple[float, float] = (1280, 800)
    ready_state: str = "complete"
    source_file: str = ""
    engine: object = field(default=None, repr=False)
    _observers: list[MutationObserver] = field(default_factory=list, repr=False)
    _ready_listeners: list[Callable[[], None]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        for n in self.root.walk():
            n.owner = self

    @property
    def body(self) -> DomNode:
        return self.root.find("body") or self.root

    def get_element_by_id(self, element_id: str) -> DomNode | None:
        if not element_id:
            return None
        for n in self.root.walk():
            if n.is_element and n.id == element_id:
                return n
        return None

    def elements(self, *tags: str, predicate: Callable[[DomNode], bool] | None = None) -> list[DomNode]:
        """All elements in the document (root included) matching tags/predicate."""
        found = self.root.find_all(*tags, predicate=predicate)
        if (not tags or self.root.tag in tags) and (predicate is None or predicate(self.root)):
            found.insert(0, self.root)
        return found

    def create_element(self, tag: str, attrs: dict | None = None, text: str = "") -> DomNode:
        node = DomNode(tag=tag, attrs=dict(attrs or {}), owner=self)
        if text:
            node.children.append(DomNode(TEXT, text=text, parent=node, owner=self))
        return node

    def fragment(self, html: str) -> list[DomNode]:
        """Parse an HTML snippet into detached nodes owned by this document."""
        soup = BeautifulSoup(html, "html.parser")
        nodes = [n for n in (_convert(c) for c in soup.contents) if n is not None]
        for top in nodes:
            for n in top.walk():
                n.owner = self
        return nodes

    # --- observation and lifecycle -------------------------------------

    def observe(self, callback: Callable[[list[MutationRecord]], None]) -> MutationObserver:
        observer = MutationObserver(self, callback)
        self._observers.append(observer)
        return observer

    def dispatch(self, record: MutationRecord):
        """Deliver ``record`` to connected observers.

        Observer faults are logged and never reach the code that mutated
        the tree.
        """
        for observer in list(self._observers):
            if not observer.connected:
                continue
            try:
                observer.callback([record])
            except Exception:
                logger.exception("Mutation observer failed on %s", record.type)

    def on_ready(self, listener: Callable[[], None]):
        """Register a one-shot listener for the document becoming interactive."""
        self._ready_listeners.append(listener)

    def set_ready_state(self, state: str):
        if state not in READY_STATES:
            raise ValueError(f"Unknown ready state: {state!r}")
        previous = self.ready_state
        self.ready_state = state
        if previous == "loading" and state != "loading":
            listeners, self._ready_listeners = self._ready_listeners, []
            for listener in listeners:
                try:
                    listener()
                except Exception:
                    logger.exception("Ready listener failed")

    @property
    def is_ready(self) -> bool:
        return self.ready_state in ("interactive", "complete")


# --- HTML parsing ---------------------------------------------------------

_SKIPPED_STRINGS = (Comment, Doctype, CData, ProcessingInstruction, Declaration)


def _convert(item) -> DomNode | None:
    if isinstance(item, _SKIPPED_STRINGS):
        return None
    if isinstance(item, NavigableString):
        return DomNode(TEXT, text=str(item))
    if not isinstance(item, Tag):
        return None

    attrs = {}
    for k, v in item.attrs.items():
        attrs[k] = " ".join(v) if isinstance(v, list) else ("" if v is None else str(v))
    node = DomNode(tag=item.name.lower(), attrs=attrs)
    for child in item.contents:
        converted = _convert(child)
        if converted is not None:
            converted.parent = node
            node.children.append(converted)
    return node


def parse_html(markup: str, *, location: str = "about:blank",
               viewport: tuple[float, float] = (1280, 800),
               ready_state: str = "complete") -> DomDocument:
    """Parse HTML into a DomDocument rooted at <html> with a <body>."""
    soup = BeautifulSoup(markup, "html.parser")
    html_tag = soup.find("html")
    if html_tag is not None:
        root = _convert(html_tag)
    else:
        root = DomNode("html")
        for child in soup.contents:
            converted = _convert(child)
            if converted is not None:
                converted.parent = root
                root.children.append(converted)

    if root.find("body") is None:
        # Wrap loose content so the tree always has a body
        body = DomNode("body", parent=root)
        keep = []
        for child in root.children:
            if child.tag == "head":
                keep.append(child)
            else:
                child.parent = body
                body.children.append(child)
        root.children = keep + [body]

    doc = DomDocument(root=root, location=location, viewport=viewport, ready_state=ready_state)
    from .cascade import apply_stylesheets
    apply_stylesheets(doc)
    return doc


# --- JSON node export -----------------------------------------------------

def _parse_node(data) -> DomNode:
    """Recursively parse a raw JSON node (dict or string) into a DomNode."""
    if isinstance(data, str):
        return DomNode(TEXT, text=data)
    if data.get("type") == "text" or data.get("tag") == TEXT:
        return DomNode(TEXT, text=str(data.get("content", data.get("text", ""))))

    attrs = {k: str(v) for k, v in (data.get("attrs") or {}).items()}
    if data.get("id"):
        attrs["id"] = str(data["id"])
    if data.get("class"):
        cls = data["class"]
        attrs["class"] = " ".join(cls) if isinstance(cls, list) else str(cls)
    style = data.get("style")
    if isinstance(style, dict):
        attrs["style"] = "; ".join(f"{k}: {v}" for k, v in style.items())
    elif style:
        attrs["style"] = str(style)

    node = DomNode(tag=str(data.get("tag", "div")).lower(), attrs=attrs)
    rect = data.get("rect")
    if isinstance(rect, dict):
        node.rect = {k: float(v) for k, v in rect.items() if isinstance(v, (int, float))}
    computed = data.get("computed")
    if isinstance(computed, dict):
        node.computed = {str(k).lower(): str(v) for k, v in computed.items() if v not in (None, "")}

    children = []
    if data.get("text"):
        children.append(DomNode(TEXT, text=str(data["text"])))
    raw_children = data.get("children", [])
    if isinstance(raw_children, list):
        for child_data in raw_children:
            if isinstance(child_data, (dict, str)):
                children.append(_parse_node(child_data))
    for child in children:
        child.parent = node
    node.children = children
    return node


def parse_dom_json(data: dict) -> DomDocument:
    """Parse a JSON node export into a DomDocument.

    Accepts either a bare root node or a page wrapper of the form
    {"location", "viewport": {"width", "height"}, "readyState", "root"}.
    """
    if "root" in data:
        root = _parse_node(data["root"])
        vp = data.get("viewport") or {}
        viewport = (float(vp.get("width", 1280)), float(vp.get("height", 800)))
        return DomDocument(
            root=root,
            location=data.get("location", "about:blank"),
            viewport=viewport,
            ready_state=data.get("readyState", "complete"),
        )
    return DomDocument(root=_parse_node(data))


def load_document(path: str | Path, *, viewport: tuple[float, float] | None = None,
                  location: str | None = None) -> DomDocument:
    """Load an .html page or a .json node export from disk."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")

    content = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON node export {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid JSON node export {path}: expected an object")
        doc = parse_dom_json(data)
    else:
        doc = parse_html(content)

    if viewport is not None:
        doc.viewport = viewport
    doc.location = location or (doc.location if doc.location != "about:blank" else p.resolve().as_uri())
    doc.source_file = str(p)
    return doc


# --- serialization --------------------------------------------------------

def to_html(node: DomNode) -> str:
    """Serialize a subtree back to HTML (used to write annotated pages)."""
    if node.is_text:
        parent_tag = node.parent.tag if node.parent is not None else ""
        return node.text if parent_tag in ("script", "style") else escape(node.text, quote=False)
    attrs = "".join(
        f' {k}' if v == "" and k in _BOOLEAN_ATTRS else f' {k}="{escape(v)}"'
        for k, v in node.attrs.items()
    )
    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attrs}>"
    inner = "".join(to_html(c) for c in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"


_BOOLEAN_ATTRS = {"checked", "disabled", "selected", "hidden", "readonly", "required", "multiple"}
