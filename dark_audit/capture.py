"""Capture a page rendered by a real browser (Playwright + Chromium).

The browser applies every stylesheet and lays the page out, so each
exported element carries its bounding rect and the computed values the
detectors read. The export uses the JSON node format parse_dom_json()
understands, with an extra ``computed`` map per element.
"""

from __future__ import annotations

import logging
from pathlib import Path

from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from .dom import DomDocument, parse_dom_json

logger = logging.getLogger(__name__)

COMPUTED_PROPERTIES = ("position", "z-index", "font-size")

EXPORT_TREE_JS = """
(props) => {
    const SKIP = new Set(["SCRIPT", "NOSCRIPT", "TEMPLATE"]);

    function exportNode(el) {
        const attrs = {};
        for (const a of el.attributes) attrs[a.name] = a.value;
        if (el.tagName === "INPUT") {
            // Live form state, not just the markup defaults
            if (el.type === "checkbox" || el.type === "radio") {
                if (el.checked) attrs.checked = ""; else delete attrs.checked;
            }
            if (el.value) attrs.value = el.value;
        }

        const style = window.getComputedStyle(el);
        const computed = {};
        for (const p of props) computed[p] = style.getPropertyValue(p);
        const rect = el.getBoundingClientRect();

        const children = [];
        for (const child of el.childNodes) {
            if (child.nodeType === Node.TEXT_NODE) {
                if (child.textContent) children.push({type: "text", content: child.textContent});
            } else if (child.nodeType === Node.ELEMENT_NODE && !SKIP.has(child.tagName)) {
                children.push(exportNode(child));
            }
        }
        return {
            tag: el.tagName.toLowerCase(),
            attrs,
            computed,
            rect: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
            children,
        };
    }

    return {
        location: window.location.href,
        viewport: {width: window.innerWidth, height: window.innerHeight},
        readyState: document.readyState,
        root: exportNode(document.documentElement),
    };
}
"""


def page_url(target: str) -> str:
    """URL for ``target``: http(s)/file URLs pass through, paths become file URIs."""
    if target.startswith(("http://", "https://", "file://")):
        return target
    p = Path(target)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {target}")
    return p.resolve().as_uri()


async def capture_page(
    target: str,
    viewport: tuple[float, float] = (1280, 800),
    timeout_ms: int = 30000,
) -> DomDocument:
    """Load ``target`` in headless Chromium and export the rendered tree."""
    url = page_url(target)
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=True)
        try:
            page = await browser.new_page(viewport={"width": int(viewport[0]), "height": int(viewport[1])})
            try:
                await page.goto(url, wait_until="load", timeout=timeout_ms)
            except PlaywrightTimeout:
                logger.warning("Timed out loading %s, capturing what has rendered", url)
            data = await page.evaluate(EXPORT_TREE_JS, list(COMPUTED_PROPERTIES))
        finally:
            await browser.close()

    doc = parse_dom_json(data)
    doc.source_file = target
    logger.info("Captured %s (%dx%d)", doc.location, *doc.viewport)
    return doc
