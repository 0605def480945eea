"""Playwright-backed rendering environment (headless Chromium).

Every query is a small JavaScript snippet evaluated against the live page.
Rasterisation never touches the live tree: the root <svg> is cloned and
serialised in the page, rendered alone in a scratch page of the same
browser context, screenshotted with a transparent background, and scanned
for non-transparent pixels with numpy.

Usage:
    from svg_visual_bbox.browser import launch_environment
    with launch_environment(html=page_html) as env:
        box = SvgVisualBBox(env).measure_one("#logo")
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import ElementHandle, Page, sync_playwright

from svg_visual_bbox.environment import Environment
from svg_visual_bbox.exceptions import RenderingEnvironmentError
from svg_visual_bbox.geometry import Box, CoordinateSpace, LogicalViewport, Matrix
from svg_visual_bbox.svg import html_document

logger = logging.getLogger(__name__)

_GEOMETRY_BOX_JS = """
el => {
  if (typeof el.getBBox !== 'function') return null;
  try {
    const b = el.getBBox();
    return {x: b.x, y: b.y, width: b.width, height: b.height};
  } catch (e) {
    return null;
  }
}
"""

_TRANSFORM_TO_ROOT_JS = """
(el, root) => {
  if (typeof el.getScreenCTM !== 'function' || typeof root.getScreenCTM !== 'function') return null;
  const m = el.getScreenCTM();
  const r = root.getScreenCTM();
  if (!m || !r) return null;
  const t = r.inverse().multiply(m);
  return [t.a, t.b, t.c, t.d, t.e, t.f];
}
"""

_OWN_TRANSFORM_JS = """
el => {
  const list = el.transform && el.transform.baseVal;
  if (!list || !list.numberOfItems) return null;
  let m = new DOMMatrix();
  for (let i = 0; i < list.numberOfItems; i++) {
    m = m.multiply(DOMMatrix.fromMatrix(list.getItem(i).matrix));
  }
  return [m.a, m.b, m.c, m.d, m.e, m.f];
}
"""

_SCREEN_RECT_JS = """
el => {
  const r = el.getBoundingClientRect();
  return {x: r.left, y: r.top, width: r.width, height: r.height};
}
"""

_GET_ATTRIBUTE_JS = """
(el, name) => name === 'xlink:href'
  ? el.getAttributeNS('http://www.w3.org/1999/xlink', 'href')
  : el.getAttribute(name)
"""

_WAIT_FOR_FONTS_JS = """
async (timeout) => {
  if (!document.fonts || !document.fonts.ready) return true;
  const ready = document.fonts.ready.then(() => true);
  if (timeout === null) return await ready;
  const expired = new Promise(resolve => setTimeout(() => resolve(false), timeout));
  return await Promise.race([ready, expired]);
}
"""

# Serialises an isolated copy of the root: only the target, its ancestors,
# its descendants and non-rendered resources stay displayed.
_ISOLATED_CLONE_JS = """
(el, [root, roi, width, height]) => {
  const KEEP = new Set(['defs', 'style', 'symbol', 'clippath', 'mask', 'marker', 'pattern',
    'filter', 'lineargradient', 'radialgradient', 'title', 'desc', 'metadata']);
  const path = [];
  for (let node = el; node && node !== root; node = node.parentElement) {
    if (!node.parentElement) return null;
    path.unshift(Array.prototype.indexOf.call(node.parentElement.children, node));
  }
  const clone = root.cloneNode(true);
  let target = clone;
  for (const index of path) target = target.children[index];
  const hide = parent => {
    for (const child of Array.from(parent.children)) {
      if (KEEP.has(child.localName.toLowerCase())) continue;
      if (child === target) continue;
      if (child.contains(target)) hide(child);
      else child.setAttribute('display', 'none');
    }
  };
  if (target !== clone) hide(clone);
  clone.setAttribute('xmlns', 'http://www.w3.org/2000/svg');
  clone.setAttribute('viewBox', `${roi.x} ${roi.y} ${roi.width} ${roi.height}`);
  clone.setAttribute('preserveAspectRatio', 'none');
  clone.setAttribute('width', String(width));
  clone.setAttribute('height', String(height));
  clone.setAttribute('style', `position:absolute!important;left:0!important;top:0!important;` +
    `margin:0!important;padding:0!important;border:0!important;background:transparent!important;` +
    `width:${width}px!important;height:${height}px!important;overflow:hidden!important`);
  return new XMLSerializer().serializeToString(clone);
}
"""

_PAGE_STYLES_JS = """
() => Array.from(document.querySelectorAll('style, link[rel="stylesheet"]'))
  .map(node => node.outerHTML).join('\\n')
"""

_INSERT_MARKER_JS = """
([box, style, attributes]) => {
  const marker = document.createElement('div');
  for (const [prop, value] of Object.entries(style)) marker.style.setProperty(prop, value);
  marker.style.setProperty('left', (box.x + window.scrollX) + 'px');
  marker.style.setProperty('top', (box.y + window.scrollY) + 'px');
  for (const [name, value] of Object.entries(attributes)) marker.setAttribute(name, value);
  (document.body || document.documentElement).appendChild(marker);
  return marker;
}
"""


class PlaywrightEnvironment(Environment):
    """``Environment`` over one Playwright ``Page``."""

    def __init__(self, page: Page) -> None:
        self.page = page
        self._scratch: Page | None = None

    def close(self) -> None:
        """Close the scratch page used for rasterisation."""
        if self._scratch is not None:
            try:
                self._scratch.close()
            except PlaywrightError as e:
                logger.debug("Scratch page already closed: %s", e)
            self._scratch = None

    # Helpers

    def _call(self, what: str, func: Any, *args: Any) -> Any:
        try:
            return func(*args)
        except PlaywrightError as e:
            raise RenderingEnvironmentError(f"Browser query failed: {what}", {"error": str(e)}) from e

    def _element(self, handle: Any) -> ElementHandle | None:
        if handle is None:
            return None
        return handle.as_element()

    # Lookup

    def query(self, selector: str) -> ElementHandle | None:
        return self._call("query", self.page.query_selector, selector)

    def query_all(self, selector: str) -> list[ElementHandle]:
        return self._call("query_all", self.page.query_selector_all, selector)

    def element_by_id(self, element_id: str) -> ElementHandle | None:
        handle = self._call(
            "element_by_id",
            self.page.evaluate_handle,
            "id => document.getElementById(id)",
            element_id,
        )
        return self._element(handle)

    def parent(self, element: ElementHandle) -> ElementHandle | None:
        handle = self._call("parent", element.evaluate_handle, "el => el.parentElement")
        return self._element(handle)

    def same_element(self, first: Any, second: Any) -> bool:
        if first is second:
            return True
        if first is None or second is None:
            return False
        return bool(self._call("same_element", first.evaluate, "(a, b) => a === b", second))

    # Attributes and style

    def tag_name(self, element: ElementHandle) -> str:
        return self._call("tag_name", element.evaluate, "el => el.localName") or ""

    def get_attribute(self, element: ElementHandle, name: str) -> str | None:
        return self._call("get_attribute", element.evaluate, _GET_ATTRIBUTE_JS, name)

    def computed_style(self, element: ElementHandle, prop: str) -> str:
        value = self._call(
            "computed_style",
            element.evaluate,
            "(el, prop) => getComputedStyle(el).getPropertyValue(prop)",
            prop,
        )
        return value or ""

    # Geometry

    def geometry_box(self, element: ElementHandle) -> Box | None:
        data = self._call("geometry_box", element.evaluate, _GEOMETRY_BOX_JS)
        if data is None:
            return None
        return Box(data["x"], data["y"], max(0.0, data["width"]), max(0.0, data["height"]))

    def transform_to_root(self, element: ElementHandle, root: ElementHandle) -> Matrix | None:
        values = self._call("transform_to_root", element.evaluate, _TRANSFORM_TO_ROOT_JS, root)
        return Matrix(*values) if values else None

    def own_transform(self, element: ElementHandle) -> Matrix | None:
        values = self._call("own_transform", element.evaluate, _OWN_TRANSFORM_JS)
        return Matrix(*values) if values else None

    def screen_rect(self, element: ElementHandle) -> Box:
        data = self._call("screen_rect", element.evaluate, _SCREEN_RECT_JS)
        return Box(
            data["x"],
            data["y"],
            max(0.0, data["width"]),
            max(0.0, data["height"]),
            CoordinateSpace.SCREEN,
        )

    def viewport_of(self, root: ElementHandle) -> LogicalViewport | None:
        return LogicalViewport.parse(self.get_attribute(root, "viewBox"))

    def rasterize(
        self,
        element: ElementHandle,
        root: ElementHandle,
        roi: Box,
        pixels_per_unit: float,
    ) -> tuple[int, int, int, int] | None:
        width = max(1, round(roi.width * pixels_per_unit))
        height = max(1, round(roi.height * pixels_per_unit))
        markup = self._call(
            "rasterize",
            element.evaluate,
            _ISOLATED_CLONE_JS,
            [root, roi.to_dict(), width, height],
        )
        if markup is None:
            return None
        png = self._render_isolated(markup, width, height)
        return alpha_bounds(png)

    def _render_isolated(self, markup: str, width: int, height: int) -> bytes:
        try:
            if self._scratch is None or self._scratch.is_closed():
                self._scratch = self.page.context.new_page()
            styles = self.page.evaluate(_PAGE_STYLES_JS)
            base = self.page.evaluate("() => document.baseURI") or ""
            if not base.startswith(("http", "file")):
                base = ""
            base_tag = f'<base href="{base}">' if base else ""
            self._scratch.set_viewport_size({"width": width, "height": height})
            self._scratch.set_content(
                "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
                f"{base_tag}{styles}"
                "<style>html,body{margin:0!important;padding:0!important;"
                "background:transparent!important;overflow:hidden!important}</style>"
                f"</head><body>{markup}</body></html>"
            )
            self._scratch.evaluate(_WAIT_FOR_FONTS_JS, None)
            return self._scratch.screenshot(
                omit_background=True,
                clip={"x": 0, "y": 0, "width": width, "height": height},
            )
        except PlaywrightError as e:
            raise RenderingEnvironmentError("Rasterisation failed", {"error": str(e)}) from e

    # Fonts

    def wait_for_fonts(self, timeout_ms: float | None) -> bool:
        limit = None if timeout_ms is None or timeout_ms <= 0 else float(timeout_ms)
        return bool(self._call("wait_for_fonts", self.page.evaluate, _WAIT_FOR_FONTS_JS, limit))

    # Mutation

    def insert_marker(
        self,
        screen_box: Box,
        style: Mapping[str, str],
        attributes: Mapping[str, str],
    ) -> ElementHandle:
        handle = self._call(
            "insert_marker",
            self.page.evaluate_handle,
            _INSERT_MARKER_JS,
            [screen_box.to_dict(), dict(style), dict(attributes)],
        )
        return handle.as_element()

    def remove(self, element: ElementHandle) -> None:
        self._call("remove", element.evaluate, "el => el.remove()")


def alpha_bounds(png: bytes) -> tuple[int, int, int, int] | None:
    """Inclusive pixel bounds of non-transparent pixels in a PNG, or None."""
    with Image.open(io.BytesIO(png)) as img:
        alpha = np.asarray(img.convert("RGBA"))[:, :, 3]
    rows = np.flatnonzero(alpha.any(axis=1))
    cols = np.flatnonzero(alpha.any(axis=0))
    if rows.size == 0 or cols.size == 0:
        return None
    return int(cols[0]), int(rows[0]), int(cols[-1]), int(rows[-1])


@contextmanager
def launch_environment(
    html: str | None = None,
    url: str | None = None,
    svg_path: Path | None = None,
    headless: bool = True,
    browser_args: list[str] | None = None,
    viewport: tuple[int, int] = (1280, 800),
) -> Iterator[PlaywrightEnvironment]:
    """Start Chromium, load a document and yield a ready environment.

    Exactly one of ``html``, ``url`` or ``svg_path`` selects the document;
    an SVG file is embedded inline in an HTML page.

    Raises:
        RenderingEnvironmentError: Chromium cannot be launched or the
            document cannot be loaded.
    """
    sources = [s for s in (html, url, svg_path) if s is not None]
    if len(sources) != 1:
        raise ValueError("Pass exactly one of html, url or svg_path")

    with sync_playwright() as pw:
        try:
            browser = pw.chromium.launch(headless=headless, args=list(browser_args or []))
        except PlaywrightError as e:
            raise RenderingEnvironmentError(
                "Cannot launch Chromium (run 'playwright install chromium')",
                {"error": str(e)},
            ) from e
        env: PlaywrightEnvironment | None = None
        try:
            context = browser.new_context(
                viewport={"width": viewport[0], "height": viewport[1]}
            )
            page = context.new_page()
            if url is not None:
                page.goto(url)
            elif svg_path is not None:
                page.set_content(html_document(svg_path))
            else:
                page.set_content(html)
            env = PlaywrightEnvironment(page)
            yield env
        except PlaywrightError as e:
            raise RenderingEnvironmentError("Browser session failed", {"error": str(e)}) from e
        finally:
            if env is not None:
                env.close()
            browser.close()
