"""Rendering environment abstraction.

Accurate measurement needs a real layout engine (text shaping, stroke and
filter compositing). That engine is injected as an ``Environment`` and
threaded explicitly through every call, so several independent documents
(pages, offscreen frames) can be measured side by side.

Element handles are opaque to the core: each environment decides what an
element reference is (a Playwright ``ElementHandle``, an in-memory node...).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from svg_visual_bbox.geometry import Box, LogicalViewport, Matrix

# Opaque element reference owned by the environment.
ElementRef = Any

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"


class Environment(ABC):
    """Query/measure/mutate operations consumed from the hosting renderer."""

    # Lookup

    @abstractmethod
    def query(self, selector: str) -> ElementRef | None:
        """First element matching a CSS selector, or None."""

    @abstractmethod
    def query_all(self, selector: str) -> list[ElementRef]:
        """Every element matching a CSS selector, in document order."""

    @abstractmethod
    def element_by_id(self, element_id: str) -> ElementRef | None:
        """Element with the given id, or None."""

    @abstractmethod
    def parent(self, element: ElementRef) -> ElementRef | None:
        """Parent element, or None at the top of the tree."""

    # Attributes and style

    @abstractmethod
    def tag_name(self, element: ElementRef) -> str:
        """Local tag name as written (``textPath`` keeps its case)."""

    @abstractmethod
    def get_attribute(self, element: ElementRef, name: str) -> str | None:
        """Attribute value; ``xlink:href`` is looked up in the XLink namespace."""

    @abstractmethod
    def computed_style(self, element: ElementRef, prop: str) -> str:
        """Computed CSS value of ``prop`` (empty string when unknown)."""

    # Geometry

    @abstractmethod
    def geometry_box(self, element: ElementRef) -> Box | None:
        """Native declared bbox (``getBBox``) in the element's own user space.

        None when the element has no geometry interface.
        """

    @abstractmethod
    def transform_to_root(self, element: ElementRef, root: ElementRef) -> Matrix | None:
        """Transform from the element's user space to the root's user space.

        None when the element is not rendered (e.g. lives in <defs>).
        """

    @abstractmethod
    def screen_rect(self, element: ElementRef) -> Box:
        """Rendered on-screen rectangle (``getBoundingClientRect``), SCREEN space."""

    @abstractmethod
    def viewport_of(self, root: ElementRef) -> LogicalViewport | None:
        """The root's declared, usable viewBox, or None."""

    @abstractmethod
    def rasterize(
        self,
        element: ElementRef,
        root: ElementRef,
        roi: Box,
        pixels_per_unit: float,
    ) -> tuple[int, int, int, int] | None:
        """Render ``element`` alone over ``roi`` and return its ink bounds.

        The region of interest is in root user units and is rendered at
        ``pixels_per_unit``; the result is the inclusive pixel bounds
        ``(x_min, y_min, x_max, y_max)`` of non-transparent pixels in that
        raster, or None when nothing is drawn. Must not mutate the live tree.
        """

    # Fonts

    @abstractmethod
    def wait_for_fonts(self, timeout_ms: float | None) -> bool:
        """Block until fonts are loaded; False when ``timeout_ms`` elapsed first.

        ``timeout_ms`` of None or <= 0 waits without a limit.
        """

    # Mutation (overlay markers only)

    @abstractmethod
    def insert_marker(
        self,
        screen_box: Box,
        style: Mapping[str, str],
        attributes: Mapping[str, str],
    ) -> ElementRef:
        """Insert a marker node covering ``screen_box`` and return it."""

    @abstractmethod
    def remove(self, element: ElementRef) -> None:
        """Detach an element from the live tree."""

    # Derived helpers

    def same_element(self, first: ElementRef, second: ElementRef) -> bool:
        """Whether two handles refer to the same node."""
        return first is second or first == second

    def own_transform(self, element: ElementRef) -> Matrix | None:
        """The element's ``transform`` attribute as a matrix, or None if unset.

        Unlike ``transform_to_root`` this works for unrendered template
        content. Environments that cannot evaluate it return None.
        """
        return None

    def layout_size(self, root: ElementRef) -> tuple[float, float]:
        """Rendered size of the root in pixels."""
        rect = self.screen_rect(root)
        return rect.width, rect.height

    def href_of(self, element: ElementRef) -> str | None:
        """``href`` (SVG 2) or ``xlink:href`` (SVG 1.1) of an element."""
        return self.get_attribute(element, "href") or self.get_attribute(
            element, "xlink:href"
        )
