"""Geometry value objects and pure coordinate math.

This module holds everything that does not need a rendering environment:

- ``Box``: axis-aligned rectangle tagged with the space it lives in
- ``LogicalViewport``: a parsed ``viewBox``
- ``Matrix``: 2D affine transform ``(a, b, c, d, e, f)``
- ``union_boxes``: minimal enclosing box of several boxes
- ``to_screen`` / ``to_local``: root user space <-> on-screen pixels
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from svg_visual_bbox.exceptions import EmptyInputError

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


class CoordinateSpace(str, Enum):
    """Coordinate system a ``Box`` is expressed in."""

    LOCAL = "local"
    SCREEN = "screen"


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle.

    LOCAL boxes are in the root <svg>'s user units (viewBox units).
    SCREEN boxes are in CSS pixels relative to the page's client area.
    """

    x: float
    y: float
    width: float
    height: float
    space: CoordinateSpace = CoordinateSpace.LOCAL

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Box size must be non-negative, got {self.width}x{self.height}"
            )

    @classmethod
    def from_edges(
        cls,
        left: float,
        top: float,
        right: float,
        bottom: float,
        space: CoordinateSpace = CoordinateSpace.LOCAL,
    ) -> Box:
        return cls(left, top, max(0.0, right - left), max(0.0, bottom - top), space)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_degenerate(self) -> bool:
        """True when the box encloses no area."""
        return self.width <= 0 or self.height <= 0

    def expand(self, left: float, top: float | None = None,
               right: float | None = None, bottom: float | None = None) -> Box:
        """Grow the box outward; one argument grows every side equally."""
        top = left if top is None else top
        right = left if right is None else right
        bottom = top if bottom is None else bottom
        return Box.from_edges(
            self.x - left, self.y - top, self.right + right, self.bottom + bottom, self.space
        )

    def intersect(self, other: Box) -> Box | None:
        _check_same_space((self, other))
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Box.from_edges(left, top, right, bottom, self.space)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class LogicalViewport(NamedTuple):
    """A ``viewBox``: the user-space rectangle stretched over the root's pixels."""

    min_x: float
    min_y: float
    width: float
    height: float

    @classmethod
    def parse(cls, value: str | None) -> LogicalViewport | None:
        """Parse a ``viewBox`` attribute value.

        Returns None for missing, malformed or non-positive viewBoxes, which
        callers treat as "no logical viewport" (identity mapping).
        """
        if not value:
            return None
        nums = _NUMBER_RE.findall(value)
        if len(nums) != 4:
            return None
        vp = cls(*(float(n) for n in nums))
        return vp if vp.is_usable else None

    @property
    def is_usable(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 0.0

    def as_box(self) -> Box:
        return Box(self.min_x, self.min_y, max(0.0, self.width), max(0.0, self.height))

    def to_attribute(self, precision: int = 6) -> str:
        """Format for assignment to a ``viewBox`` attribute."""
        return " ".join(format_number(v, precision) for v in self)


def format_number(value: float, precision: int = 6) -> str:
    """Shortest fixed-point rendering of ``value`` for SVG attributes."""
    text = f"{value:.{precision}f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


class Matrix(NamedTuple):
    """Affine transform mapping (x, y) to (a*x + c*y + e, b*x + d*y + f)."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def translate(cls, tx: float, ty: float = 0.0) -> Matrix:
        return cls(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scale(cls, sx: float, sy: float | None = None) -> Matrix:
        return cls(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    def multiply(self, other: Matrix) -> Matrix:
        """Return ``self x other`` (``other`` is applied first)."""
        a1, b1, c1, d1, e1, f1 = self
        a2, b2, c2, d2, e2, f2 = other
        return Matrix(
            a1 * a2 + c1 * b2,
            b1 * a2 + d1 * b2,
            a1 * c2 + c1 * d2,
            b1 * c2 + d1 * d2,
            a1 * e2 + c1 * f2 + e1,
            b1 * e2 + d1 * f2 + f1,
        )

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def transform_box(self, box: Box) -> Box:
        """Axis-aligned bounds of the transformed corners of ``box``."""
        if self == Matrix():
            return box
        corners = [
            self.apply(box.x, box.y),
            self.apply(box.right, box.y),
            self.apply(box.x, box.bottom),
            self.apply(box.right, box.bottom),
        ]
        xs = [p[0] for p in corners]
        ys = [p[1] for p in corners]
        return Box.from_edges(min(xs), min(ys), max(xs), max(ys), box.space)


def _check_same_space(boxes: Iterable[Box]) -> CoordinateSpace | None:
    space = None
    for box in boxes:
        if space is None:
            space = box.space
        elif box.space != space:
            raise ValueError(
                f"Cannot combine boxes in different spaces: {space.value} and {box.space.value}"
            )
    return space


def union_boxes(boxes: Sequence[Box]) -> Box:
    """Minimal box enclosing every box in ``boxes``.

    Raises:
        EmptyInputError: ``boxes`` is empty.
        ValueError: the boxes are not all in the same coordinate space.
    """
    if not boxes:
        raise EmptyInputError("union")
    space = _check_same_space(boxes)
    left = min(b.x for b in boxes)
    top = min(b.y for b in boxes)
    right = max(b.right for b in boxes)
    bottom = max(b.bottom for b in boxes)
    return Box(left, top, right - left, bottom - top, space)


def effective_viewport(root_rect: Box, viewport: LogicalViewport | None) -> LogicalViewport:
    """The viewport used for mapping: declared, or identity at rendered size."""
    if viewport is not None and viewport.is_usable:
        return viewport
    return LogicalViewport(0.0, 0.0, root_rect.width, root_rect.height)


def scale_for(root_rect: Box, viewport: LogicalViewport | None) -> tuple[float, float]:
    """Screen pixels per user unit along each axis (1.0 when undefined)."""
    vp = effective_viewport(root_rect, viewport)
    sx = root_rect.width / vp.width if vp.width > 0 else 1.0
    sy = root_rect.height / vp.height if vp.height > 0 else 1.0
    return sx, sy


def to_screen(
    box: Box,
    root_rect: Box,
    viewport: LogicalViewport | None,
    padding: float = 0.0,
) -> Box:
    """Map a root-user-space box to on-screen pixels.

    ``root_rect`` is the root <svg>'s on-screen rectangle. Without a usable
    viewport one user unit equals one rendered pixel. The viewport origin is
    subtracted before scaling, so negative origins need no special casing.
    ``padding`` (pixels) is added on every side.
    """
    if box.space is not CoordinateSpace.LOCAL:
        raise ValueError("to_screen expects a LOCAL box")
    if padding < 0:
        raise ValueError(f"padding must be >= 0, got {padding}")
    vp = effective_viewport(root_rect, viewport)
    sx, sy = scale_for(root_rect, viewport)
    return Box(
        root_rect.x + (box.x - vp.min_x) * sx - padding,
        root_rect.y + (box.y - vp.min_y) * sy - padding,
        box.width * sx + 2 * padding,
        box.height * sy + 2 * padding,
        CoordinateSpace.SCREEN,
    )


def to_local(screen_box: Box, root_rect: Box, viewport: LogicalViewport | None) -> Box:
    """Inverse of ``to_screen`` with zero padding."""
    if screen_box.space is not CoordinateSpace.SCREEN:
        raise ValueError("to_local expects a SCREEN box")
    vp = effective_viewport(root_rect, viewport)
    sx, sy = scale_for(root_rect, viewport)
    return Box(
        vp.min_x + (screen_box.x - root_rect.x) / sx,
        vp.min_y + (screen_box.y - root_rect.y) / sy,
        screen_box.width / sx,
        screen_box.height / sy,
        CoordinateSpace.LOCAL,
    )


def is_finite_box(box: Box | None) -> bool:
    return box is not None and all(
        math.isfinite(v) for v in (box.x, box.y, box.width, box.height)
    )
