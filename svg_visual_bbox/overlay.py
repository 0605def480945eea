"""Overlay markers drawn over measured elements.

A marker is an absolutely positioned, click-through box with a dashed
border placed over the element's visual bbox. Markers are tagged with
``data-svg-bbox-overlay`` so they can be swept away in one call.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from svg_visual_bbox.environment import ElementRef, Environment
from svg_visual_bbox.exceptions import NothingRenderedError
from svg_visual_bbox.fonts import DEFAULT_FONT_TIMEOUT_MS, wait_for_fonts
from svg_visual_bbox.geometry import Box, format_number, to_screen
from svg_visual_bbox.measure import MeasureOptions, measure
from svg_visual_bbox.resolver import resolve

logger = logging.getLogger(__name__)

OVERLAY_ATTRIBUTE = "data-svg-bbox-overlay"
TARGET_ID_ATTRIBUTE = "data-target-id"
OVERLAY_SELECTOR = f"[{OVERLAY_ATTRIBUTE}]"

LIGHT_BORDER = "rgba(255, 255, 255, 0.9)"
DARK_BORDER = "rgba(0, 0, 0, 0.8)"

_RGB_RE = re.compile(r"rgba?\(\s*([^)]*)\)", re.IGNORECASE)
_HEX_RE = re.compile(r"^#([0-9a-f]{3,8})$", re.IGNORECASE)


class Theme(str, Enum):
    """Background the overlay is drawn on."""

    AUTO = "auto"
    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True)
class OverlayOptions:
    """Appearance of an overlay marker.

    Attributes:
        theme: Background theme; AUTO samples the page.
        border_color: Explicit CSS colour, overrides the theme.
        padding: Pixels added around the box on every side.
        border_width: Dashed border width in pixels.
        z_index: Stacking order of the marker.
    """

    theme: Theme = Theme.AUTO
    border_color: str | None = None
    padding: float = 4.0
    border_width: float = 2.0
    z_index: int = 2147483647

    def __post_init__(self) -> None:
        if self.padding < 0:
            raise ValueError(f"padding must be >= 0, got {self.padding}")


@dataclass(frozen=True)
class OverlayResult:
    """A drawn marker and the boxes it was drawn from."""

    box: Box
    overlay_element: ElementRef
    screen_box: Box
    border_color: str


# ---------------------------------------------------------------------------
# Colour handling
# ---------------------------------------------------------------------------


def parse_css_color(value: str | None) -> tuple[float, float, float, float] | None:
    """Parse ``rgb()``, ``rgba()`` or hex colours to (r, g, b, alpha).

    Channels are 0-255, alpha 0-1. ``transparent`` parses to zero alpha;
    anything else unrecognised returns None.
    """
    if not value:
        return None
    text = value.strip().lower()
    if text == "transparent":
        return (0.0, 0.0, 0.0, 0.0)
    match = _RGB_RE.match(text)
    if match:
        parts = [p for p in re.split(r"[\s,/]+", match.group(1)) if p]
        if len(parts) < 3:
            return None
        try:
            r, g, b = (_channel(p) for p in parts[:3])
            alpha = _alpha(parts[3]) if len(parts) > 3 else 1.0
        except ValueError:
            return None
        return (r, g, b, alpha)
    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) in (3, 4):
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) not in (6, 8):
            return None
        r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
        alpha = int(digits[6:8], 16) / 255 if len(digits) == 8 else 1.0
        return (float(r), float(g), float(b), alpha)
    if text == "white":
        return (255.0, 255.0, 255.0, 1.0)
    if text == "black":
        return (0.0, 0.0, 0.0, 1.0)
    return None


def _channel(part: str) -> float:
    if part.endswith("%"):
        return float(part[:-1]) * 2.55
    return float(part)


def _alpha(part: str) -> float:
    if part.endswith("%"):
        return float(part[:-1]) / 100
    return float(part)


def relative_luminance(r: float, g: float, b: float) -> float:
    """WCAG relative luminance of an sRGB colour (0 black .. 1 white)."""

    def linear(c: float) -> float:
        c = max(0.0, min(255.0, c)) / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    return 0.2126 * linear(r) + 0.7152 * linear(g) + 0.0722 * linear(b)


def effective_background(env: Environment, element: ElementRef) -> tuple[float, float, float]:
    """First opaque-ish ``background-color`` from ``element`` upward; white if none."""
    node = element
    while node is not None:
        color = parse_css_color(env.computed_style(node, "background-color"))
        if color is not None and color[3] > 0:
            return color[:3]
        node = env.parent(node)
    return (255.0, 255.0, 255.0)


def resolve_border_color(env: Environment, root: ElementRef, options: OverlayOptions) -> str:
    """Border colour contrasting with the background under ``root``."""
    if options.border_color:
        return options.border_color
    theme = Theme(options.theme)
    if theme is Theme.DARK:
        return LIGHT_BORDER
    if theme is Theme.LIGHT:
        return DARK_BORDER
    luminance = relative_luminance(*effective_background(env, root))
    return DARK_BORDER if luminance > 0.5 else LIGHT_BORDER


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


def marker_style(screen_box: Box, border_color: str, options: OverlayOptions) -> dict[str, str]:
    return {
        "position": "absolute",
        "left": f"{format_number(screen_box.x, 3)}px",
        "top": f"{format_number(screen_box.y, 3)}px",
        "width": f"{format_number(screen_box.width, 3)}px",
        "height": f"{format_number(screen_box.height, 3)}px",
        "box-sizing": "border-box",
        "pointer-events": "none",
        "border": f"{format_number(options.border_width, 3)}px dashed {border_color}",
        "z-index": str(options.z_index),
    }


def show_overlay(
    env: Environment,
    target: Any,
    options: OverlayOptions | None = None,
    measure_options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> OverlayResult:
    """Draw one marker over the visual bbox of ``target``.

    Raises:
        TargetNotFoundError: the target does not resolve.
        NoCoordinateRootError: the target is outside any <svg>.
        NothingRenderedError: the target draws nothing.
    """
    options = options or OverlayOptions()
    wait_for_fonts(env, font_timeout_ms)
    resolved = resolve(env, target)
    result = measure(env, resolved, measure_options)
    if result is None:
        raise NothingRenderedError(target)

    screen_box = to_screen(
        result.box,
        env.screen_rect(resolved.root),
        env.viewport_of(resolved.root),
        options.padding,
    )
    border_color = resolve_border_color(env, resolved.root, options)

    attributes = {OVERLAY_ATTRIBUTE: "1"}
    target_id = env.get_attribute(resolved.element, "id")
    if target_id:
        attributes[TARGET_ID_ATTRIBUTE] = target_id

    marker = env.insert_marker(
        screen_box, marker_style(screen_box, border_color, options), attributes
    )
    logger.debug("Overlay for %r at %s", target, screen_box)
    return OverlayResult(
        box=result.box,
        overlay_element=marker,
        screen_box=screen_box,
        border_color=border_color,
    )


def remove_all_overlays(env: Environment) -> int:
    """Delete every marker this package inserted; returns how many."""
    markers = env.query_all(OVERLAY_SELECTOR)
    for marker in markers:
        env.remove(marker)
    if markers:
        logger.debug("Removed %d overlay(s)", len(markers))
    return len(markers)
