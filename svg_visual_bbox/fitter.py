"""Viewport fitting: viewBoxes that frame a set of elements or a whole drawing.

Pure helpers (``fit_viewport``, ``viewbox_expansion``, ``synthesize_size``)
do the arithmetic; the environment-facing functions measure first and never
mutate the document.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from svg_visual_bbox.environment import ElementRef, Environment
from svg_visual_bbox.exceptions import (
    EmptyInputError,
    NothingRenderedError,
    SvgBBoxError,
)
from svg_visual_bbox.geometry import (
    Box,
    LogicalViewport,
    effective_viewport,
    format_number,
    scale_for,
)
from svg_visual_bbox.measure import ClipMode, MeasureOptions, measure, measure_targets
from svg_visual_bbox.resolver import resolve

logger = logging.getLogger(__name__)

Margin = Union[float, int, str]

_PX_MARGIN_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+))\s*px\s*$", re.IGNORECASE)
_ALIGN_RE = re.compile(r"^x(min|mid|max)y(min|mid|max)$", re.IGNORECASE)
_ALIGN_FRACTION = {"min": 0.0, "mid": 0.5, "max": 1.0}


class AspectMode(str, Enum):
    """How a fitted viewport relates to the current one."""

    STRETCH = "stretch"
    PRESERVE_ASPECT_RATIO = "preserve_aspect_ratio"
    CHANGE_POSITION = "change_position"


class MeetOrSlice(str, Enum):
    MEET = "meet"
    SLICE = "slice"


@dataclass(frozen=True)
class Padding:
    left: float
    top: float
    right: float
    bottom: float


@dataclass(frozen=True)
class ViewBoxExpansion:
    """How far a root's viewBox must grow to show its whole drawing.

    Attributes:
        current: The root's viewBox before expansion.
        visible: Visual bbox clipped to the current viewBox (None if empty).
        full: Visual bbox of the whole drawing.
        padding: Growth per side, never negative.
        new_viewport: ``current`` grown by ``padding``.
    """

    current: LogicalViewport
    visible: Box | None
    full: Box
    padding: Padding
    new_viewport: LogicalViewport


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def resolve_margin(margin: Margin | None, pixels_per_unit: float = 1.0) -> float:
    """Margin in user units.

    Numbers are user units; ``"10px"`` strings are screen pixels converted
    with ``pixels_per_unit``; bare numeric strings are user units.

    Raises:
        ValueError: the margin cannot be parsed.
    """
    if margin is None:
        return 0.0
    if isinstance(margin, bool):
        raise ValueError(f"Invalid margin: {margin!r}")
    if isinstance(margin, (int, float)):
        return float(margin)
    match = _PX_MARGIN_RE.match(margin)
    if match:
        pixels = float(match.group(1))
        return pixels / pixels_per_unit if pixels_per_unit > 0 else pixels
    try:
        return float(margin)
    except ValueError:
        raise ValueError(f"Invalid margin: {margin!r}") from None


def parse_align(align: str) -> tuple[float, float] | None:
    """Alignment fractions for ``xMinYMid``-style values; None for ``none``."""
    if align.strip().lower() == "none":
        return None
    match = _ALIGN_RE.match(align.strip())
    if not match:
        raise ValueError(f"Invalid align value: {align!r}")
    return _ALIGN_FRACTION[match.group(1).lower()], _ALIGN_FRACTION[match.group(2).lower()]


def fit_viewport(
    bbox: Box,
    current: LogicalViewport | None = None,
    aspect: AspectMode | str = AspectMode.STRETCH,
    align: str = "xMidYMid",
    meet_or_slice: MeetOrSlice | str = MeetOrSlice.MEET,
    margin: float = 0.0,
) -> LogicalViewport:
    """Viewport framing ``bbox`` (user units) under an aspect strategy.

    Args:
        bbox: Box to frame, in root user units.
        current: The root's current viewport. Required for
            PRESERVE_ASPECT_RATIO and CHANGE_POSITION.
        aspect: STRETCH frames bbox + margin exactly; PRESERVE_ASPECT_RATIO
            keeps the current aspect ratio (``meet`` grows the framed box,
            ``slice`` shrinks it) and aligns it per ``align``;
            CHANGE_POSITION keeps the current size and centres on bbox.
        align: One of the nine ``x(Min|Mid|Max)Y(Min|Mid|Max)`` values, or
            ``none`` (behaves like STRETCH).
        meet_or_slice: Scaling rule for PRESERVE_ASPECT_RATIO.
        margin: User units added on every side (ignored by CHANGE_POSITION).

    Returns:
        The new viewport.

    Raises:
        ValueError: ``current`` is missing or unusable where required, or
            ``align`` is malformed.
    """
    aspect = AspectMode(aspect)
    framed = bbox.expand(margin) if margin else bbox

    if aspect is AspectMode.STRETCH:
        return LogicalViewport(framed.x, framed.y, framed.width, framed.height)

    if current is None or not current.is_usable:
        raise ValueError(f"Aspect mode {aspect.value!r} needs a usable current viewBox")

    if aspect is AspectMode.CHANGE_POSITION:
        cx = bbox.x + bbox.width / 2
        cy = bbox.y + bbox.height / 2
        return LogicalViewport(
            cx - current.width / 2, cy - current.height / 2, current.width, current.height
        )

    fractions = parse_align(align)
    if fractions is None:
        return LogicalViewport(framed.x, framed.y, framed.width, framed.height)
    fx, fy = fractions

    target_aspect = current.aspect
    width, height = framed.width, framed.height
    if width <= 0 or height <= 0:
        # Nothing to preserve against; fall back to the current size.
        width, height = current.width, current.height
    else:
        wider = width / height > target_aspect
        if MeetOrSlice(meet_or_slice) is MeetOrSlice.MEET:
            if wider:
                height = width / target_aspect
            else:
                width = height * target_aspect
        else:
            if wider:
                width = height * target_aspect
            else:
                height = width / target_aspect

    x = framed.x + (framed.width - width) * fx
    y = framed.y + (framed.height - height) * fy
    return LogicalViewport(x, y, width, height)


def viewbox_expansion(current: LogicalViewport, full: Box) -> tuple[Padding, LogicalViewport]:
    """Per-side growth that makes ``current`` cover ``full``.

    Sides already covering the drawing get zero padding; the viewBox never
    shrinks.
    """
    pad = Padding(
        left=max(0.0, current.min_x - full.x),
        top=max(0.0, current.min_y - full.y),
        right=max(0.0, full.right - (current.min_x + current.width)),
        bottom=max(0.0, full.bottom - (current.min_y + current.height)),
    )
    new_viewport = LogicalViewport(
        current.min_x - pad.left,
        current.min_y - pad.top,
        current.width + pad.left + pad.right,
        current.height + pad.top + pad.bottom,
    )
    return pad, new_viewport


def synthesize_size(
    viewport: LogicalViewport,
    width: str | None,
    height: str | None,
) -> tuple[str, str]:
    """``width``/``height`` attribute values derived from the viewBox aspect.

    Missing values are filled in; present values are kept as written. A
    present value that is not a number makes its counterpart fall back to
    the viewBox size.
    """
    aspect = viewport.aspect if viewport.is_usable else 1.0
    if width and height:
        return width, height
    if not width and not height:
        return format_number(viewport.width), format_number(viewport.height)
    if height:
        h = _leading_float(height)
        new_width = format_number(h * aspect) if h else format_number(viewport.width or 1000)
        return new_width, height
    w = _leading_float(width)
    new_height = format_number(w / aspect) if w and aspect else format_number(viewport.height or 1000)
    return width or "", new_height


def _leading_float(value: str | None) -> float | None:
    if not value:
        return None
    match = re.match(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)", value)
    if not match:
        return None
    number = float(match.group(1))
    return number if number > 0 else None


# ---------------------------------------------------------------------------
# Environment-facing
# ---------------------------------------------------------------------------


def _is_root_svg(env: Environment, target: Any) -> ElementRef | None:
    """The element when ``target`` resolves to an outermost <svg>, else None."""
    resolved = resolve(env, target)
    if env.tag_name(resolved.element).lower() != "svg":
        return None
    if not env.same_element(resolved.root, resolved.element):
        return None
    return resolved.element


def compute_fitted_viewport(
    env: Environment,
    targets: Iterable[Any] | Any,
    padding_units: float = 0.0,
    options: MeasureOptions | None = None,
) -> LogicalViewport:
    """Viewport enclosing the visual bbox of ``targets``, grown by ``padding_units``.

    A single root <svg> target means its whole drawing, including content the
    current viewBox crops. Nothing is mutated.

    Raises:
        EmptyInputError: no targets.
        NothingRenderedError: none of the targets draws anything.
    """
    if isinstance(targets, str) or not isinstance(targets, Iterable):
        targets = [targets]
    targets = list(targets)
    if not targets:
        raise EmptyInputError("compute_fitted_viewport")
    options = (options or MeasureOptions()).with_mode(ClipMode.UNCLIPPED)

    measured = measure_targets(env, targets, options)
    if measured is None:
        raise NothingRenderedError(targets[0] if len(targets) == 1 else targets)
    box, _root = measured
    if padding_units:
        box = box.expand(padding_units)
    viewport = LogicalViewport(box.x, box.y, box.width, box.height)
    logger.debug("Fitted viewport: %s", viewport.to_attribute())
    return viewport


def fit_root_to_targets(
    env: Environment,
    targets: Iterable[Any],
    aspect: AspectMode | str = AspectMode.STRETCH,
    align: str = "xMidYMid",
    meet_or_slice: MeetOrSlice | str = MeetOrSlice.MEET,
    margin: Margin | None = None,
    options: MeasureOptions | None = None,
) -> LogicalViewport:
    """Viewport for the targets' root under an aspect strategy.

    Pixel margins are converted with the root's current on-screen scale.
    """
    targets = list(targets)
    if not targets:
        raise EmptyInputError("fit")
    options = (options or MeasureOptions()).with_mode(ClipMode.UNCLIPPED)
    measured = measure_targets(env, targets, options)
    if measured is None:
        raise NothingRenderedError(targets[0] if len(targets) == 1 else targets)
    box, root = measured
    root_rect = env.screen_rect(root)
    current = effective_viewport(root_rect, env.viewport_of(root))
    sx, sy = scale_for(root_rect, current)
    margin_units = resolve_margin(margin, (sx + sy) / 2)
    return fit_viewport(box, current, aspect, align, meet_or_slice, margin_units)


def compute_viewbox_expansion(
    env: Environment,
    root: Any,
    options: MeasureOptions | None = None,
) -> ViewBoxExpansion | None:
    """Measure a root clipped and unclipped and compute its viewBox growth.

    Returns None when the drawing renders nothing.

    Raises:
        SvgBBoxError: ``root`` is not an outermost <svg> with a viewBox.
    """
    element = _is_root_svg(env, root)
    if element is None:
        raise SvgBBoxError("Target must be a root <svg> element", {"target": root})
    current = env.viewport_of(element)
    if current is None:
        raise SvgBBoxError("Root <svg> must have a viewBox", {"target": root})

    visible, full = measure_visible_and_full(env, element, options)
    if full is None:
        return None
    padding, new_viewport = viewbox_expansion(current, full)
    return ViewBoxExpansion(
        current=current,
        visible=visible,
        full=full,
        padding=padding,
        new_viewport=new_viewport,
    )


def measure_visible_and_full(
    env: Environment,
    target: Any,
    options: MeasureOptions | None = None,
) -> tuple[Box | None, Box | None]:
    """Visual bbox clipped to the root viewport, and of the whole drawing."""
    options = options or MeasureOptions()
    resolved = resolve(env, target)
    visible = measure(env, resolved, options.with_mode(ClipMode.CLIPPED))
    full = measure(env, resolved, options.with_mode(ClipMode.UNCLIPPED))
    return (
        visible.box if visible is not None else None,
        full.box if full is not None else None,
    )
