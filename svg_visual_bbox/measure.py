"""Two-pass aggressive visual bounding box.

Pass 1 (fast path) asks the environment for the declared geometry of the
measured element and projects it into the root's user space. That box is
cheap but optimistic: it ignores stroke width, filter bleed, markers, and is
unreliable for text and grouped content.

Pass 2 (aggressive correction) only runs when ``needs_correction`` says so.
It rasterises the anchor element in isolation, first coarsely over a large
region of interest, then finely over the coarse box grown by a generous
safety margin, and converts the ink bounds back to user units. The final
box is the union of both passes, so it never shrinks below the declared
geometry while still covering everything that is actually painted.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from svg_visual_bbox.environment import ElementRef, Environment
from svg_visual_bbox.exceptions import ConfigError, EmptyInputError, SvgBBoxError
from svg_visual_bbox.geometry import (
    Box,
    CoordinateSpace,
    LogicalViewport,
    Matrix,
    effective_viewport,
    is_finite_box,
    scale_for,
    union_boxes,
)
from svg_visual_bbox.resolver import ResolvedTarget, resolve

logger = logging.getLogger(__name__)

_LEADING_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


class MeasureSource(str, Enum):
    """Which pass produced a ``MeasureResult``."""

    FAST = "fast"
    CORRECTED = "corrected"


class ClipMode(str, Enum):
    """Region considered when rasterising.

    CLIPPED restricts everything to the root's visible viewport;
    UNCLIPPED considers the whole drawing, including what the viewBox crops.
    """

    CLIPPED = "clipped"
    UNCLIPPED = "unclipped"


@dataclass(frozen=True)
class CorrectionPolicy:
    """Decides which elements need the rendered-geometry pass.

    Tag names are compared lower-cased. A style property "declares an
    effect" when its computed value is neither empty nor ``none``.
    """

    text_tags: frozenset[str] = frozenset({"text", "tspan", "textpath"})
    container_tags: frozenset[str] = frozenset({"g", "svg", "use", "a", "switch", "symbol"})
    check_stroke: bool = True
    effect_properties: tuple[str, ...] = (
        "filter",
        "marker-start",
        "marker-mid",
        "marker-end",
    )
    correct_degenerate: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CorrectionPolicy:
        known = {"text_tags", "container_tags", "check_stroke", "effect_properties", "correct_degenerate"}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(
                "Unknown correction policy keys", {"keys": ", ".join(sorted(unknown))}
            )
        kwargs: dict[str, Any] = {}
        for key in ("text_tags", "container_tags"):
            if key in data:
                kwargs[key] = frozenset(str(t).lower() for t in _as_list(data[key], key))
        if "effect_properties" in data:
            kwargs["effect_properties"] = tuple(
                str(p) for p in _as_list(data["effect_properties"], "effect_properties")
            )
        for key in ("check_stroke", "correct_degenerate"):
            if key in data:
                if not isinstance(data[key], bool):
                    raise ConfigError(f"'{key}' must be a boolean", {"value": data[key]})
                kwargs[key] = data[key]
        return cls(**kwargs)


def _as_list(value: Any, key: str) -> Iterable[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return value
    raise ConfigError(f"'{key}' must be a list", {"value": value})


@dataclass(frozen=True)
class MeasureOptions:
    """Knobs for ``measure``.

    Attributes:
        mode: CLIPPED (visible part only) or UNCLIPPED (whole drawing).
        coarse_factor: Pixels per user unit for the coarse raster
            (multiplied by the root's layout scale).
        fine_factor: Pixels per user unit for the fine raster.
        safety_margin: User units added around the coarse box before the
            fine raster. None picks 25% of its largest side + 100 units.
        use_layout_scale: Derive the base pixels-per-unit from the root's
            on-screen size so non-scaling strokes match real pixels.
        max_raster_side: Upper bound in pixels for either raster side.
        policy: Pass-2 trigger policy.
    """

    mode: ClipMode = ClipMode.CLIPPED
    coarse_factor: float = 3.0
    fine_factor: float = 24.0
    safety_margin: float | None = None
    use_layout_scale: bool = True
    max_raster_side: int = 4096
    policy: CorrectionPolicy = field(default_factory=CorrectionPolicy)

    def with_mode(self, mode: ClipMode) -> MeasureOptions:
        return MeasureOptions(
            mode=mode,
            coarse_factor=self.coarse_factor,
            fine_factor=self.fine_factor,
            safety_margin=self.safety_margin,
            use_layout_scale=self.use_layout_scale,
            max_raster_side=self.max_raster_side,
            policy=self.policy,
        )


@dataclass(frozen=True)
class MeasureResult:
    """A measured box in root user space and how it was obtained."""

    box: Box
    source: MeasureSource
    element: ElementRef = None
    root: ElementRef = None


# ---------------------------------------------------------------------------
# Decision predicate
# ---------------------------------------------------------------------------


def needs_correction(
    env: Environment,
    element: ElementRef,
    fast_box: Box | None,
    policy: CorrectionPolicy,
) -> bool:
    """Whether the rendered-geometry pass must run for ``element``."""
    if fast_box is None or fast_box.is_degenerate:
        return policy.correct_degenerate
    tag = env.tag_name(element).lower()
    if tag in policy.text_tags or tag in policy.container_tags:
        return True
    return declares_effects(env, element, policy)


def declares_effects(env: Environment, element: ElementRef, policy: CorrectionPolicy) -> bool:
    """True when the element paints outside its declared geometry."""
    if policy.check_stroke and has_visible_stroke(env, element):
        return True
    for prop in policy.effect_properties:
        value = env.computed_style(element, prop).strip().lower()
        if value and value != "none":
            return True
    return False


def has_visible_stroke(env: Environment, element: ElementRef) -> bool:
    stroke = env.computed_style(element, "stroke").strip().lower()
    if not stroke or stroke == "none" or stroke == "transparent":
        return False
    width = parse_length(env.computed_style(element, "stroke-width"))
    # An unset stroke-width computes to 1.
    return width is None or width > 0


def parse_length(value: str | None) -> float | None:
    """Leading number of a CSS length (``"5px"`` -> 5.0), or None."""
    if not value:
        return None
    match = _LEADING_NUMBER_RE.match(value)
    return float(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Pass 1: declared geometry
# ---------------------------------------------------------------------------


def declared_box(env: Environment, resolved: ResolvedTarget) -> Box | None:
    """Native declared bbox of the measured element, in root user space."""
    local = env.geometry_box(resolved.measured_element)
    if local is None:
        return None
    if resolved.is_indirect:
        matrix = instance_matrix(env, resolved)
    else:
        matrix = env.transform_to_root(resolved.measured_element, resolved.root)
    if matrix is None:
        return None
    box = matrix.transform_box(local)
    return box if is_finite_box(box) else None


def instance_matrix(env: Environment, resolved: ResolvedTarget) -> Matrix | None:
    """Placement of referenced content through its <use> instance.

    Composes the instance's transform to the root, its x/y offset, the
    viewBox scaling of a referenced <symbol>, and the content's own
    ``transform``.
    """
    instance = resolved.element
    template = resolved.measured_element
    to_root = env.transform_to_root(instance, resolved.root)
    if to_root is None:
        return None
    x = parse_length(env.get_attribute(instance, "x")) or 0.0
    y = parse_length(env.get_attribute(instance, "y")) or 0.0
    matrix = to_root.multiply(Matrix.translate(x, y))

    if env.tag_name(template).lower() == "symbol":
        symbol_vp = LogicalViewport.parse(env.get_attribute(template, "viewBox"))
        width = parse_length(env.get_attribute(instance, "width"))
        height = parse_length(env.get_attribute(instance, "height"))
        if symbol_vp is not None and width and height:
            matrix = matrix.multiply(_meet_matrix(symbol_vp, width, height))
    else:
        own = env.own_transform(template)
        if own is not None:
            matrix = matrix.multiply(own)
    return matrix


def _meet_matrix(vp: LogicalViewport, width: float, height: float) -> Matrix:
    # xMidYMid meet: uniform scale, centred.
    scale = min(width / vp.width, height / vp.height)
    tx = (width - vp.width * scale) / 2 - vp.min_x * scale
    ty = (height - vp.height * scale) / 2 - vp.min_y * scale
    return Matrix(scale, 0.0, 0.0, scale, tx, ty)


# ---------------------------------------------------------------------------
# Pass 2: rendered geometry
# ---------------------------------------------------------------------------


def default_safety_margin(coarse: Box) -> float:
    size = max(coarse.width, coarse.height)
    return (size * 0.25 if size > 0 else 0.0) + 100.0


def base_pixels_per_unit(layout: tuple[float, float], viewport: LogicalViewport | None) -> float:
    """Average on-screen pixels per user unit of the root (1.0 if unknown).

    ``layout`` is the root's rendered (width, height) in pixels.
    """
    width, height = layout
    if width <= 0 or height <= 0:
        return 1.0
    sx, sy = scale_for(Box(0, 0, width, height, CoordinateSpace.SCREEN), viewport)
    return (sx + sy) / 2


def clamp_pixels_per_unit(roi: Box, pixels_per_unit: float, max_side: int) -> float:
    """Lower ``pixels_per_unit`` so neither raster side exceeds ``max_side``."""
    longest = max(roi.width, roi.height)
    if longest <= 0:
        return pixels_per_unit
    return min(pixels_per_unit, max_side / longest)


def raster_pass(
    env: Environment,
    element: ElementRef,
    root: ElementRef,
    roi: Box,
    pixels_per_unit: float,
    max_side: int,
) -> Box | None:
    """Rasterise once and convert the ink bounds to user units."""
    if roi.is_degenerate:
        return None
    ppu = clamp_pixels_per_unit(roi, pixels_per_unit, max_side)
    bounds = env.rasterize(element, root, roi, ppu)
    if bounds is None:
        return None
    x_min, y_min, x_max, y_max = bounds
    if x_max < x_min or y_max < y_min:
        return None
    return Box(
        roi.x + x_min / ppu,
        roi.y + y_min / ppu,
        (x_max - x_min + 1) / ppu,
        (y_max - y_min + 1) / ppu,
    )


def region_of_interest(
    env: Environment,
    resolved: ResolvedTarget,
    mode: ClipMode,
    fast_box: Box | None,
) -> Box:
    """Coarse raster region: the visible viewport, or the whole drawing."""
    root_rect = env.screen_rect(resolved.root)
    visible = effective_viewport(root_rect, env.viewport_of(resolved.root)).as_box()
    if mode is ClipMode.CLIPPED:
        return visible
    boxes = [visible]
    drawing = env.geometry_box(resolved.root)
    if drawing is not None and is_finite_box(drawing) and not drawing.is_degenerate:
        boxes.append(drawing)
    if fast_box is not None and not fast_box.is_degenerate:
        boxes.append(fast_box)
    return union_boxes(boxes)


def rendered_box(
    env: Environment,
    resolved: ResolvedTarget,
    options: MeasureOptions,
    fast_box: Box | None = None,
) -> Box | None:
    """Visual bbox from rasterisation, in root user space (None: no ink)."""
    root = resolved.root
    roi = region_of_interest(env, resolved, options.mode, fast_box)

    base = 1.0
    if options.use_layout_scale:
        base = base_pixels_per_unit(env.layout_size(root), env.viewport_of(root))
    coarse_ppu = max(1.0, base * options.coarse_factor)
    fine_ppu = max(4.0, base * options.fine_factor)

    coarse = raster_pass(env, resolved.element, root, roi, coarse_ppu, options.max_raster_side)
    if coarse is None:
        logger.debug("Coarse raster found no ink in %s", roi)
        return None

    margin = options.safety_margin
    if margin is None or margin != margin:  # None or NaN
        margin = default_safety_margin(coarse)
    fine_roi = coarse.expand(margin)
    if options.mode is ClipMode.CLIPPED:
        fine_roi = fine_roi.intersect(roi) or coarse

    fine = raster_pass(env, resolved.element, root, fine_roi, fine_ppu, options.max_raster_side)
    return fine or coarse


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def measure(
    env: Environment,
    resolved: ResolvedTarget,
    options: MeasureOptions | None = None,
) -> MeasureResult | None:
    """Tightest rendered bbox of a resolved target, in root user space.

    Returns None when nothing is drawn (no declared geometry and no ink,
    or, in CLIPPED mode, nothing inside the visible viewport).
    """
    options = options or MeasureOptions()
    fast = declared_box(env, resolved)
    if options.mode is ClipMode.CLIPPED and fast is not None and not fast.is_degenerate:
        visible = region_of_interest(env, resolved, ClipMode.CLIPPED, None)
        fast = fast.intersect(visible)
        if fast is None:
            logger.debug("Declared geometry lies outside the visible viewport")

    correct = needs_correction(env, resolved.measured_element, fast, options.policy)
    if not correct and resolved.is_indirect:
        # Stroke or filter set on the instance is inherited by its content.
        correct = declares_effects(env, resolved.element, options.policy)

    if not correct:
        if fast is None:
            return None
        return MeasureResult(fast, MeasureSource.FAST, resolved.element, resolved.root)

    rendered = rendered_box(env, resolved, options, fast)
    if rendered is None:
        if fast is None:
            return None
        return MeasureResult(fast, MeasureSource.FAST, resolved.element, resolved.root)

    if fast is None or fast.is_degenerate:
        box = rendered
    else:
        box = union_boxes([fast, rendered])
    logger.debug("Corrected %s -> %s", fast, box)
    return MeasureResult(box, MeasureSource.CORRECTED, resolved.element, resolved.root)


def measure_targets(
    env: Environment,
    targets: Iterable[Any],
    options: MeasureOptions | None = None,
) -> tuple[Box, ElementRef] | None:
    """Union of the visual bboxes of several targets sharing one root.

    Targets that draw nothing are skipped. Returns the union and the shared
    root, or None when no target draws anything.

    Raises:
        EmptyInputError: ``targets`` is empty.
        SvgBBoxError: the targets live under different <svg> roots.
    """
    targets = list(targets)
    if not targets:
        raise EmptyInputError("union")
    resolved = [resolve(env, t) for t in targets]
    root = resolved[0].root
    for item in resolved[1:]:
        if not env.same_element(item.root, root):
            raise SvgBBoxError(
                "All targets must share the same <svg> root",
                {"targets": len(targets)},
            )
    boxes = []
    for item in resolved:
        result = measure(env, item, options)
        if result is None:
            logger.debug("Skipping <%s>: nothing drawn", env.tag_name(item.element))
            continue
        boxes.append(result.box)
    if not boxes:
        return None
    return union_boxes(boxes), root
