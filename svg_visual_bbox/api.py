"""High-level API for svg-visual-bbox.

Module functions take the environment explicitly; ``SvgVisualBBox`` binds
an environment and a ``Config`` once for repeated calls.

Example:
    >>> from svg_visual_bbox import SvgVisualBBox
    >>> from svg_visual_bbox.browser import launch_environment
    >>> with launch_environment(html=page) as env:
    ...     bbox = SvgVisualBBox(env)
    ...     box = bbox.measure_one("#title")
    ...     bbox.show_overlay("#title", theme="dark")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from svg_visual_bbox.config import Config
from svg_visual_bbox.environment import ElementRef, Environment
from svg_visual_bbox.exceptions import NothingRenderedError
from svg_visual_bbox.fitter import (
    AspectMode,
    Margin,
    MeetOrSlice,
    ViewBoxExpansion,
    fit_root_to_targets,
)
from svg_visual_bbox.fitter import compute_fitted_viewport as _compute_fitted_viewport
from svg_visual_bbox.fitter import compute_viewbox_expansion as _compute_viewbox_expansion
from svg_visual_bbox.fitter import measure_visible_and_full as _measure_visible_and_full
from svg_visual_bbox.fonts import DEFAULT_FONT_TIMEOUT_MS
from svg_visual_bbox.fonts import wait_for_fonts as _wait_for_fonts
from svg_visual_bbox.geometry import Box, LogicalViewport, to_screen
from svg_visual_bbox.measure import MeasureOptions, MeasureResult, measure, measure_targets
from svg_visual_bbox.overlay import OverlayOptions, OverlayResult
from svg_visual_bbox.overlay import remove_all_overlays as _remove_all_overlays
from svg_visual_bbox.overlay import show_overlay as _show_overlay
from svg_visual_bbox.resolver import resolve

logger = logging.getLogger(__name__)


def measure_result(
    env: Environment,
    target: Any,
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> MeasureResult:
    """Like ``measure_one`` but also reports which pass produced the box."""
    _wait_for_fonts(env, font_timeout_ms)
    result = measure(env, resolve(env, target), options)
    if result is None:
        raise NothingRenderedError(target)
    return result


def measure_one(
    env: Environment,
    target: Any,
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> Box:
    """Visual bbox of one target in its root's user space.

    Raises:
        TargetNotFoundError: the target does not resolve.
        NoCoordinateRootError: the target is outside any <svg>.
        NothingRenderedError: the target draws nothing.
    """
    return measure_result(env, target, options, font_timeout_ms).box


def measure_union(
    env: Environment,
    targets: Iterable[Any],
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> Box:
    """Union of the visual bboxes of targets sharing one root.

    Raises:
        EmptyInputError: ``targets`` is empty.
        NothingRenderedError: none of the targets draws anything.
    """
    targets = list(targets)
    _wait_for_fonts(env, font_timeout_ms)
    measured = measure_targets(env, targets, options)
    if measured is None:
        raise NothingRenderedError(targets)
    return measured[0]


def to_screen_box(env: Environment, box: Box, root: ElementRef, padding: float = 0.0) -> Box:
    """Map a root-user-space box to on-screen pixels through ``root``."""
    return to_screen(box, env.screen_rect(root), env.viewport_of(root), padding)


def show_overlay(
    env: Environment,
    target: Any,
    options: OverlayOptions | None = None,
    measure_options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> OverlayResult:
    return _show_overlay(env, target, options, measure_options, font_timeout_ms)


def remove_all_overlays(env: Environment) -> int:
    return _remove_all_overlays(env)


def compute_fitted_viewport(
    env: Environment,
    targets: Iterable[Any] | Any,
    padding: float = 0.0,
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> LogicalViewport:
    _wait_for_fonts(env, font_timeout_ms)
    return _compute_fitted_viewport(env, targets, padding, options)


def measure_visible_and_full(
    env: Environment,
    target: Any,
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> tuple[Box | None, Box | None]:
    _wait_for_fonts(env, font_timeout_ms)
    return _measure_visible_and_full(env, target, options)


def compute_viewbox_expansion(
    env: Environment,
    root: Any,
    options: MeasureOptions | None = None,
    font_timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS,
) -> ViewBoxExpansion | None:
    _wait_for_fonts(env, font_timeout_ms)
    return _compute_viewbox_expansion(env, root, options)


class SvgVisualBBox:
    """Visual bounding boxes for SVG content in one rendering environment.

    Args:
        env: The rendering environment (e.g. ``PlaywrightEnvironment``).
        config: Settings; defaults to ``Config()`` (no file or env lookup).
    """

    def __init__(self, env: Environment, config: Config | None = None) -> None:
        self.env = env
        self.config = config or Config()

    @property
    def _measure_options(self) -> MeasureOptions:
        return self.config.measure_options()

    def wait_for_fonts(self, timeout_ms: float | None = None) -> None:
        """Wait for fonts; ``timeout_ms`` defaults to the configured value."""
        _wait_for_fonts(self.env, self.config.font_timeout_ms if timeout_ms is None else timeout_ms)

    def measure_one(self, target: Any) -> Box:
        return measure_one(self.env, target, self._measure_options, self.config.font_timeout_ms)

    def measure_result(self, target: Any) -> MeasureResult:
        return measure_result(self.env, target, self._measure_options, self.config.font_timeout_ms)

    def measure_union(self, targets: Iterable[Any]) -> Box:
        return measure_union(self.env, targets, self._measure_options, self.config.font_timeout_ms)

    def to_screen_box(self, box: Box, root: ElementRef, padding: float | None = None) -> Box:
        return to_screen_box(
            self.env, box, root, self.config.padding_px if padding is None else padding
        )

    def show_overlay(self, target: Any, **options: Any) -> OverlayResult:
        """Draw a marker over ``target``.

        Keyword options (``theme``, ``border_color``, ``padding``,
        ``border_width``, ``z_index``) override the configured defaults.
        """
        return show_overlay(
            self.env,
            target,
            self.config.overlay_options(**options),
            self._measure_options,
            self.config.font_timeout_ms,
        )

    def remove_all_overlays(self) -> int:
        return remove_all_overlays(self.env)

    def compute_fitted_viewport(
        self, targets: Iterable[Any] | Any, padding: float = 0.0
    ) -> LogicalViewport:
        return compute_fitted_viewport(
            self.env, targets, padding, self._measure_options, self.config.font_timeout_ms
        )

    def fit(
        self,
        targets: Iterable[Any],
        aspect: AspectMode | str = AspectMode.STRETCH,
        align: str = "xMidYMid",
        meet_or_slice: MeetOrSlice | str = MeetOrSlice.MEET,
        margin: Margin | None = None,
    ) -> LogicalViewport:
        """Viewport framing ``targets`` under an aspect strategy (not applied)."""
        self.wait_for_fonts()
        return fit_root_to_targets(
            self.env, targets, aspect, align, meet_or_slice, margin, self._measure_options
        )

    def measure_visible_and_full(self, target: Any) -> tuple[Box | None, Box | None]:
        return measure_visible_and_full(
            self.env, target, self._measure_options, self.config.font_timeout_ms
        )

    def compute_viewbox_expansion(self, root: Any) -> ViewBoxExpansion | None:
        return compute_viewbox_expansion(
            self.env, root, self._measure_options, self.config.font_timeout_ms
        )
