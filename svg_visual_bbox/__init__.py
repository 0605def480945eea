"""svg-visual-bbox: visually accurate bounding boxes for SVG content.

Native SVG geometry APIs report declared extents: no stroke, no filter
bleed, unreliable text and <use> indirection. This library measures what is
actually painted in a live document and maps it to screen pixels for
overlays, or to new viewBoxes that frame a drawing.

- Two-pass measurement: declared geometry, corrected by rasterisation
- Viewport mapping that honours negative origins and non-uniform scale
- Dashed overlay markers with automatic light/dark contrast
- viewBox fitting with stretch, preserveAspectRatio and re-centring

Example:
    >>> from pathlib import Path
    >>> from svg_visual_bbox import SvgVisualBBox
    >>> from svg_visual_bbox.browser import launch_environment
    >>> with launch_environment(svg_path=Path("logo.svg")) as env:
    ...     SvgVisualBBox(env).measure_one("#mark")
"""

from svg_visual_bbox.api import SvgVisualBBox
from svg_visual_bbox.config import Config
from svg_visual_bbox.environment import Environment
from svg_visual_bbox.exceptions import (
    ConfigError,
    EmptyInputError,
    NoCoordinateRootError,
    NothingRenderedError,
    RenderingEnvironmentError,
    SvgBBoxError,
    SvgParseError,
    TargetNotFoundError,
)
from svg_visual_bbox.geometry import Box, CoordinateSpace, LogicalViewport, union_boxes
from svg_visual_bbox.measure import ClipMode, CorrectionPolicy, MeasureOptions, MeasureResult
from svg_visual_bbox.overlay import OverlayOptions, OverlayResult, Theme

__version__ = "0.1.0"

__all__ = [
    # Main API
    "SvgVisualBBox",
    "Config",
    "Environment",
    # Geometry
    "Box",
    "CoordinateSpace",
    "LogicalViewport",
    "union_boxes",
    # Options and results
    "ClipMode",
    "CorrectionPolicy",
    "MeasureOptions",
    "MeasureResult",
    "OverlayOptions",
    "OverlayResult",
    "Theme",
    # Exceptions
    "SvgBBoxError",
    "TargetNotFoundError",
    "NoCoordinateRootError",
    "EmptyInputError",
    "NothingRenderedError",
    "RenderingEnvironmentError",
    "SvgParseError",
    "ConfigError",
    # Metadata
    "__version__",
]
