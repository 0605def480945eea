"""Exception hierarchy for svg-visual-bbox.

Every error raised on purpose by this package derives from ``SvgBBoxError``
and carries an optional ``details`` dict for diagnostics. A font-loading
timeout is deliberately *not* an error (see ``svg_visual_bbox.fonts``).
"""

from __future__ import annotations

from typing import Any


class SvgBBoxError(Exception):
    """Base class for all svg-visual-bbox errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            extra = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({extra})"
        return self.message


class TargetNotFoundError(SvgBBoxError):
    """The selector or handle resolved to no element."""

    def __init__(self, target: Any, details: dict[str, Any] | None = None) -> None:
        self.target = target
        super().__init__(f"Element not found: {target!r}", details)


class NoCoordinateRootError(SvgBBoxError):
    """The element has no <svg> ancestor defining a coordinate system."""

    def __init__(self, target: Any, details: dict[str, Any] | None = None) -> None:
        self.target = target
        super().__init__(f"Element is not inside an <svg>: {target!r}", details)


class EmptyInputError(SvgBBoxError):
    """A union or fit operation received zero targets."""

    def __init__(self, operation: str, details: dict[str, Any] | None = None) -> None:
        self.operation = operation
        super().__init__(f"{operation}: at least one target is required", details)


class NothingRenderedError(SvgBBoxError):
    """The target produced neither declared geometry nor rendered pixels."""

    def __init__(self, target: Any, details: dict[str, Any] | None = None) -> None:
        self.target = target
        super().__init__(f"Nothing is drawn for target: {target!r}", details)


class RenderingEnvironmentError(SvgBBoxError):
    """The hosting rendering environment failed to answer a query."""


class ConfigError(SvgBBoxError):
    """Invalid configuration value or file."""


class SvgParseError(SvgBBoxError):
    """An SVG file could not be parsed or is not an SVG document."""
