"""Command-line interface for svg-visual-bbox."""

from svg_visual_bbox.cli.main import cli

__all__ = ["cli"]
