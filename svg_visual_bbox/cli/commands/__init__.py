"""CLI commands for svg-visual-bbox."""

from svg_visual_bbox.cli.commands.fit import fit
from svg_visual_bbox.cli.commands.fix_viewbox import fix_viewbox
from svg_visual_bbox.cli.commands.getbbox import getbbox

__all__ = ["getbbox", "fix_viewbox", "fit"]
