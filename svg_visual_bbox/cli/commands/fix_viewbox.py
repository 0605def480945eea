"""Fix-viewbox command - add a viewBox and size to SVG files that lack them."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from svg_visual_bbox.api import SvgVisualBBox
from svg_visual_bbox.browser import launch_environment
from svg_visual_bbox.config import Config
from svg_visual_bbox.exceptions import SvgBBoxError
from svg_visual_bbox.geometry import LogicalViewport
from svg_visual_bbox.svg import apply_viewbox, parse_svg, write_svg

console = Console()


@click.command("fix-viewbox")
@click.argument("svg_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Replace an existing viewBox with the full drawing")
@click.option("--no-size", is_flag=True, help="Do not synthesize missing width/height")
@click.option("-p", "--precision", type=int, default=6, help="Decimal places in the viewBox")
@click.pass_context
def fix_viewbox(
    ctx: click.Context,
    svg_file: Path,
    output: Path | None,
    force: bool,
    no_size: bool,
    precision: int,
) -> None:
    """Set a viewBox covering the whole drawing and fill in width/height.

    SVG_FILE: SVG document to fix.
    OUTPUT: Destination (default: <name>_fixed.svg next to the input).
    """
    config: Config = (ctx.obj or {}).get("config") or Config.load()
    output = output or svg_file.with_name(f"{svg_file.stem}_fixed.svg")

    try:
        tree = parse_svg(svg_file)
        root = tree.getroot()
        existing = LogicalViewport.parse(root.get("viewBox"))

        viewport = existing
        if existing is None or force:
            with console.status("[bold green]Measuring drawing..."):
                with launch_environment(
                    svg_path=svg_file,
                    headless=config.headless,
                    browser_args=config.browser_args,
                ) as env:
                    _, full = SvgVisualBBox(env, config).measure_visible_and_full("svg")
            if full is None or full.is_degenerate:
                console.print("[red]Error:[/red] Nothing is drawn; cannot compute a viewBox")
                raise SystemExit(1)
            viewport = LogicalViewport(full.x, full.y, full.width, full.height)

        width, height = apply_viewbox(root, viewport, synthesize=not no_size, precision=precision)
        write_svg(tree, output)
    except SvgBBoxError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    console.print(f"[green]viewBox:[/green] {viewport.to_attribute(precision)}")
    if width and height:
        console.print(f"[green]size:[/green] {width} x {height}")
    console.print(f"[blue]Output:[/blue] {output}")
