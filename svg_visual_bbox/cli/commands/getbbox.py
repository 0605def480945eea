"""Getbbox command - measure visual bounding boxes in an SVG file."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from svg_visual_bbox.api import SvgVisualBBox
from svg_visual_bbox.browser import launch_environment
from svg_visual_bbox.config import Config
from svg_visual_bbox.exceptions import SvgBBoxError
from svg_visual_bbox.geometry import Box, format_number
from svg_visual_bbox.measure import ClipMode

console = Console()

WHOLE_CONTENT = "WHOLE CONTENT"


@click.command()
@click.argument("svg_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("selectors", nargs=-1)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ClipMode]),
    help="clipped: only what the viewBox shows; unclipped: the whole drawing",
)
@click.option("--union", "union", is_flag=True, help="Also report the union of all selectors")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def getbbox(
    ctx: click.Context,
    svg_file: Path,
    selectors: tuple[str, ...],
    mode: str | None,
    union: bool,
    as_json: bool,
) -> None:
    """Measure visual bounding boxes in an SVG file.

    SVG_FILE: SVG document to load.
    SELECTORS: CSS selectors of elements to measure (default: whole drawing).
    """
    config: Config = (ctx.obj or {}).get("config") or Config.load()
    if mode:
        config.mode = ClipMode(mode)

    results: dict[str, Box] = {}
    try:
        with launch_environment(
            svg_path=svg_file,
            headless=config.headless,
            browser_args=config.browser_args,
        ) as env:
            bbox = SvgVisualBBox(env, config)
            if not selectors:
                _, full = bbox.measure_visible_and_full("svg")
                if full is None:
                    console.print("[yellow]Nothing is drawn in this file[/yellow]")
                    raise SystemExit(1)
                results[WHOLE_CONTENT] = full
            for selector in selectors:
                results[selector] = bbox.measure_one(selector)
            if union and len(selectors) > 1:
                results["UNION"] = bbox.measure_union(selectors)
    except SvgBBoxError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    if as_json:
        click.echo(json.dumps({name: box.to_dict() for name, box in results.items()}, indent=2))
        return

    table = Table(title=f"Visual bounding boxes: {svg_file.name}")
    table.add_column("Target", style="cyan")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column("width", justify="right", style="green")
    table.add_column("height", justify="right", style="green")
    for name, box in results.items():
        table.add_row(
            name,
            format_number(box.x, 3),
            format_number(box.y, 3),
            format_number(box.width, 3),
            format_number(box.height, 3),
        )
    console.print(table)
