"""Fit command - compute a viewBox framing selected elements."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from svg_visual_bbox.api import SvgVisualBBox
from svg_visual_bbox.browser import launch_environment
from svg_visual_bbox.config import Config
from svg_visual_bbox.exceptions import SvgBBoxError
from svg_visual_bbox.fitter import AspectMode, MeetOrSlice, resolve_margin
from svg_visual_bbox.svg import apply_viewbox, parse_svg, write_svg

console = Console()


@click.command()
@click.argument("svg_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("selectors", nargs=-1, required=True)
@click.option(
    "--aspect",
    type=click.Choice([m.value for m in AspectMode]),
    default=AspectMode.STRETCH.value,
    show_default=True,
    help="How the new viewBox relates to the current one",
)
@click.option("--align", default="xMidYMid", show_default=True, help="Alignment for preserve_aspect_ratio")
@click.option("--slice", "use_slice", is_flag=True, help="Slice instead of meet for preserve_aspect_ratio")
@click.option("--margin", default=None, help="Margin in user units, or pixels as '10px'")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a copy of the SVG with the new viewBox",
)
@click.pass_context
def fit(
    ctx: click.Context,
    svg_file: Path,
    selectors: tuple[str, ...],
    aspect: str,
    align: str,
    use_slice: bool,
    margin: str | None,
    output: Path | None,
) -> None:
    """Print a viewBox that frames the selected elements.

    SVG_FILE: SVG document to load.
    SELECTORS: CSS selectors of the elements to frame.
    """
    config: Config = (ctx.obj or {}).get("config") or Config.load()
    try:
        resolve_margin(margin)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--margin") from e

    try:
        with launch_environment(
            svg_path=svg_file,
            headless=config.headless,
            browser_args=config.browser_args,
        ) as env:
            viewport = SvgVisualBBox(env, config).fit(
                list(selectors),
                aspect=aspect,
                align=align,
                meet_or_slice=MeetOrSlice.SLICE if use_slice else MeetOrSlice.MEET,
                margin=margin,
            )
        if output is not None:
            tree = parse_svg(svg_file)
            apply_viewbox(tree.getroot(), viewport, synthesize=False)
            write_svg(tree, output)
    except SvgBBoxError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    click.echo(viewport.to_attribute())
    if output is not None:
        console.print(f"[blue]Output:[/blue] {output}")
