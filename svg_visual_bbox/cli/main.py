"""Entry point for the ``svg-bbox`` command."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from svg_visual_bbox import __version__
from svg_visual_bbox.cli.commands import fit, fix_viewbox, getbbox
from svg_visual_bbox.config import Config
from svg_visual_bbox.exceptions import ConfigError
from svg_visual_bbox.logging_setup import setup_logging

console = Console()


@click.group()
@click.version_option(__version__, prog_name="svg-bbox")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity (overrides the config file)",
)
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    headed: bool,
) -> None:
    """Visual bounding boxes for SVG content, measured in headless Chromium."""
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e
    if log_level:
        config.log_level = log_level.upper()
    if headed:
        config.headless = False
    setup_logging(config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["log_level"] = config.log_level


cli.add_command(getbbox)
cli.add_command(fix_viewbox)
cli.add_command(fit)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
