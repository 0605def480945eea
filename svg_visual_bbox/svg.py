"""SVG file helpers for the CLI.

Files are parsed with defusedxml (no external entities, no entity
expansion bombs) before being loaded into a browser page or rewritten.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING
from xml.etree.ElementTree import ElementTree
from xml.etree.ElementTree import register_namespace as _register_namespace

import defusedxml.ElementTree as ET

from svg_visual_bbox.environment import SVG_NS, XLINK_NS
from svg_visual_bbox.exceptions import SvgParseError
from svg_visual_bbox.fitter import synthesize_size
from svg_visual_bbox.geometry import LogicalViewport

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

_PROLOG_RE = re.compile(r"^\s*(?:<\?xml[^>]*\?>\s*)?(?:<!DOCTYPE[^>]*>\s*)?", re.IGNORECASE)


def _register_namespaces() -> None:
    for prefix, uri in {"": SVG_NS, "xlink": XLINK_NS}.items():
        _register_namespace(prefix, uri)


def parse_svg(path: Path) -> ElementTree:
    """Safely parse an SVG file.

    Raises:
        SvgParseError: The file is not well-formed XML or its root is not <svg>.
    """
    _register_namespaces()
    try:
        tree = ET.parse(str(path))
    except ET.ParseError as e:
        raise SvgParseError(f"Failed to parse SVG: {e}", {"path": str(path)}) from e
    root = tree.getroot()
    if root is None or _local_name(root.tag) != "svg":
        raise SvgParseError("Root element is not <svg>", {"path": str(path)})
    return tree


def html_document(path: Path) -> str:
    """HTML page embedding the SVG file inline, resolving relative URLs.

    The file is validated with ``parse_svg`` first; the file's markup is
    embedded unchanged apart from its XML prolog.
    """
    parse_svg(path)
    markup = _PROLOG_RE.sub("", path.read_text(encoding="utf-8"), count=1)
    base = path.resolve().parent.as_uri() + "/"
    return (
        "<!DOCTYPE html><html><head>"
        f'<meta charset="utf-8"><base href="{base}">'
        "<style>html,body{margin:0;padding:0}</style>"
        f"</head><body>{markup}</body></html>"
    )


def apply_viewbox(
    root: Element,
    viewport: LogicalViewport,
    synthesize: bool = True,
    precision: int = 6,
) -> tuple[str | None, str | None]:
    """Set ``viewBox`` and, when missing, ``width``/``height`` on ``root``.

    Returns:
        The resulting (width, height) attribute values.
    """
    root.set("viewBox", viewport.to_attribute(precision))
    width, height = root.get("width"), root.get("height")
    if synthesize:
        width, height = synthesize_size(viewport, width, height)
        root.set("width", width)
        root.set("height", height)
    return width, height


def write_svg(tree: ElementTree, path: Path) -> None:
    _register_namespaces()
    path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(str(path), encoding="utf-8", xml_declaration=True)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag
