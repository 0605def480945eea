"""Pytest configuration and shared fixtures for svg-visual-bbox tests.

The core is exercised against ``FakeEnvironment``, an in-memory element
tree whose geometry, styles and "ink" (what rasterisation would find) are
declared per element. Tests marked ``browser`` run against real Chromium and
are skipped when Playwright's browser is not installed.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import FakeElement, FakeEnvironment, make_document

from svg_visual_bbox.geometry import Box

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def scene() -> tuple[FakeEnvironment, FakeElement]:
    """A 400x300 viewBox rendered at 800x600, offset (100, 50) on screen.

    Contents:
        rect#plain   (10, 20, 50, 30), fill only
        rect#stroked (100, 100, 40, 40), stroke-width 10 (ink 95..145)
        text#label   declared (200, 40, 60, 20), ink (198, 36, 66, 26)
        g#group      declared (300, 200, 20, 20), child ink (300, 200, 40, 40)
        defs > circle#tpl  r=50 at (200, 150), not rendered
        use#inst     href="#tpl"
        circle#direct r=50 at (200, 150), rendered
    """
    document, root = make_document()
    root.bbox = Box(10, 20, 330, 220)
    root.ink = Box(10, 20, 330, 220)
    root.add(FakeElement("rect", {"id": "plain"}, bbox=Box(10, 20, 50, 30), ink=Box(10, 20, 50, 30)))
    root.add(
        FakeElement(
            "rect",
            {"id": "stroked"},
            bbox=Box(100, 100, 40, 40),
            style={"stroke": "rgb(0, 0, 0)", "stroke-width": "10px"},
            ink=Box(95, 95, 50, 50),
        )
    )
    root.add(
        FakeElement(
            "text",
            {"id": "label"},
            bbox=Box(200, 40, 60, 20),
            ink=Box(198, 36, 66, 26),
        )
    )
    group = root.add(
        FakeElement("g", {"id": "group"}, bbox=Box(300, 200, 20, 20), ink=Box(300, 200, 40, 40))
    )
    group.add(FakeElement("rect", bbox=Box(300, 200, 40, 40), ink=Box(300, 200, 40, 40)))
    defs = root.add(FakeElement("defs", rendered=False))
    defs.add(
        FakeElement(
            "circle",
            {"id": "tpl"},
            bbox=Box(150, 100, 100, 100),
            rendered=False,
        )
    )
    root.add(FakeElement("use", {"id": "inst", "href": "#tpl"}, ink=Box(150, 100, 100, 100)))
    root.add(
        FakeElement("circle", {"id": "direct"}, bbox=Box(150, 100, 100, 100), ink=Box(150, 100, 100, 100))
    )
    return FakeEnvironment(document), root


@pytest.fixture
def env(scene: tuple[FakeEnvironment, FakeElement]) -> FakeEnvironment:
    return scene[0]


@pytest.fixture
def root(scene: tuple[FakeEnvironment, FakeElement]) -> FakeElement:
    return scene[1]


def _chromium_available() -> bool:
    try:
        from playwright.sync_api import sync_playwright

        with sync_playwright() as pw:
            browser = pw.chromium.launch()
            browser.close()
        return True
    except Exception:
        return False


@pytest.fixture(scope="session")
def chromium() -> bool:
    if not _chromium_available():
        pytest.skip("Playwright Chromium is not installed")
    return True
