"""Font readiness gate.

Text metrics depend on fonts that may still be loading. Every measurement
that can involve text waits here first. A timeout only logs a warning and
measurement continues with the metrics currently available.
"""

from __future__ import annotations

import logging

from svg_visual_bbox.environment import Environment

logger = logging.getLogger(__name__)

DEFAULT_FONT_TIMEOUT_MS = 8000


def wait_for_fonts(env: Environment, timeout_ms: float | None = DEFAULT_FONT_TIMEOUT_MS) -> None:
    """Wait until the environment's fonts are ready or ``timeout_ms`` elapses.

    Args:
        env: Rendering environment whose document fonts to wait for.
        timeout_ms: Maximum wait in milliseconds. None or <= 0 waits fully.
    """
    limit = None if timeout_ms is None or timeout_ms <= 0 else float(timeout_ms)
    ready = env.wait_for_fonts(limit)
    if not ready:
        logger.warning(
            "Fonts not ready after %.0f ms; measuring with current metrics", limit or 0
        )
    else:
        logger.debug("Fonts ready")
