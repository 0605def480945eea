"""Target resolution: selector/handle -> anchor element, root and measured content."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from svg_visual_bbox.environment import ElementRef, Environment
from svg_visual_bbox.exceptions import NoCoordinateRootError, TargetNotFoundError

logger = logging.getLogger(__name__)

# Chains of <use> longer than this are treated as cycles.
MAX_REFERENCE_DEPTH = 32


@dataclass(frozen=True)
class ResolvedTarget:
    """A target bound to concrete elements.

    Attributes:
        element: Node the overlay and on-screen position anchor to.
        root: <svg> whose user space all boxes are expressed in.
        measured_element: Node whose declared geometry is queried. Differs
            from ``element`` only for reference instances (<use>), where it
            is the referenced template content.
    """

    element: ElementRef
    root: ElementRef
    measured_element: ElementRef

    @property
    def is_indirect(self) -> bool:
        return self.measured_element is not self.element


def resolve(env: Environment, target: Any) -> ResolvedTarget:
    """Resolve a selector string or element handle.

    Raises:
        TargetNotFoundError: the selector matches nothing or the handle is None.
        NoCoordinateRootError: the element has no <svg> ancestor.
    """
    if target is None:
        raise TargetNotFoundError(target)
    if isinstance(target, str):
        selector = target.strip()
        if not selector:
            raise TargetNotFoundError(target)
        element = env.query(selector)
        if element is None:
            raise TargetNotFoundError(target, {"selector": selector})
    else:
        element = target

    root = find_root(env, element)
    if root is None:
        raise NoCoordinateRootError(target, {"tag": env.tag_name(element)})

    measured = follow_references(env, element)
    if measured is not element:
        logger.debug(
            "Measuring <%s> through reference from <%s>",
            env.tag_name(measured),
            env.tag_name(element),
        )
    return ResolvedTarget(element=element, root=root, measured_element=measured)


def find_root(env: Environment, element: ElementRef) -> ElementRef | None:
    """Nearest <svg> ancestor; an outermost <svg> is its own root."""
    node = env.parent(element)
    while node is not None:
        if env.tag_name(node).lower() == "svg":
            return node
        node = env.parent(node)
    if env.tag_name(element).lower() == "svg":
        return element
    return None


def follow_references(env: Environment, element: ElementRef) -> ElementRef:
    """Follow <use> references to the content they render.

    Returns ``element`` itself when it is not a <use> or its reference
    cannot be resolved.
    """
    current = element
    # Handles for one node need not compare equal, so cycles are tracked by id.
    seen_ids = {env.get_attribute(element, "id")} - {None}
    for _ in range(MAX_REFERENCE_DEPTH):
        if env.tag_name(current).lower() != "use":
            return current
        ref_id = _fragment_id(env.href_of(current))
        referenced = env.element_by_id(ref_id) if ref_id else None
        if referenced is None:
            logger.warning(
                "Unresolvable reference %r on <use>; measuring the instance itself",
                env.href_of(current),
            )
            return element
        if ref_id in seen_ids:
            logger.warning("Reference cycle through #%s; measuring the instance itself", ref_id)
            return element
        seen_ids.add(ref_id)
        current = referenced
    logger.warning("Reference chain deeper than %d; measuring the instance itself", MAX_REFERENCE_DEPTH)
    return element


def _fragment_id(href: str | None) -> str | None:
    if not href:
        return None
    href = href.strip()
    if "#" not in href:
        return None
    # Only same-document references are followed.
    prefix, _, fragment = href.partition("#")
    if prefix:
        return None
    return fragment or None
