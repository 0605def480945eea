"""Unit tests for svg_visual_bbox.geometry.

Tests cover Box invariants, viewBox parsing, affine matrices, union and the
root user space <-> screen mapping (identity, negative origin, non-uniform
scale, padding).
"""

import pytest

from svg_visual_bbox.exceptions import EmptyInputError
from svg_visual_bbox.geometry import (
    Box,
    CoordinateSpace,
    LogicalViewport,
    Matrix,
    format_number,
    is_finite_box,
    scale_for,
    to_local,
    to_screen,
    union_boxes,
)

SCREEN = CoordinateSpace.SCREEN


class TestBox:
    """Tests for the Box value object."""

    def test_negative_size_rejected(self) -> None:
        """Constructing a box with negative width raises ValueError."""
        with pytest.raises(ValueError, match="non-negative"):
            Box(0, 0, -1, 5)

    def test_zero_size_is_degenerate(self) -> None:
        """A zero-height box is valid but degenerate."""
        box = Box(3, 4, 10, 0)
        assert box.is_degenerate
        assert box.area == 0

    def test_edges(self) -> None:
        """right and bottom are derived from origin and size."""
        box = Box(10, 20, 30, 40)
        assert (box.right, box.bottom) == (40, 60)

    def test_expand_uniform(self) -> None:
        """A single argument grows every side."""
        assert Box(10, 10, 10, 10).expand(5) == Box(5, 5, 20, 20)

    def test_expand_per_side(self) -> None:
        """Per-side growth keeps the coordinate space."""
        box = Box(0, 0, 10, 10, SCREEN).expand(1, 2, 3, 4)
        assert box == Box(-1, -2, 14, 16, SCREEN)

    def test_intersect(self) -> None:
        """Overlapping boxes intersect; disjoint boxes give None."""
        a = Box(0, 0, 10, 10)
        assert a.intersect(Box(5, 5, 10, 10)) == Box(5, 5, 5, 5)
        assert a.intersect(Box(20, 20, 5, 5)) is None

    def test_to_dict(self) -> None:
        assert Box(1, 2, 3, 4).to_dict() == {"x": 1, "y": 2, "width": 3, "height": 4}

    def test_is_finite_box(self) -> None:
        assert is_finite_box(Box(0, 0, 1, 1))
        assert not is_finite_box(Box(float("nan"), 0, 1, 1))
        assert not is_finite_box(None)


class TestLogicalViewport:
    """Tests for viewBox parsing and formatting."""

    @pytest.mark.parametrize(
        "value",
        ["0 0 400 300", "0,0,400,300", "  0, 0  400 ,300 "],
    )
    def test_parse_separators(self, value: str) -> None:
        """Comma and whitespace separators are both accepted."""
        assert LogicalViewport.parse(value) == LogicalViewport(0, 0, 400, 300)

    def test_parse_negative_origin(self) -> None:
        assert LogicalViewport.parse("-200 -150 400 300") == LogicalViewport(-200, -150, 400, 300)

    @pytest.mark.parametrize("value", [None, "", "0 0 400", "a b c d", "0 0 0 300", "0 0 400 -1"])
    def test_parse_unusable(self, value: str | None) -> None:
        """Missing, malformed or non-positive viewBoxes parse to None."""
        assert LogicalViewport.parse(value) is None

    def test_to_attribute(self) -> None:
        """Serialised values drop trailing zeros."""
        vp = LogicalViewport(-200.0, -150.5, 400.0, 300.125)
        assert vp.to_attribute() == "-200 -150.5 400 300.125"

    def test_format_number_negative_zero(self) -> None:
        assert format_number(-0.0000001) == "0"


class TestMatrix:
    """Tests for the affine Matrix helper."""

    def test_identity_leaves_box(self) -> None:
        box = Box(1, 2, 3, 4)
        assert Matrix().transform_box(box) is box

    def test_multiply_applies_right_operand_first(self) -> None:
        """translate x scale maps a point by scaling, then translating."""
        m = Matrix.translate(10, 20).multiply(Matrix.scale(2))
        assert m.apply(1, 1) == (12, 22)

    def test_transform_box_rotation(self) -> None:
        """A 90 degree rotation yields the axis-aligned bounds of the corners."""
        rotate = Matrix(0, 1, -1, 0, 0, 0)
        box = rotate.transform_box(Box(0, 0, 10, 20))
        assert box == Box(-20, 0, 20, 10)


class TestUnion:
    """Tests for union_boxes."""

    def test_union(self) -> None:
        """{0,0,10,10} u {5,5,10,10} == {0,0,15,15}."""
        assert union_boxes([Box(0, 0, 10, 10), Box(5, 5, 10, 10)]) == Box(0, 0, 15, 15)

    def test_union_single(self) -> None:
        assert union_boxes([Box(1, 2, 3, 4)]) == Box(1, 2, 3, 4)

    def test_union_empty_raises(self) -> None:
        with pytest.raises(EmptyInputError):
            union_boxes([])

    def test_union_mixed_spaces_raises(self) -> None:
        with pytest.raises(ValueError, match="different spaces"):
            union_boxes([Box(0, 0, 1, 1), Box(0, 0, 1, 1, SCREEN)])


class TestToScreen:
    """Tests for the root user space -> screen mapping."""

    root_rect = Box(100, 50, 800, 600, SCREEN)

    def test_scaled_mapping_with_padding(self) -> None:
        """viewBox 400x300 at 800x600 doubles sizes; padding adds 2*4 px."""
        vp = LogicalViewport(0, 0, 400, 300)
        screen = to_screen(Box(150, 100, 100, 80), self.root_rect, vp, padding=4)
        assert screen.space is SCREEN
        assert screen.width == pytest.approx(208, abs=1)
        assert screen.height == pytest.approx(168, abs=1)
        assert screen.x == pytest.approx(100 + 300 - 4)
        assert screen.y == pytest.approx(50 + 200 - 4)

    def test_absent_viewport_is_identity(self) -> None:
        """Without a viewBox one user unit is one pixel."""
        rect = Box(10, 20, 400, 300, SCREEN)
        assert scale_for(rect, None) == (1.0, 1.0)
        assert to_screen(Box(5, 5, 10, 10), rect, None) == Box(15, 25, 10, 10, SCREEN)

    def test_negative_origin_matches_positive_equivalent(self) -> None:
        """Shifting content and viewBox together gives the same screen box."""
        positive = to_screen(
            Box(150, 100, 100, 80), self.root_rect, LogicalViewport(0, 0, 400, 300), 4
        )
        negative = to_screen(
            Box(-50, -50, 100, 80), self.root_rect, LogicalViewport(-200, -150, 400, 300), 4
        )
        assert negative == positive

    def test_non_uniform_scale(self) -> None:
        """Aspect mismatch gives different x and y scales."""
        rect = Box(0, 0, 800, 300, SCREEN)
        vp = LogicalViewport(0, 0, 400, 300)
        assert scale_for(rect, vp) == (2.0, 1.0)
        assert to_screen(Box(10, 10, 10, 10), rect, vp) == Box(20, 10, 20, 10, SCREEN)

    def test_screen_box_rejected(self) -> None:
        with pytest.raises(ValueError, match="LOCAL"):
            to_screen(Box(0, 0, 1, 1, SCREEN), self.root_rect, None)

    def test_negative_padding_rejected(self) -> None:
        """Padding larger than half the box would give a negative size."""
        with pytest.raises(ValueError, match="padding must be >= 0"):
            to_screen(Box(0, 0, 10, 10), self.root_rect, None, padding=-6)

    def test_to_local_inverts_to_screen(self) -> None:
        vp = LogicalViewport(-200, -150, 400, 300)
        local = Box(-10, 20, 30, 40)
        assert to_local(to_screen(local, self.root_rect, vp), self.root_rect, vp) == local
