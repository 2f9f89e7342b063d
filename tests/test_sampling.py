import pytest

from graphplane.elements import Axes
from graphplane.expression import compile_safe
from graphplane.sampling import clip_line_to_axes, clip_point_to_axes, sample_curve, sample_function


def test_sample_function_drops_missing_values():
    points = sample_function(compile_safe('sqrt(x)'), -1.0, 1.0, 4)

    assert [x for x, _ in points] == pytest.approx([0.0, 0.5, 1.0])


def test_sample_curve_includes_both_ends():
    points = sample_curve((0.0, 0.0), (1.0, 1.0), (2.0, 0.0), 10)

    assert len(points) == 11
    assert points[0] == (0.0, 0.0)
    assert points[-1] == pytest.approx((2.0, 0.0))
    assert points[5] == pytest.approx((1.0, 0.5))


def test_clip_point_to_axes():
    assert clip_point_to_axes((7.0, -9.0), Axes()) == (5.0, -5.0)


@pytest.mark.parametrize(
    'kind, expected',
    [
        ('segment', ((0.0, 0.0), (1.0, 0.0))),
        ('ray', ((0.0, 0.0), (5.0, 0.0))),
        ('line', ((-5.0, 0.0), (5.0, 0.0))),
    ],
)
def test_clip_line_by_kind(kind, expected):
    entry, exit_ = clip_line_to_axes((0.0, 0.0), (1.0, 0.0), kind, Axes())

    assert entry == pytest.approx(expected[0])
    assert exit_ == pytest.approx(expected[1])


def test_clip_line_outside_view_or_degenerate():
    assert clip_line_to_axes((10.0, 10.0), (11.0, 11.0), 'segment', Axes()) is None
    assert clip_line_to_axes((1.0, 1.0), (1.0, 1.0), 'line', Axes()) is None
    assert clip_line_to_axes((0.0, 6.0), (1.0, 6.0), 'line', Axes()) is None


def test_clip_diagonal_line_to_corners():
    entry, exit_ = clip_line_to_axes((0.0, 0.0), (1.0, 1.0), 'line', Axes())

    assert entry == pytest.approx((-5.0, -5.0))
    assert exit_ == pytest.approx((5.0, 5.0))
