from __future__ import annotations

import math

import pytest
from pytest import approx

from epichain.sim.utils.vector import ZERO, Vec2, clamp_value


def test_vec2_is_immutable_and_slotted():
    v = Vec2(1.0, 2.0)
    assert not hasattr(v, "__dict__")
    with pytest.raises(AttributeError):
        v.x = 3.0  # type: ignore[misc]


def test_arithmetic_returns_new_values():
    a = Vec2(1.0, 2.0)
    b = Vec2(3.0, -1.0)
    assert a + b == Vec2(4.0, 1.0)
    assert a - b == Vec2(-2.0, 3.0)
    assert -a == Vec2(-1.0, -2.0)
    assert a * 2.0 == Vec2(2.0, 4.0)
    assert 2.0 * a == Vec2(2.0, 4.0)
    assert b / 2.0 == Vec2(1.5, -0.5)
    assert a == Vec2(1.0, 2.0)


def test_normalized_handles_zero_vector():
    assert ZERO.normalized() == ZERO
    assert Vec2(3.0, 4.0).normalized().length() == approx(1.0)
    assert Vec2(0.0, 0.0).with_length(5.0) == ZERO


def test_dot_cross_and_distance():
    a = Vec2(1.0, 0.0)
    b = Vec2(0.0, 2.0)
    assert Vec2.dot(a, b) == 0.0
    assert Vec2.cross(a, b) == approx(2.0)
    assert a.distance_to(b) == approx(math.sqrt(5.0))


def test_perpendicular_is_clockwise_quarter_turn():
    assert Vec2(0.0, 1.0).perpendicular() == Vec2(1.0, 0.0)
    rotated = Vec2(1.0, 0.0).rotated(math.pi / 2)
    assert rotated.x == approx(0.0, abs=1e-12)
    assert rotated.y == approx(1.0)


def test_clamp_helpers():
    assert Vec2(3.0, 4.0).clamp_length(2.5).length() == approx(2.5)
    assert Vec2(0.3, 0.4).clamp_length(1.0) == Vec2(0.3, 0.4)
    assert clamp_value(5.0, 0.0, 1.0) == 1.0
    assert not Vec2(math.nan, 0.0).is_finite()
