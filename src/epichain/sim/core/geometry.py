"""Basal membrane curves.

Arc length 0 sits at the point of the curve nearest the origin and increases
toward +x there. Normals point into the tissue and tangents point toward
increasing arc length, so for every geometry ``tangent == normal.perpendicular()``.
"""

from __future__ import annotations

import bisect
import logging
import math
from typing import List

from ..utils.vector import UP, Vec2, clamp_value

logger = logging.getLogger(__name__)

CIRCLE_TOLERANCE = 1e-10
DEFAULT_ELLIPSE_SAMPLES = 360
_DEGENERATE_SEGMENT_SQ = 1e-10


def _sign(value: float) -> float:
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


class BasalGeometry:
    kind = "abstract"

    def __init__(self, curvature_1: float, curvature_2: float, perimeter: float):
        self.curvature_1 = curvature_1
        self.curvature_2 = curvature_2
        self.perimeter = perimeter

    @property
    def is_closed(self) -> bool:
        return math.isfinite(self.perimeter)

    def project(self, point: Vec2) -> Vec2:
        raise NotImplementedError

    def arc_length(self, point: Vec2) -> float:
        raise NotImplementedError

    def point_at_arc_length(self, arc_length: float) -> Vec2:
        raise NotImplementedError

    def normal(self, point: Vec2) -> Vec2:
        raise NotImplementedError

    def tangent(self, point: Vec2) -> Vec2:
        return self.normal(point).perpendicular()

    def to_cartesian(self, arc_length: float, height: float) -> Vec2:
        base = self.point_at_arc_length(arc_length)
        return base + self.normal(base) * height

    def signed_height(self, point: Vec2) -> float:
        base = self.project(point)
        return Vec2.dot(point - base, self.normal(base))

    def wrap_arc_delta(self, delta: float) -> float:
        """Map an arc-length difference into [-P/2, P/2) on closed curves."""
        if not self.is_closed or self.perimeter <= 0:
            return delta
        half = 0.5 * self.perimeter
        return (delta + half) % self.perimeter - half

    def __repr__(self) -> str:
        return f"{type(self).__name__}(k1={self.curvature_1!r}, k2={self.curvature_2!r})"


class StraightLineGeometry(BasalGeometry):
    kind = "line"

    def __init__(self) -> None:
        super().__init__(0.0, 0.0, math.inf)

    def project(self, point: Vec2) -> Vec2:
        return Vec2(point.x, 0.0)

    def arc_length(self, point: Vec2) -> float:
        return point.x

    def point_at_arc_length(self, arc_length: float) -> Vec2:
        return Vec2(arc_length, 0.0)

    def normal(self, point: Vec2) -> Vec2:
        return UP


class CircleGeometry(BasalGeometry):
    kind = "circle"

    def __init__(self, curvature_1: float, curvature_2: float):
        self.radius = abs(1.0 / curvature_1)
        super().__init__(curvature_1, curvature_2, 2.0 * math.pi * self.radius)
        # +1 when the tissue sits outside the circle, -1 when inside
        self.direction = -_sign(curvature_2)
        self.center = Vec2(0.0, 1.0 / curvature_2)

    def project(self, point: Vec2) -> Vec2:
        rel = point - self.center
        if rel.length_squared() < 1e-20:
            return self.point_at_arc_length(0.0)
        return self.center + rel.with_length(self.radius)

    def arc_length(self, point: Vec2) -> float:
        rel = point - self.center
        return math.atan2(rel.x, self.direction * rel.y) * self.radius

    def point_at_arc_length(self, arc_length: float) -> Vec2:
        theta = arc_length / self.radius
        return self.center + Vec2(math.sin(theta), self.direction * math.cos(theta)) * self.radius

    def normal(self, point: Vec2) -> Vec2:
        rel = point - self.center
        if rel.length_squared() < 1e-20:
            return UP
        return rel.normalized() * self.direction


class EllipseGeometry(BasalGeometry):
    """Ellipse discretised into a fixed number of boundary samples.

    Projection snaps to the nearest sample and refines on its two neighbouring
    chords; ``arc_length`` then reports the nearest sample's cumulative length.
    """

    kind = "ellipse"

    def __init__(self, curvature_1: float, curvature_2: float, samples: int = DEFAULT_ELLIPSE_SAMPLES):
        self.semi_axis_a = abs(1.0 / curvature_1)
        self.semi_axis_b = abs(1.0 / curvature_2)
        self.direction = -_sign(curvature_2)
        self.center = Vec2(0.0, 1.0 / curvature_2)
        self.samples = max(3, int(samples))

        self._thetas: List[float] = []
        self._positions: List[Vec2] = []
        self._normals: List[Vec2] = []
        self._arcs: List[float] = []
        self._build_samples()
        super().__init__(curvature_1, curvature_2, self._arcs[-1])

    def _build_samples(self) -> None:
        a = self.semi_axis_a
        b = self.semi_axis_b
        a_sq = a * a
        b_sq = b * b
        total = 0.0
        previous: Vec2 | None = None
        for i in range(self.samples + 1):
            theta = 2.0 * math.pi * i / self.samples
            rel = Vec2(a * math.sin(theta), self.direction * b * math.cos(theta))
            position = self.center + rel
            if previous is not None:
                total += position.distance_to(previous)
            self._thetas.append(theta)
            self._positions.append(position)
            self._normals.append(Vec2(rel.x / a_sq, rel.y / b_sq).normalized() * self.direction)
            self._arcs.append(total)
            previous = position

    def _nearest_index(self, point: Vec2) -> int:
        best_index = 0
        best_dist = math.inf
        # last sample duplicates the first
        for i in range(self.samples):
            dist = point.distance_squared_to(self._positions[i])
            if dist < best_dist:
                best_dist = dist
                best_index = i
        return best_index

    @staticmethod
    def _project_on_segment(point: Vec2, start: Vec2, end: Vec2) -> Vec2:
        segment = end - start
        length_sq = segment.length_squared()
        if length_sq < _DEGENERATE_SEGMENT_SQ:
            return start
        t = clamp_value(Vec2.dot(point - start, segment) / length_sq, 0.0, 1.0)
        return start + segment * t

    def _locate(self, arc_length: float) -> tuple[int, float]:
        wrapped = arc_length % self.perimeter if self.perimeter > 0 else 0.0
        index = bisect.bisect_right(self._arcs, wrapped) - 1
        index = int(clamp_value(index, 0, self.samples - 1))
        span = self._arcs[index + 1] - self._arcs[index]
        t = (wrapped - self._arcs[index]) / span if span > 0 else 0.0
        return index, t

    def project(self, point: Vec2) -> Vec2:
        index = self._nearest_index(point)
        center = self._positions[index]
        left = self._positions[(index - 1) % self.samples]
        right = self._positions[(index + 1) % self.samples]
        on_left = self._project_on_segment(point, left, center)
        on_right = self._project_on_segment(point, center, right)
        if point.distance_squared_to(on_left) <= point.distance_squared_to(on_right):
            return on_left
        return on_right

    def arc_length(self, point: Vec2) -> float:
        return self._arcs[self._nearest_index(self.project(point))]

    def point_at_arc_length(self, arc_length: float) -> Vec2:
        index, t = self._locate(arc_length)
        return Vec2.lerp(self._positions[index], self._positions[index + 1], t)

    def normal(self, point: Vec2) -> Vec2:
        return self._normals[self._nearest_index(point)]

    def to_cartesian(self, arc_length: float, height: float) -> Vec2:
        index, t = self._locate(arc_length)
        base = Vec2.lerp(self._positions[index], self._positions[index + 1], t)
        normal = Vec2.lerp(self._normals[index], self._normals[index + 1], t).normalized()
        return base + normal * height


def create_basal_geometry(
    curvature_1: float,
    curvature_2: float,
    samples: int = DEFAULT_ELLIPSE_SAMPLES,
) -> BasalGeometry:
    if curvature_1 == 0 and curvature_2 == 0:
        return StraightLineGeometry()
    if curvature_1 == 0 or curvature_2 == 0 or not (math.isfinite(curvature_1) and math.isfinite(curvature_2)):
        logger.warning(
            "Degenerate curvatures (%r, %r); falling back to a straight basal line",
            curvature_1,
            curvature_2,
        )
        return StraightLineGeometry()
    if abs(curvature_1 - curvature_2) < CIRCLE_TOLERANCE:
        return CircleGeometry(curvature_1, curvature_2)
    return EllipseGeometry(curvature_1, curvature_2, samples)


def ramanujan_perimeter(a: float, b: float) -> float:
    if a == b:
        return 2.0 * math.pi * a
    h = ((a - b) / (a + b)) ** 2
    return math.pi * (a + b) * (1.0 + 3.0 * h / (10.0 + math.sqrt(4.0 - 3.0 * h)))


def ellipse_from_perimeter(perimeter: float, aspect_ratio: float) -> tuple[float, float]:
    """Curvatures of the ellipse with the given perimeter and b/a ratio.

    An aspect ratio of 0 means a straight line; its sign picks the side of the
    curve the tissue sits on.
    """
    if aspect_ratio == 0 or perimeter <= 0:
        return 0.0, 0.0
    sign = _sign(aspect_ratio)
    ratio = abs(aspect_ratio)
    scale = perimeter / ramanujan_perimeter(1.0, ratio)
    return sign / scale, sign / (scale * ratio)
