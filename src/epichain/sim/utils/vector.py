from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vec2:
    """Immutable 2D vector. Every operation returns a new value."""

    x: float
    y: float

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalized(self) -> "Vec2":
        mag_sq = self.length_squared()
        if mag_sq < 1e-20:
            return ZERO
        inv = 1.0 / math.sqrt(mag_sq)
        return Vec2(self.x * inv, self.y * inv)

    def with_length(self, length: float) -> "Vec2":
        return self.normalized() * length

    def clamp_length(self, max_length: float) -> "Vec2":
        if max_length <= 0:
            return ZERO
        mag_sq = self.length_squared()
        if mag_sq <= max_length * max_length:
            return self
        scale = max_length / math.sqrt(mag_sq)
        return Vec2(self.x * scale, self.y * scale)

    def __add__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.y - other.y)

    def __neg__(self) -> "Vec2":
        return Vec2(-self.x, -self.y)

    def __mul__(self, scalar: float) -> "Vec2":
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vec2":
        return Vec2(self.x / scalar, self.y / scalar)

    def distance_squared_to(self, other: "Vec2") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance_to(self, other: "Vec2") -> float:
        return math.sqrt(self.distance_squared_to(other))

    def rotated(self, angle: float) -> "Vec2":
        c = math.cos(angle)
        s = math.sin(angle)
        return Vec2(self.x * c - self.y * s, self.x * s + self.y * c)

    def perpendicular(self) -> "Vec2":
        # quarter turn clockwise
        return Vec2(self.y, -self.x)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    @staticmethod
    def dot(a: "Vec2", b: "Vec2") -> float:
        return a.x * b.x + a.y * b.y

    @staticmethod
    def cross(a: "Vec2", b: "Vec2") -> float:
        return a.x * b.y - a.y * b.x

    @staticmethod
    def lerp(a: "Vec2", b: "Vec2", t: float) -> "Vec2":
        return Vec2(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


ZERO = Vec2(0.0, 0.0)
UP = Vec2(0.0, 1.0)
