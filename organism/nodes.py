"""
creature_evolution module: organism/nodes.py

Segment shape primitives. A segment is either a circle or a rectangle; every
geometry helper here matches both variants and rejects anything else.
"""

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import Union


@dataclass
class Circle:
    radius: float


@dataclass
class Rectangle:
    length: float  # along the body's local y axis
    width: float   # along the body's local x axis


Shape = Union[Circle, Rectangle]


def shape_name(shape: Shape) -> str:
    if isinstance(shape, Circle):
        return "circle"
    if isinstance(shape, Rectangle):
        return "rectangle"
    raise TypeError(f"Unknown segment shape: {shape!r}")


def area(shape: Shape) -> float:
    if isinstance(shape, Circle):
        return math.pi * shape.radius * shape.radius
    if isinstance(shape, Rectangle):
        return shape.length * shape.width
    raise TypeError(f"Unknown segment shape: {shape!r}")


def half_extent(shape: Shape) -> float:
    """Distance from the centre to the segment end along its long axis."""
    if isinstance(shape, Circle):
        return shape.radius
    if isinstance(shape, Rectangle):
        return shape.length / 2
    raise TypeError(f"Unknown segment shape: {shape!r}")


def collision_radius(shape: Shape) -> float:
    """
    Radius of the circle proxy used for dynamic contacts.
    Rectangles use the mean of their half sides.
    """
    if isinstance(shape, Circle):
        return shape.radius
    if isinstance(shape, Rectangle):
        return (shape.length + shape.width) / 4
    raise TypeError(f"Unknown segment shape: {shape!r}")


def bounding_radius(shape: Shape) -> float:
    if isinstance(shape, Circle):
        return shape.radius
    if isinstance(shape, Rectangle):
        return math.hypot(shape.length, shape.width) / 2
    raise TypeError(f"Unknown segment shape: {shape!r}")


def end_anchor(shape: Shape, sign: float) -> tuple[float, float]:
    """Local attach point on the top (sign=-1) or bottom (sign=+1) end."""
    return (0.0, sign * half_extent(shape))
