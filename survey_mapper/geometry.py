from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

# Normalized space is a percentage of the displayed image width/height.
NORM_MIN = 0.0
NORM_MAX = 100.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class ContainerRect:
    """On-screen bounding rectangle of the rendered image, in device pixels."""
    left: float
    top: float
    width: float
    height: float

    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0


def to_normalized(device_point: Tuple[float, float], rect: ContainerRect) -> Point:
    if not rect.is_valid():
        raise ValueError(f"Container rect has no area: {rect}")
    dx, dy = device_point
    x = (float(dx) - rect.left) / rect.width * 100.0
    y = (float(dy) - rect.top) / rect.height * 100.0
    return Point(x, y)


def to_device(point: Point, rect: ContainerRect) -> Tuple[float, float]:
    return (rect.left + point.x / 100.0 * rect.width,
            rect.top + point.y / 100.0 * rect.height)


def clamp(point: Point) -> Point:
    x = max(NORM_MIN, min(NORM_MAX, float(point.x)))
    y = max(NORM_MIN, min(NORM_MAX, float(point.y)))
    return Point(x, y)


def pointer_position(event: Any) -> Tuple[float, float]:
    """
    Uniform (client_x, client_y) for a mouse or touch event.

    Touch events carry a ``touches`` sequence; the first contact is used.
    Tk events only expose root coordinates, which is what the container rect
    is measured in as well.
    """
    touches = getattr(event, "touches", None)
    if touches:
        event = touches[0]
    for xa, ya in (("client_x", "client_y"), ("x_root", "y_root")):
        x = getattr(event, xa, None)
        y = getattr(event, ya, None)
        if x is not None and y is not None:
            return float(x), float(y)
    raise ValueError(f"Event carries no pointer position: {event!r}")


def distance_sq(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return (a[0] - b[0]) * (a[0] - b[0]) + (a[1] - b[1]) * (a[1] - b[1])
