from __future__ import annotations

import math
import uuid
from typing import Any, TypeVar

from .models import Point, Stroke

T = TypeVar("T")

MIN_BRUSH_SIZE = 1
MAX_BRUSH_SIZE = 24
DEFAULT_BRUSH_SIZE = 4
DEFAULT_COLOR = "#f55a42"
MAX_COLOR_LENGTH = 32


def new_stroke_id() -> str:
    return f"stroke_{uuid.uuid4().hex[:12]}"


def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def sanitize_points(raw_points: Any, width: float, height: float) -> list[Point]:
    """Drop points without finite x/y and clamp the rest to the canvas."""
    if not isinstance(raw_points, list):
        return []

    points: list[Point] = []
    for raw in raw_points:
        if not isinstance(raw, dict):
            continue
        x = _coerce_number(raw.get("x"))
        y = _coerce_number(raw.get("y"))
        if x is None or y is None:
            continue
        points.append(Point(x=_clamp(x, 0.0, float(width)), y=_clamp(y, 0.0, float(height))))
    return points


def sanitize_size(raw_size: Any) -> int:
    size = _coerce_number(raw_size)
    if not size:
        size = DEFAULT_BRUSH_SIZE
    return int(round(_clamp(size, MIN_BRUSH_SIZE, MAX_BRUSH_SIZE)))


def sanitize_color(raw_color: Any) -> str:
    if isinstance(raw_color, str):
        color = raw_color.strip()
        if color and len(color) <= MAX_COLOR_LENGTH:
            return color
    return DEFAULT_COLOR


def sanitize_stroke(raw: Any, width: float, height: float, stroke_id: str | None = None) -> Stroke | None:
    """Build a stroke from an untrusted descriptor.

    Returns None when a freehand stroke ends up with fewer than two usable
    points. Fill strokes never carry points.
    """
    data = raw if isinstance(raw, dict) else {}
    mode = "fill" if data.get("mode") == "fill" else "stroke"

    points: list[Point] = []
    if mode == "stroke":
        points = sanitize_points(data.get("points"), width, height)
        if len(points) < 2:
            return None

    if stroke_id is None:
        raw_id = data.get("id")
        stroke_id = raw_id if isinstance(raw_id, str) and raw_id else new_stroke_id()

    return Stroke(
        id=stroke_id,
        mode=mode,
        color=sanitize_color(data.get("color")),
        size=sanitize_size(data.get("size")),
        points=points,
    )


def append_bounded(items: list[T], item: T, limit: int) -> list[T]:
    """Append ``item`` and drop the oldest entries beyond ``limit`` (0 means unbounded)."""
    items.append(item)
    if limit > 0 and len(items) > limit:
        del items[: len(items) - limit]
    return items
