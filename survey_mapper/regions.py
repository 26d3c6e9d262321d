from __future__ import annotations

import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Optional

from .data_model import PlotRange, Task
from .geometry import Point

logger = logging.getLogger(__name__)

# Fewer vertices than this render as a dot or a line, not an area.
MIN_POLYGON_POINTS = 3


class DrawState(str, Enum):
    IDLE = "IDLE"
    DRAWING = "DRAWING"


def new_range_id(task: Task, *, now_ms: Optional[int] = None) -> str:
    base = str(int(time.time() * 1000) if now_ms is None else now_ms)
    taken = {r.id for r in task.ranges}
    rid, n = base, 1
    while rid in taken:
        rid = f"{base}-{n}"
        n += 1
    return rid


def prune_degenerate_ranges(task: Task, *, min_points: int = MIN_POLYGON_POINTS) -> Task:
    kept = tuple(r for r in task.ranges if len(r.points) >= min_points)
    if len(kept) == len(task.ranges):
        return task
    logger.info("Dropped %d degenerate range(s) from task %s", len(task.ranges) - len(kept), task.id)
    return replace(task, ranges=kept)


class RegionDrawer:
    """
    Freehand polygon state machine.

    IDLE -> start_draw -> DRAWING -> finish_draw -> IDLE. While DRAWING, points
    go to the last range of the task; a finished range is never reopened since
    the next start_draw appends a new one.
    """

    def __init__(self, *, drop_degenerate: bool = False) -> None:
        self.state = DrawState.IDLE
        self.drop_degenerate = drop_degenerate

    @property
    def is_drawing(self) -> bool:
        return self.state == DrawState.DRAWING

    def start_draw(self, task: Task, *, now_ms: Optional[int] = None) -> Task:
        rng = PlotRange(id=new_range_id(task, now_ms=now_ms))
        self.state = DrawState.DRAWING
        return replace(task, ranges=task.ranges + (rng,))

    def add_point(self, task: Task, point: Point) -> Task:
        if self.state != DrawState.DRAWING:
            logger.debug("add_point ignored: not drawing")
            return task
        if not task.ranges:
            logger.debug("add_point ignored: task %s has no open range", task.id)
            return task
        last = task.ranges[-1]
        # not clamped: vertices may fall outside the image
        last = replace(last, points=last.points + (Point(float(point.x), float(point.y)),))
        return replace(task, ranges=task.ranges[:-1] + (last,))

    def finish_draw(self) -> None:
        self.state = DrawState.IDLE

    def finish_and_tidy(self, task: Task) -> Task:
        """finish_draw, then drop degenerate ranges when configured to."""
        self.finish_draw()
        if self.drop_degenerate:
            return prune_degenerate_ranges(task)
        return task
