from __future__ import annotations

import logging
import secrets
import string
from dataclasses import replace
from typing import Callable, Iterable, Optional

from .data_model import MARKER_DEFAULT_POS, Marker, MarkerType, Task
from .geometry import Point, clamp

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LEN = 9


def new_id(taken: Iterable[str] = (), *, factory: Optional[Callable[[], str]] = None) -> str:
    """Short base-36 token not present in ``taken``."""
    taken = set(taken)
    make = factory or (lambda: "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LEN)))
    while True:
        candidate = make()
        if candidate not in taken:
            return candidate


def get_marker(task: Task, marker_id: str) -> Optional[Marker]:
    for m in task.markers:
        if m.id == marker_id:
            return m
    return None


def add_marker(task: Task, marker_type: MarkerType, *,
               id_factory: Optional[Callable[[], str]] = None) -> Task:
    mid = new_id((m.id for m in task.markers), factory=id_factory)
    marker = Marker(id=mid, type=MarkerType(marker_type),
                    x=MARKER_DEFAULT_POS.x, y=MARKER_DEFAULT_POS.y)
    return replace(task, markers=task.markers + (marker,))


def move_marker(task: Task, marker_id: str, point: Point) -> Task:
    if get_marker(task, marker_id) is None:
        logger.debug("move_marker: no marker %s in task %s", marker_id, task.id)
        return task
    p = clamp(point)
    markers = tuple(replace(m, x=p.x, y=p.y) if m.id == marker_id else m for m in task.markers)
    return replace(task, markers=markers)


def delete_marker(task: Task, marker_id: str) -> Task:
    markers = tuple(m for m in task.markers if m.id != marker_id)
    if len(markers) == len(task.markers):
        logger.debug("delete_marker: no marker %s in task %s", marker_id, task.id)
        return task
    return replace(task, markers=markers)
