from __future__ import annotations

import logging
import time
from typing import List, Optional

from .data_model import DEFAULT_YEAR, InspectionData, Task, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "未知業主"


class BatchFormatError(ValueError):
    pass


def default_code(index: int) -> str:
    return f"P{index + 1:04d}"


def default_image(index: int) -> str:
    return f"https://picsum.photos/seed/{index}/1200/800"


def parse_task_lines(text: str, *, year: str = DEFAULT_YEAR, now_ms: Optional[int] = None) -> List[Task]:
    """
    One task per ``code,owner,imageUrl`` line. Missing columns fall back to
    generated defaults; blank lines are skipped. Extra commas stay in the URL.
    """
    if text is None:
        raise BatchFormatError("No task list given")
    stamp = int(time.time() * 1000) if now_ms is None else int(now_ms)
    tasks: List[Task] = []
    for raw in text.strip().splitlines():
        if not raw.strip():
            continue
        i = len(tasks)
        cols = [c.strip() for c in raw.split(",", 2)]
        cols += [""] * (3 - len(cols))
        code, owner, image = cols
        tasks.append(Task(
            id=f"task-{stamp}-{i}",
            code=code or default_code(i),
            year=year,
            owner=owner or DEFAULT_OWNER,
            base_image=image or default_image(i),
            status=TaskStatus.PENDING,
            form_data=InspectionData(),
        ))
    logger.info("Parsed %d task(s) from batch list", len(tasks))
    return tasks
