from __future__ import annotations

import logging
import threading
from dataclasses import fields, replace
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from .data_model import (
    PHOTO_CATEGORIES, VIEWS, ProjectState, Task, TaskStatus,
)

logger = logging.getLogger(__name__)

TASK_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(Task))
_SEQUENCE_FIELDS = ("markers", "ranges")


def update(task: Task, partial: Mapping[str, Any]) -> Task:
    """
    Shallow-merge ``partial`` into ``task``.

    Each provided top-level field replaces the old value wholesale; omitted
    fields are untouched.
    """
    unknown = [k for k in partial if k not in TASK_FIELDS]
    if unknown:
        raise ValueError(f"Unknown task field(s): {', '.join(sorted(unknown))}")
    if "id" in partial and partial["id"] != task.id:
        raise ValueError("Task id cannot be changed")
    changes = dict(partial)
    for k in _SEQUENCE_FIELDS:
        if k in changes:
            changes[k] = tuple(changes[k])
    if "status" in changes:
        changes["status"] = TaskStatus(changes["status"])
    return replace(task, **changes)


# ---------- form helpers (return partials for update) ----------

def toggle_option(values: Iterable[str], option: str) -> Tuple[str, ...]:
    values = tuple(values)
    if option in values:
        return tuple(v for v in values if v != option)
    return values + (option,)


def toggle_irrigation(task: Task, option: str) -> dict:
    fd = task.form_data
    return {"form_data": replace(fd, irrigation_methods=toggle_option(fd.irrigation_methods, option))}


def toggle_land_status(task: Task, option: str) -> dict:
    fd = task.form_data
    return {"form_data": replace(fd, land_status=toggle_option(fd.land_status, option))}


def set_other_status(task: Task, text: str) -> dict:
    return {"form_data": replace(task.form_data, other_status=text)}


def add_photos(task: Task, category: str, uris: Iterable[str]) -> dict:
    if category not in PHOTO_CATEGORIES:
        raise ValueError(f"Unknown photo category: {category}")
    photos = task.form_data.photos
    current = getattr(photos, category)
    photos = replace(photos, **{category: current + tuple(uris)})
    return {"form_data": replace(task.form_data, photos=photos)}


def mark_editing() -> dict:
    return {"status": TaskStatus.EDITING}


def mark_completed() -> dict:
    return {"status": TaskStatus.COMPLETED}


# ---------- project store ----------

Listener = Callable[[ProjectState], None]


class ProjectStore:
    """
    Owns the project state. Every change replaces the state value under one
    lock, then notifies listeners (autosave, UI refresh) outside it.
    """

    def __init__(self, state: Optional[ProjectState] = None) -> None:
        self._state = state or ProjectState()
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ProjectState:
        return self._state

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        self._listeners.append(fn)

        def _unsubscribe() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)
        return _unsubscribe

    def _commit(self, mutate: Callable[[ProjectState], ProjectState]) -> ProjectState:
        with self._lock:
            new_state = mutate(self._state)
            if new_state is self._state:
                return new_state
            self._state = new_state
        for fn in list(self._listeners):
            fn(new_state)
        return new_state

    # tasks

    def get_task(self, task_id: Optional[str]) -> Optional[Task]:
        for t in self._state.tasks:
            if t.id == task_id:
                return t
        return None

    @property
    def current_task(self) -> Optional[Task]:
        return self.get_task(self._state.current_task_id)

    def update_task(self, task_id: str, partial: Mapping[str, Any]) -> Optional[Task]:
        updated: List[Task] = []

        def _mutate(st: ProjectState) -> ProjectState:
            tasks = []
            for t in st.tasks:
                if t.id == task_id:
                    t = update(t, partial)
                    updated.append(t)
                tasks.append(t)
            if not updated:
                logger.debug("update_task: no task %s", task_id)
                return st
            return replace(st, tasks=tuple(tasks))

        self._commit(_mutate)
        return updated[0] if updated else None

    def update_current(self, partial: Mapping[str, Any]) -> Optional[Task]:
        if self._state.current_task_id is None:
            return None
        return self.update_task(self._state.current_task_id, partial)

    def add_tasks(self, tasks: Iterable[Task]) -> int:
        new = tuple(tasks)
        if new:
            self._commit(lambda st: replace(st, tasks=st.tasks + new))
        return len(new)

    def clear_tasks(self) -> None:
        self._commit(lambda st: replace(st, tasks=(), current_task_id=None,
                                        view="list" if st.view == "editor" else st.view))

    # navigation

    def select_task(self, task_id: str) -> None:
        if self.get_task(task_id) is None:
            raise KeyError(task_id)
        self._commit(lambda st: replace(st, current_task_id=task_id, view="editor", is_editing_map=True))

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        cur = self._state.current_task_id if view == "editor" else None
        self._commit(lambda st: replace(st, view=view, current_task_id=cur))

    def toggle_map_edit(self) -> bool:
        st = self._commit(lambda st: replace(st, is_editing_map=not st.is_editing_map))
        return st.is_editing_map

    def set_project_name(self, name: str) -> None:
        self._commit(lambda st: replace(st, project_name=name))

    def replace_state(self, state: ProjectState) -> None:
        """Swap in a whole project (import). Either fully applied or not at all."""
        self._commit(lambda _st: state)

    def completed_count(self) -> int:
        return sum(1 for t in self._state.tasks if t.status == TaskStatus.COMPLETED)

    def search(self, text: str) -> List[Task]:
        text = (text or "").strip()
        return [t for t in self._state.tasks if text in t.code or text in t.owner]
