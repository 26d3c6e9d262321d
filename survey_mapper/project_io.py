from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from .data_model import (
    DEFAULT_PROJECT_NAME, VIEWS, InspectionData, Marker, MarkerType, PhotoSet,
    PlotRange, ProjectState, Task, TaskStatus,
)
from .geometry import Point

logger = logging.getLogger(__name__)

PROJECT_SUFFIX = ".farmland"


class ProjectFormatError(ValueError):
    """The document is not a readable project file."""


# ---------- encode ----------

def point_to_dict(p: Point) -> Dict[str, float]:
    return {"x": p.x, "y": p.y}


def task_to_dict(t: Task) -> Dict[str, Any]:
    fd = t.form_data
    form: Dict[str, Any] = {
        "irrigationMethods": list(fd.irrigation_methods),
        "landStatus": list(fd.land_status),
        "photos": {
            "irrigation": list(fd.photos.irrigation),
            "land": list(fd.photos.land),
            "surrounding": list(fd.photos.surrounding),
        },
    }
    if fd.other_status is not None:
        form["otherStatus"] = fd.other_status
    return {
        "id": t.id,
        "code": t.code,
        "year": t.year,
        "owner": t.owner,
        "baseImage": t.base_image,
        "status": t.status.value,
        "markers": [{"id": m.id, "type": m.type.value, "x": m.x, "y": m.y} for m in t.markers],
        "ranges": [{"id": r.id, "points": [point_to_dict(p) for p in r.points]} for r in t.ranges],
        "formData": form,
    }


def project_to_dict(state: ProjectState) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "projectName": state.project_name,
        "tasks": [task_to_dict(t) for t in state.tasks],
        "view": state.view,
        "isEditingMap": state.is_editing_map,
    }
    if state.current_task_id is not None:
        out["currentTaskId"] = state.current_task_id
    return out


def dumps_project(state: ProjectState) -> str:
    return json.dumps(project_to_dict(state), ensure_ascii=False, allow_nan=False)


# ---------- decode ----------

def _req(d: Any, key: str, kind: Any, where: str) -> Any:
    if not isinstance(d, dict) or key not in d:
        raise ProjectFormatError(f"{where}: missing '{key}'")
    v = d[key]
    if kind is float:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ProjectFormatError(f"{where}.{key}: expected a number")
        if not math.isfinite(v):
            raise ProjectFormatError(f"{where}.{key}: expected a finite number")
        return float(v)
    if not isinstance(v, kind):
        names = "|".join(k.__name__ for k in kind) if isinstance(kind, tuple) else kind.__name__
        raise ProjectFormatError(f"{where}.{key}: expected {names}")
    return v


def _str_list(v: Any, where: str) -> tuple:
    if not isinstance(v, list) or not all(isinstance(s, str) for s in v):
        raise ProjectFormatError(f"{where}: expected a list of strings")
    return tuple(v)


def point_from_dict(d: Any, where: str) -> Point:
    return Point(_req(d, "x", float, where), _req(d, "y", float, where))


def _form_from_dict(d: Any, where: str) -> InspectionData:
    if not isinstance(d, dict):
        raise ProjectFormatError(f"{where}: expected an object")
    photos = _req(d, "photos", dict, where)
    other = d.get("otherStatus")
    if other is not None and not isinstance(other, str):
        raise ProjectFormatError(f"{where}.otherStatus: expected str")
    return InspectionData(
        irrigation_methods=_str_list(d.get("irrigationMethods", []), f"{where}.irrigationMethods"),
        land_status=_str_list(d.get("landStatus", []), f"{where}.landStatus"),
        other_status=other,
        photos=PhotoSet(
            irrigation=_str_list(photos.get("irrigation", []), f"{where}.photos.irrigation"),
            land=_str_list(photos.get("land", []), f"{where}.photos.land"),
            surrounding=_str_list(photos.get("surrounding", []), f"{where}.photos.surrounding"),
        ),
    )


def task_from_dict(d: Any, where: str = "task") -> Task:
    if not isinstance(d, dict):
        raise ProjectFormatError(f"{where}: expected an object")
    try:
        status = TaskStatus(_req(d, "status", str, where))
    except ValueError as e:
        raise ProjectFormatError(f"{where}.status: {e}") from e

    markers = []
    for i, md in enumerate(_req(d, "markers", list, where)):
        mw = f"{where}.markers[{i}]"
        try:
            mtype = MarkerType(_req(md, "type", str, mw))
        except ValueError as e:
            raise ProjectFormatError(f"{mw}.type: {e}") from e
        markers.append(Marker(id=_req(md, "id", str, mw), type=mtype,
                              x=_req(md, "x", float, mw), y=_req(md, "y", float, mw)))
    if len({m.id for m in markers}) != len(markers):
        raise ProjectFormatError(f"{where}.markers: duplicate marker id")

    ranges = []
    for i, rd in enumerate(_req(d, "ranges", list, where)):
        rw = f"{where}.ranges[{i}]"
        pts = tuple(point_from_dict(p, f"{rw}.points[{j}]")
                    for j, p in enumerate(_req(rd, "points", list, rw)))
        ranges.append(PlotRange(id=str(_req(rd, "id", (str, int), rw)), points=pts))

    return Task(
        id=_req(d, "id", str, where),
        code=_req(d, "code", str, where),
        year=str(_req(d, "year", (str, int), where)),
        owner=_req(d, "owner", str, where),
        base_image=_req(d, "baseImage", str, where),
        status=status,
        markers=tuple(markers),
        ranges=tuple(ranges),
        form_data=_form_from_dict(_req(d, "formData", dict, where), f"{where}.formData"),
    )


def project_from_dict(d: Any) -> ProjectState:
    if not isinstance(d, dict):
        raise ProjectFormatError("project: expected an object")
    tasks = tuple(task_from_dict(t, f"tasks[{i}]") for i, t in enumerate(_req(d, "tasks", list, "project")))
    if len({t.id for t in tasks}) != len(tasks):
        raise ProjectFormatError("project.tasks: duplicate task id")
    name = d.get("projectName", DEFAULT_PROJECT_NAME)
    if not isinstance(name, str):
        raise ProjectFormatError("project.projectName: expected str")
    view = d.get("view", "list")
    if view not in VIEWS:
        view = "list"
    editing = d.get("isEditingMap", True)
    if not isinstance(editing, bool):
        raise ProjectFormatError("project.isEditingMap: expected bool")
    current = d.get("currentTaskId")
    if current is not None and not any(t.id == current for t in tasks):
        current = None
    return ProjectState(
        project_name=name,
        tasks=tasks,
        view=view,
        current_task_id=current if isinstance(current, str) else None,
        is_editing_map=editing,
    )


def loads_project(text: str) -> ProjectState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProjectFormatError(f"Not valid JSON: {e}") from e
    return project_from_dict(data)


# ---------- files ----------

def export_filename(project_name: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{project_name}_{today.isoformat()}{PROJECT_SUFFIX}"


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name, dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def export_project(state: ProjectState, path: str) -> Path:
    p = Path(path)
    _atomic_write(p, dumps_project(state))
    logger.info("Exported %d task(s) to %s", len(state.tasks), p)
    return p


def import_project(path: str) -> ProjectState:
    """Read a project file; the imported view always starts on the task list."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ProjectFormatError(f"Cannot read {path}: {e}") from e
    state = loads_project(text)
    logger.info("Imported %d task(s) from %s", len(state.tasks), path)
    return ProjectState(
        project_name=state.project_name,
        tasks=state.tasks,
        view="list",
        current_task_id=state.current_task_id,
        is_editing_map=state.is_editing_map,
    )


# ---------- autosave ----------

def load_autosave(path: str) -> Optional[ProjectState]:
    p = Path(path)
    if not p.exists():
        return None
    try:
        return loads_project(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable autosave %s", p, exc_info=True)
        return None


def save_autosave(state: ProjectState, path: str) -> None:
    _atomic_write(Path(path), dumps_project(state))

