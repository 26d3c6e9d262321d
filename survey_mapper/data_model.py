from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Literal, Mapping, Optional, Tuple

from .geometry import Point


class MarkerType(str, Enum):
    WELL = "WELL"
    INLET = "INLET"
    SERIES_INLET = "SERIES_INLET"
    SAMPLE = "SAMPLE"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    EDITING = "EDITING"
    COMPLETED = "COMPLETED"


View = Literal["list", "editor", "setup"]
VIEWS: Tuple[str, ...] = ("list", "editor", "setup")

MARKER_DEFAULT_POS = Point(50.0, 50.0)

IRRIGATION_OPTIONS: Tuple[str, ...] = ("地下水井", "灌溉溝渠", "地下水+灌溉溝渠")
LAND_STATUS_OTHER = "其他"
LAND_STATUS_OPTIONS: Tuple[str, ...] = ("農地可採樣", "建物", "難以採樣", "果樹", LAND_STATUS_OTHER)
PHOTO_CATEGORIES: Tuple[str, ...] = ("irrigation", "land", "surrounding")

DEFAULT_PROJECT_NAME = "115年度農地現勘專案"
DEFAULT_YEAR = "115"


@dataclass(frozen=True)
class MarkerStyle:
    label: str
    color: str
    glyph: str


# Palette label, overlay color and canvas glyph per marker kind.
MARKER_STYLES: Dict[MarkerType, MarkerStyle] = {
    MarkerType.WELL: MarkerStyle("地下水井", "#2563EB", "W"),
    MarkerType.INLET: MarkerStyle("入水口", "#0EA5E9", "I"),
    MarkerType.SERIES_INLET: MarkerStyle("串聯入水", "#7C3AED", "S"),
    MarkerType.SAMPLE: MarkerStyle("採樣點位", "#F59E0B", "★"),
}

STATUS_LABELS: Dict[TaskStatus, str] = {
    TaskStatus.PENDING: "待處理",
    TaskStatus.EDITING: "修正中",
    TaskStatus.COMPLETED: "已完成",
}


def _require_exhaustive(table: Mapping, enum_cls: type) -> None:
    missing = [m for m in enum_cls if m not in table]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} table is missing entries: {missing}")


_require_exhaustive(MARKER_STYLES, MarkerType)
_require_exhaustive(STATUS_LABELS, TaskStatus)


@dataclass(frozen=True)
class Marker:
    id: str
    type: MarkerType
    x: float
    y: float

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass(frozen=True)
class PlotRange:
    id: str
    # raw click positions, in draw order
    points: Tuple[Point, ...] = ()


@dataclass(frozen=True)
class PhotoSet:
    irrigation: Tuple[str, ...] = ()
    land: Tuple[str, ...] = ()
    surrounding: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InspectionData:
    irrigation_methods: Tuple[str, ...] = ()
    land_status: Tuple[str, ...] = ()
    other_status: Optional[str] = None
    photos: PhotoSet = field(default_factory=PhotoSet)


@dataclass(frozen=True)
class Task:
    id: str
    code: str
    year: str
    owner: str
    base_image: str
    status: TaskStatus = TaskStatus.PENDING
    markers: Tuple[Marker, ...] = ()
    ranges: Tuple[PlotRange, ...] = ()
    form_data: InspectionData = field(default_factory=InspectionData)


@dataclass(frozen=True)
class ProjectState:
    project_name: str = DEFAULT_PROJECT_NAME
    tasks: Tuple[Task, ...] = ()
    view: View = "list"
    current_task_id: Optional[str] = None
    is_editing_map: bool = True
