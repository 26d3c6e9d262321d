from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Union

from .data_model import MarkerType, Task
from .geometry import ContainerRect, distance_sq, pointer_position, to_device, to_normalized
from .markers import add_marker, delete_marker, move_marker
from .regions import RegionDrawer

logger = logging.getLogger(__name__)

DRAW_TOOL = "DRAW"
PaletteTool = Union[MarkerType, str]

# Device-pixel hit areas around a marker and its delete handle. The handle sits
# far enough out that the two never overlap.
MARKER_HIT_RADIUS = 14.0
DELETE_HIT_RADIUS = 7.0
DELETE_HANDLE_OFFSET: Tuple[float, float] = (22.0, -22.0)

# (move, release) event pairs captured for the lifetime of a drag.
DRAG_SEQUENCES: Dict[str, Tuple[str, str]] = {
    "mouse": ("<B1-Motion>", "<ButtonRelease-1>"),
    "touch": ("<<TouchMove>>", "<<TouchEnd>>"),
}


class EventSource(Protocol):
    """The subset of the tk widget binding API the drag capture needs."""

    def bind(self, sequence: str, func: Callable[[Any], Any], add: Any = ...) -> str: ...

    def unbind(self, sequence: str, funcid: Optional[str] = ...) -> None: ...


class DragCapture:
    """
    Input capture scope for one drag.

    acquire() binds move/release handlers for every pathway in ``sequences``
    on the top-level source, release() removes every one of them. release()
    runs once no matter how the drag ends: pointer release on any pathway,
    cancel(), leaving a ``with`` block, or a move handler raising.
    """

    def __init__(
        self,
        source: EventSource,
        *,
        on_move: Callable[[Any], None],
        on_end: Optional[Callable[[], None]] = None,
        sequences: Mapping[str, Tuple[str, str]] = DRAG_SEQUENCES,
    ) -> None:
        self.source = source
        self._on_move = on_move
        self._on_end = on_end
        self._sequences = dict(sequences)
        self._bindings: List[Tuple[str, str]] = []
        self.active = False
        self.released = False

    def acquire(self) -> "DragCapture":
        if self.active or self.released:
            raise RuntimeError("DragCapture can only be acquired once")
        try:
            for move_seq, end_seq in self._sequences.values():
                self._bindings.append((move_seq, self.source.bind(move_seq, self._handle_move, "+")))
                self._bindings.append((end_seq, self.source.bind(end_seq, self._handle_end, "+")))
        except Exception:
            self._unbind_all()
            raise
        self.active = True
        return self

    def _handle_move(self, event: Any) -> None:
        if not self.active:
            return
        try:
            self._on_move(event)
        except Exception:
            self.release()
            raise

    def _handle_end(self, _event: Any = None) -> None:
        self.release()

    def cancel(self) -> None:
        self.release()

    def _unbind_all(self) -> None:
        bindings, self._bindings = self._bindings, []
        for seq, funcid in bindings:
            try:
                self.source.unbind(seq, funcid)
            except Exception:
                logger.exception("Failed to unbind %s", seq)

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.active = False
        self._unbind_all()
        if self._on_end is not None:
            self._on_end()

    def __enter__(self) -> "DragCapture":
        return self.acquire()

    def __exit__(self, *_exc) -> None:
        self.release()


class MapController:
    """
    Translates pointer events on the map into marker/region operations.

    Holds no task data: the task is read through ``get_task`` and every change
    is handed to ``update`` as a partial patch. ``get_rect`` is called for every
    event since the image may have been re-laid out.
    """

    def __init__(
        self,
        *,
        get_task: Callable[[], Optional[Task]],
        update: Callable[[Mapping[str, Any]], Any],
        get_rect: Callable[[], ContainerRect],
        capture_source: EventSource,
        is_editing: Callable[[], bool] = lambda: True,
        drawer: Optional[RegionDrawer] = None,
        drag_sequences: Mapping[str, Tuple[str, str]] = DRAG_SEQUENCES,
        on_changed: Optional[Callable[[], None]] = None,
    ) -> None:
        self._get_task = get_task
        self._update = update
        self._get_rect = get_rect
        self._capture_source = capture_source
        self._is_editing = is_editing
        self.drawer = drawer or RegionDrawer()
        self._drag_sequences = drag_sequences
        self._on_changed = on_changed
        self.active_tool: Optional[str] = None
        self._drag: Optional[DragCapture] = None
        self.dragging_id: Optional[str] = None

    # ---------- palette ----------

    def select_tool(self, tool: PaletteTool) -> None:
        task = self._get_task()
        if task is None or not self._is_editing():
            return
        if tool == DRAW_TOOL:
            if self.drawer.is_drawing:
                self.finish_draw()
                task = self._get_task()
            task = self.drawer.start_draw(task)
            self._update({"ranges": task.ranges})
            self.active_tool = DRAW_TOOL
            return
        task = add_marker(task, MarkerType(tool))
        self._update({"markers": task.markers})

    def finish_draw(self) -> None:
        if not self.drawer.is_drawing:
            self.active_tool = None
            return
        task = self._get_task()
        if task is None:
            self.drawer.finish_draw()
        else:
            tidy = self.drawer.finish_and_tidy(task)
            if tidy is not task:
                self._update({"ranges": tidy.ranges})
        self.active_tool = None

    # ---------- surface ----------

    def on_surface_click(self, event: Any) -> bool:
        if not self._is_editing() or self.active_tool != DRAW_TOOL:
            return False
        task = self._get_task()
        if task is None:
            return False
        point = to_normalized(pointer_position(event), self._get_rect())
        new_task = self.drawer.add_point(task, point)
        if new_task is task:
            return False
        self._update({"ranges": new_task.ranges})
        return True

    # ---------- markers ----------

    def hit_test_marker(self, device_point: Tuple[float, float], *, radius: float = MARKER_HIT_RADIUS) -> Optional[str]:
        """Topmost marker within ``radius`` device pixels of the point."""
        task = self._get_task()
        if task is None:
            return None
        rect = self._get_rect()
        r2 = radius * radius
        for m in reversed(task.markers):
            if distance_sq(to_device(m.point, rect), device_point) <= r2:
                return m.id
        return None

    def hit_test_delete(self, device_point: Tuple[float, float]) -> Optional[str]:
        """Marker whose delete handle is under the point, topmost first."""
        task = self._get_task()
        if task is None:
            return None
        rect = self._get_rect()
        r2 = DELETE_HIT_RADIUS * DELETE_HIT_RADIUS
        for m in reversed(task.markers):
            mx, my = to_device(m.point, rect)
            handle = (mx + DELETE_HANDLE_OFFSET[0], my + DELETE_HANDLE_OFFSET[1])
            if distance_sq(handle, device_point) <= r2:
                return m.id
        return None

    def on_marker_press(self, marker_id: str, event: Any = None) -> bool:
        if not self._is_editing():
            return False
        self.cancel_drag()
        capture = DragCapture(
            self._capture_source,
            on_move=lambda e: self._drag_to(marker_id, e),
            on_end=self._drag_ended,
            sequences=self._drag_sequences,
        )
        self._drag = capture.acquire()
        self.dragging_id = marker_id
        return True

    def _drag_to(self, marker_id: str, event: Any) -> None:
        task = self._get_task()
        if task is None:
            return
        point = to_normalized(pointer_position(event), self._get_rect())
        new_task = move_marker(task, marker_id, point)
        if new_task is not task:
            self._update({"markers": new_task.markers})

    def _drag_ended(self) -> None:
        self._drag = None
        self.dragging_id = None
        if self._on_changed is not None:
            self._on_changed()

    def cancel_drag(self) -> None:
        if self._drag is not None:
            self._drag.cancel()

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    def on_delete_click(self, marker_id: str) -> bool:
        if not self._is_editing():
            return False
        task = self._get_task()
        if task is None:
            return False
        if self.dragging_id == marker_id:
            self.cancel_drag()
        new_task = delete_marker(task, marker_id)
        if new_task is task:
            return False
        self._update({"markers": new_task.markers})
        return True

    # ---------- mode ----------

    def on_edit_mode_changed(self, editing: bool) -> None:
        if editing:
            return
        self.cancel_drag()
        self.finish_draw()

    def reset(self) -> None:
        """Drop transient state when the edited task changes."""
        self.cancel_drag()
        self.finish_draw()
