from types import SimpleNamespace

import pytest

from survey_mapper.controller import (
    DELETE_HANDLE_OFFSET, DELETE_HIT_RADIUS, DRAG_SEQUENCES, DRAW_TOOL, MARKER_HIT_RADIUS, DragCapture, MapController,
)
from survey_mapper.data_model import MarkerType
from survey_mapper.geometry import ContainerRect, Point
from survey_mapper.regions import RegionDrawer
from survey_mapper.task import update

from conftest import make_task


class FakeSource:
    def __init__(self):
        self.bindings = {}
        self._n = 0

    def bind(self, sequence, func, add=None):
        self._n += 1
        funcid = f"f{self._n}"
        self.bindings.setdefault(sequence, {})[funcid] = func
        return funcid

    def unbind(self, sequence, funcid=None):
        self.bindings.get(sequence, {}).pop(funcid, None)

    def fire(self, sequence, event=None):
        for func in list(self.bindings.get(sequence, {}).values()):
            func(event)

    def bound_count(self):
        return sum(len(v) for v in self.bindings.values())


def mouse(x, y):
    return SimpleNamespace(x_root=x, y_root=y)


def touch(x, y):
    return SimpleNamespace(touches=[SimpleNamespace(client_x=x, client_y=y)])


class Harness:
    def __init__(self, editing=True, rect=ContainerRect(0, 0, 200, 100), drawer=None):
        self.task = make_task()
        self.editing = editing
        self.rect = rect
        self.rect_calls = 0
        self.redraws = 0
        self.source = FakeSource()
        self.controller = MapController(
            get_task=lambda: self.task,
            update=self._update,
            get_rect=self._get_rect,
            capture_source=self.source,
            is_editing=lambda: self.editing,
            drawer=drawer,
            on_changed=self._changed,
        )

    def _update(self, partial):
        self.task = update(self.task, partial)

    def _get_rect(self):
        self.rect_calls += 1
        return self.rect

    def _changed(self):
        self.redraws += 1


@pytest.fixture
def h():
    return Harness()


# ---------- DragCapture ----------

def test_capture_binds_all_pathways_and_releases_once():
    src = FakeSource()
    ended = []
    cap = DragCapture(src, on_move=lambda e: None, on_end=lambda: ended.append(1)).acquire()
    assert src.bound_count() == 2 * len(DRAG_SEQUENCES)
    src.fire("<ButtonRelease-1>")
    src.fire("<<TouchEnd>>")
    cap.release()
    assert ended == [1]
    assert src.bound_count() == 0


def test_capture_released_when_move_handler_raises():
    src = FakeSource()

    def boom(_e):
        raise RuntimeError("bad move")

    cap = DragCapture(src, on_move=boom).acquire()
    with pytest.raises(RuntimeError):
        src.fire("<B1-Motion>", mouse(1, 1))
    assert cap.released
    assert src.bound_count() == 0


def test_capture_context_manager_releases():
    src = FakeSource()
    with DragCapture(src, on_move=lambda e: None) as cap:
        assert cap.active
    assert src.bound_count() == 0


def test_capture_cannot_be_reacquired():
    cap = DragCapture(FakeSource(), on_move=lambda e: None).acquire()
    cap.release()
    with pytest.raises(RuntimeError):
        cap.acquire()


# ---------- markers ----------

def test_select_marker_tool_adds_marker(h):
    h.controller.select_tool(MarkerType.SAMPLE)
    assert [m.type for m in h.task.markers] == [MarkerType.SAMPLE]


@pytest.mark.parametrize("seqs,event", [
    (DRAG_SEQUENCES["mouse"], mouse),
    (DRAG_SEQUENCES["touch"], touch),
])
def test_drag_moves_marker_and_releases_capture(h, seqs, event):
    move_seq, end_seq = seqs
    h.controller.select_tool(MarkerType.WELL)
    mid = h.task.markers[0].id
    assert h.controller.on_marker_press(mid, mouse(100, 50))
    assert h.controller.dragging_id == mid

    h.source.fire(move_seq, event(50, 25))
    assert h.task.markers[0].point == Point(25.0, 25.0)
    h.source.fire(move_seq, event(400, -30))
    assert h.task.markers[0].point == Point(100.0, 0.0)

    h.source.fire(end_seq, event(400, -30))
    assert not h.controller.is_dragging
    assert h.controller.dragging_id is None
    assert h.source.bound_count() == 0

    h.source.fire(move_seq, event(10, 10))
    assert h.task.markers[0].point == Point(100.0, 0.0)


def test_rect_is_measured_on_every_move(h):
    h.controller.select_tool(MarkerType.WELL)
    mid = h.task.markers[0].id
    h.controller.on_marker_press(mid)
    h.source.fire("<B1-Motion>", mouse(100, 50))
    assert h.task.markers[0].point == Point(50.0, 50.0)
    # image re-laid out mid-drag
    h.rect = ContainerRect(100, 0, 100, 100)
    h.source.fire("<B1-Motion>", mouse(150, 50))
    assert h.task.markers[0].point == Point(50.0, 50.0)
    h.source.fire("<B1-Motion>", mouse(200, 100))
    assert h.task.markers[0].point == Point(100.0, 100.0)
    assert h.rect_calls == 3


def test_new_press_releases_previous_capture(h):
    h.controller.select_tool(MarkerType.WELL)
    h.controller.select_tool(MarkerType.INLET)
    a, b = (m.id for m in h.task.markers)
    h.controller.on_marker_press(a)
    h.controller.on_marker_press(b)
    assert h.source.bound_count() == 2 * len(DRAG_SEQUENCES)
    h.source.fire("<B1-Motion>", mouse(20, 10))
    assert h.task.markers[0].point == Point(50.0, 50.0)
    assert h.task.markers[1].point == Point(10.0, 10.0)


def test_read_only_map_ignores_press_and_delete(h):
    h.controller.select_tool(MarkerType.WELL)
    mid = h.task.markers[0].id
    h.editing = False
    assert not h.controller.on_marker_press(mid)
    assert h.source.bound_count() == 0
    assert not h.controller.on_delete_click(mid)
    assert len(h.task.markers) == 1


def test_leaving_edit_mode_cancels_drag(h):
    h.controller.select_tool(MarkerType.WELL)
    h.controller.on_marker_press(h.task.markers[0].id)
    h.editing = False
    h.controller.on_edit_mode_changed(False)
    assert h.source.bound_count() == 0
    assert not h.controller.is_dragging


def test_delete_click_removes_marker(h):
    h.controller.select_tool(MarkerType.WELL)
    mid = h.task.markers[0].id
    h.controller.on_marker_press(mid)
    assert h.controller.on_delete_click(mid)
    assert h.task.markers == ()
    assert h.source.bound_count() == 0
    assert not h.controller.on_delete_click(mid)


def test_hit_test_marker_prefers_topmost(h):
    h.controller.select_tool(MarkerType.WELL)
    h.controller.select_tool(MarkerType.INLET)
    top = h.task.markers[-1].id
    assert h.controller.hit_test_marker((100, 50)) == top
    assert h.controller.hit_test_marker((0, 0)) is None


# ---------- regions ----------

def test_surface_click_adds_vertex_only_while_drawing(h):
    assert not h.controller.on_surface_click(mouse(20, 20))
    h.controller.select_tool(DRAW_TOOL)
    assert h.controller.active_tool == DRAW_TOOL
    assert h.controller.on_surface_click(mouse(20, 20))
    assert h.controller.on_surface_click(mouse(-20, 20))
    assert h.task.ranges[0].points == (Point(10.0, 20.0), Point(-10.0, 20.0))
    h.controller.finish_draw()
    assert h.controller.active_tool is None
    assert not h.controller.on_surface_click(mouse(40, 40))
    assert len(h.task.ranges[0].points) == 2


def test_selecting_draw_again_starts_new_range(h):
    h.controller.select_tool(DRAW_TOOL)
    h.controller.on_surface_click(mouse(20, 20))
    h.controller.select_tool(DRAW_TOOL)
    h.controller.on_surface_click(mouse(40, 40))
    assert [len(r.points) for r in h.task.ranges] == [1, 1]


def test_surface_click_ignored_when_read_only(h):
    h.controller.select_tool(DRAW_TOOL)
    h.editing = False
    assert not h.controller.on_surface_click(mouse(20, 20))
    assert h.task.ranges[0].points == ()


def test_reset_drops_transient_state(h):
    h.controller.select_tool(DRAW_TOOL)
    h.controller.select_tool(MarkerType.WELL)
    h.controller.on_marker_press(h.task.markers[0].id)
    h.controller.reset()
    assert h.controller.active_tool is None
    assert not h.controller.drawer.is_drawing
    assert h.source.bound_count() == 0


def test_drag_end_without_move_requests_redraw(h):
    h.controller.select_tool(MarkerType.WELL)
    h.controller.on_marker_press(h.task.markers[0].id)
    assert h.redraws == 0
    h.source.fire("<ButtonRelease-1>", mouse(100, 50))
    assert h.controller.dragging_id is None
    assert h.redraws == 1


def test_delete_handle_does_not_cover_marker(h):
    h.controller.select_tool(MarkerType.WELL)
    mid = h.task.markers[0].id
    # marker renders at (100, 50); press on its upper-right rim
    rim = (100 + 9.5, 50 - 9.5)
    assert h.controller.hit_test_delete(rim) is None
    assert h.controller.hit_test_marker(rim) == mid
    handle = (100 + DELETE_HANDLE_OFFSET[0], 50 + DELETE_HANDLE_OFFSET[1])
    assert h.controller.hit_test_delete(handle) == mid
    assert h.controller.hit_test_marker(handle) is None
    gap = (DELETE_HANDLE_OFFSET[0] ** 2 + DELETE_HANDLE_OFFSET[1] ** 2) ** 0.5
    assert gap > MARKER_HIT_RADIUS + DELETE_HIT_RADIUS


@pytest.mark.parametrize("npoints", [0, 1, 2])
def test_reset_prunes_open_degenerate_range(npoints):
    h = Harness(drawer=RegionDrawer(drop_degenerate=True))
    h.controller.select_tool(DRAW_TOOL)
    for i in range(npoints):
        h.controller.on_surface_click(mouse(20 + i, 20))
    h.controller.reset()
    assert h.task.ranges == ()
    assert not h.controller.drawer.is_drawing


def test_reset_keeps_open_polygon_when_pruning():
    h = Harness(drawer=RegionDrawer(drop_degenerate=True))
    h.controller.select_tool(DRAW_TOOL)
    for x, y in [(20, 20), (60, 20), (40, 60)]:
        h.controller.on_surface_click(mouse(x, y))
    h.controller.reset()
    assert len(h.task.ranges[0].points) == 3
