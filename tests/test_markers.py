from survey_mapper.data_model import MarkerType
from survey_mapper.geometry import Point
from survey_mapper.markers import add_marker, delete_marker, get_marker, move_marker, new_id


def test_add_marker_appends_at_center(task):
    t = add_marker(task, MarkerType.WELL)
    assert task.markers == ()
    assert len(t.markers) == 1
    m = t.markers[0]
    assert (m.type, m.x, m.y) == (MarkerType.WELL, 50.0, 50.0)
    assert len(m.id) == 9


def test_add_marker_ids_unique_even_on_collision(task):
    ids = iter(["dup", "dup", "dup", "other"])
    t = add_marker(task, MarkerType.SAMPLE, id_factory=lambda: next(ids))
    t = add_marker(t, MarkerType.SAMPLE, id_factory=lambda: next(ids))
    assert [m.id for m in t.markers] == ["dup", "other"]


def test_new_id_skips_taken():
    seq = iter(["a", "b"])
    assert new_id({"a"}, factory=lambda: next(seq)) == "b"


def test_move_marker_clamps(task):
    t = add_marker(task, MarkerType.INLET)
    mid = t.markers[0].id
    t = move_marker(t, mid, Point(-20, 140))
    assert get_marker(t, mid).point == Point(0.0, 100.0)


def test_move_unknown_marker_is_noop(task):
    t = add_marker(task, MarkerType.INLET)
    assert move_marker(t, "missing", Point(1, 1)) is t


def test_delete_marker(task):
    t = add_marker(task, MarkerType.INLET)
    t = add_marker(t, MarkerType.WELL)
    first, second = t.markers
    t2 = delete_marker(t, first.id)
    assert t2.markers == (second,)
    assert delete_marker(t2, first.id) is t2
