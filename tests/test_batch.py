import pytest

from survey_mapper.batch import DEFAULT_OWNER, BatchFormatError, parse_task_lines
from survey_mapper.data_model import InspectionData, TaskStatus


def test_parse_lines():
    text = "A001,王小明,https://x/a.png\n\n  B002 , 林 , https://x/b.png?a=1,2\n"
    tasks = parse_task_lines(text, now_ms=99)
    assert [t.id for t in tasks] == ["task-99-0", "task-99-1"]
    assert (tasks[0].code, tasks[0].owner, tasks[0].base_image) == ("A001", "王小明", "https://x/a.png")
    assert tasks[1].base_image == "https://x/b.png?a=1,2"
    for t in tasks:
        assert t.status is TaskStatus.PENDING
        assert t.markers == () and t.ranges == ()
        assert t.form_data == InspectionData()
        assert t.year == "115"


def test_missing_columns_get_defaults():
    (t,) = parse_task_lines(",", year="116", now_ms=1)
    assert t.code == "P0001"
    assert t.owner == DEFAULT_OWNER
    assert t.base_image.endswith("/0/1200/800")
    assert t.year == "116"


def test_empty_text_gives_no_tasks():
    assert parse_task_lines("  \n \n") == []


def test_none_is_rejected():
    with pytest.raises(BatchFormatError):
        parse_task_lines(None)
