import pytest

from survey_mapper.data_model import Task


def make_task(task_id: str = "t1", **kw) -> Task:
    data = {
        "id": task_id,
        "code": "A001",
        "year": "115",
        "owner": "王小明",
        "base_image": "https://example.com/a.png",
    }
    data.update(kw)
    return Task(**data)


@pytest.fixture
def task() -> Task:
    return make_task()
