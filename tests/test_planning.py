import pytest

from poolwindow.application.planning import plan_chunks, project_end_block
from poolwindow.domain.models import BlockRange


def test_plan_chunks_covers_range_without_gaps():
    chunks = plan_chunks(BlockRange(10, 34), 10)
    assert chunks == [BlockRange(10, 19), BlockRange(20, 29), BlockRange(30, 34)]
    assert sum(c.span() for c in chunks) == BlockRange(10, 34).span()


def test_plan_chunks_without_step_is_one_request():
    assert plan_chunks(BlockRange(5, 5), None) == [BlockRange(5, 5)]


def test_plan_chunks_empty_range():
    assert plan_chunks(BlockRange(6, 5), 10) == []


def test_plan_chunks_rejects_bad_step():
    with pytest.raises(ValueError):
        plan_chunks(BlockRange(1, 2), 0)


def test_project_end_block_truncates():
    assert project_end_block(100, 605, 12) == 150
    assert project_end_block(100, 11, 12) == 100
