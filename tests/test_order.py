import pytest

from taskorch.errors import OrderViolationError
from taskorch.order import blocking_siblings, render_blocking_table, validate_start
from taskorch.task import Task, TaskStatus


def _t(task_id: str, *, status: TaskStatus = TaskStatus.TODO, description: str = "", children=None) -> Task:
    return Task(id=task_id, name=f"Task {task_id}", description=description, status=status, children=children or [])


def test_first_task_may_always_start() -> None:
    forest = [_t("1"), _t("2")]

    validate_start(forest[0], forest)


def test_earlier_incomplete_sibling_blocks_with_table() -> None:
    forest = [
        _t("1", description="Initialize database schema"),
        _t("2", status=TaskStatus.DONE),
        _t("3", status=TaskStatus.IN_PROGRESS),
        _t("4"),
    ]

    with pytest.raises(OrderViolationError) as exc:
        validate_start(forest[3], forest)

    err = exc.value
    assert err.code == "EXECUTION_ORDER_VIOLATION"
    assert err.ancestor is None
    assert [(b.order, b.name, b.status) for b in err.blocking] == [(1, "Task 1", "todo"), (3, "Task 3", "in_progress")]
    msg = str(err)
    assert 'Cannot start task "Task 4"' in msg
    assert "The following 2 task(s) with smaller order values must be completed first" in msg
    assert "| Order | Task Name | Status | Description |" in msg
    assert "| 1 | Task 1 | todo | Initialize database schema |" in msg
    assert "| 3 | Task 3 | in_progress | No description |" in msg
    assert "Task 2 |" not in msg
    assert "Please complete these tasks in order" in msg


def test_sibling_violation_names_parent() -> None:
    parent = _t("p", status=TaskStatus.IN_PROGRESS, children=[_t("p.1"), _t("p.2")])
    forest = [parent]

    with pytest.raises(OrderViolationError, match='within parent task "Task p"'):
        validate_start(parent.children[1], forest)


def test_ancestor_level_violation_names_ancestor_and_blockers() -> None:
    feature_a = _t("a", children=[_t("a.1")])
    feature_b = _t("b", children=[_t("b.1")])
    forest = [feature_a, feature_b]

    with pytest.raises(OrderViolationError) as exc:
        validate_start(feature_b.children[0], forest)

    assert exc.value.ancestor is feature_b
    assert [b.name for b in exc.value.blocking] == ["Task a"]
    assert 'its ancestor "Task b"' in str(exc.value)


def test_violation_several_levels_up_is_detected() -> None:
    first = _t("1", children=[_t("1.1")])
    deep_leaf = _t("2.1.1")
    second = _t("2", children=[_t("2.1", children=[deep_leaf])])
    forest = [first, second]

    with pytest.raises(OrderViolationError) as exc:
        validate_start(deep_leaf, forest)

    assert exc.value.ancestor is second


def test_completing_blocker_unblocks_start() -> None:
    forest = [_t("1"), _t("2")]
    with pytest.raises(OrderViolationError):
        validate_start(forest[1], forest)

    forest[0].status = TaskStatus.DONE

    validate_start(forest[1], forest)


def test_blocking_siblings_stops_at_task() -> None:
    siblings = [_t("1", status=TaskStatus.DONE), _t("2"), _t("3")]

    assert blocking_siblings(siblings, siblings[0]) == []
    assert [b.order for b in blocking_siblings(siblings, siblings[2])] == [2]


def test_render_blocking_table_header_only_when_empty() -> None:
    assert render_blocking_table([]).splitlines() == [
        "| Order | Task Name | Status | Description |",
        "|-------|-----------|--------|-------------|",
    ]
