"""Read-only traversal helpers over a task forest.

Every helper takes the top-level `list[Task]` snapshot and walks it without mutating it.
Walks are iterative (explicit stacks), so arbitrarily deep hierarchies do not hit the
interpreter recursion limit. All helpers are O(size of forest).

Ordering
- `walk` / `flatten` yield tasks in pre-order depth-first traversal: a task is yielded
  before its descendants, and siblings keep their list order.
- `path_names` and `ancestors` are both derived from the same parent-tracking walk, so a
  task that appears in the forest always has a well-defined chain to its root.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .task import Task, TaskStatus


def walk_with_parent(tasks: Iterable[Task]) -> Iterator[tuple[Task, Task | None]]:
    """Yield `(task, parent)` pairs in pre-order; `parent` is None for top-level tasks."""
    stack: list[tuple[Task, Task | None]] = [(t, None) for t in tasks]
    stack.reverse()
    while stack:
        task, parent = stack.pop()
        yield task, parent
        stack.extend((c, task) for c in reversed(task.children))


def walk(tasks: Iterable[Task]) -> Iterator[Task]:
    for task, _ in walk_with_parent(tasks):
        yield task


def flatten(tasks: Iterable[Task]) -> list[Task]:
    return list(walk(tasks))


def find_by_id(tasks: Iterable[Task], task_id: str) -> Task | None:
    for task in walk(tasks):
        if task.id == task_id:
            return task
    return None


def find_parent(tasks: Iterable[Task], task_id: str) -> Task | None:
    for task, parent in walk_with_parent(tasks):
        if task.id == task_id:
            return parent
    return None


def siblings_of(tasks: list[Task], task_id: str) -> list[Task]:
    """The sequence that owns `task_id`: its parent's children, or the top-level list."""
    parent = find_parent(tasks, task_id)
    return tasks if parent is None else parent.children


def ancestors(tasks: Iterable[Task], task_id: str) -> list[Task]:
    """Ancestors of `task_id`, nearest first. Empty for top-level or unknown ids."""
    parents: dict[str, Task | None] = {}
    target: Task | None = None
    for task, parent in walk_with_parent(tasks):
        parents[task.id] = parent
        if task.id == task_id:
            target = task
            break
    if target is None:
        return []

    chain: list[Task] = []
    current = parents[target.id]
    while current is not None:
        chain.append(current)
        current = parents[current.id]
    return chain


def path_names(tasks: list[Task], task_id: str) -> list[str]:
    """Root-to-target name chain; empty when `task_id` is not in the forest."""
    task = find_by_id(tasks, task_id)
    if task is None:
        return []
    chain = [a.name for a in reversed(ancestors(tasks, task_id))]
    chain.append(task.name)
    return chain


def leaves(tasks: Iterable[Task], *, status: TaskStatus | None = None) -> list[Task]:
    return [t for t in walk(tasks) if t.is_leaf and (status is None or t.status == status)]
