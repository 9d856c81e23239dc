"""Cascades triggered by starting or completing a task.

Start side
- `find_deepest_incomplete(task)`: from `task`, repeatedly step into the first child whose
  status is todo, until a node has no todo child. Returns that descent path (excluding
  `task` itself); the engine starts every node on it.
- `reset_active_leaves(tasks, keep=...)`: enforces the single-active-leaf rule. Any other
  in-progress leaf is reset to todo and its ancestor chain is re-derived.
- `rederive_ancestors(tasks, task_id)`: an in-progress ancestor with no in-progress child
  reverts to todo. The whole chain is visited; a level that keeps its status does not stop
  the climb.
- `activate_ancestors(tasks, task_id)`: every todo ancestor becomes in_progress.

Complete side
- `auto_complete_ancestors(tasks, task_id, note=...)`: climbs the parent chain marking
  each ancestor done while all of its children are done; stops at the first ancestor that
  still has unfinished children (or is already done).
- `find_next_task(tasks, completed)`: pre-order, left-to-right search for the next todo
  task after `completed`. Ancestors whose children are all done are used as the search
  reference in turn; this only moves the search upward and never completes anything.

All walks are loops over explicit chains, not recursion.
"""

from __future__ import annotations

from .task import Task, TaskStatus
from .tree import ancestors, find_parent, leaves


def find_deepest_incomplete(task: Task) -> list[Task]:
    path: list[Task] = []
    current = task
    while True:
        nxt = next((c for c in current.children if c.status == TaskStatus.TODO), None)
        if nxt is None:
            return path
        path.append(nxt)
        current = nxt


def rederive_ancestors(tasks: list[Task], task_id: str) -> list[Task]:
    """Revert in-progress ancestors of `task_id` that no longer have an in-progress child."""
    reverted: list[Task] = []
    for anc in ancestors(tasks, task_id):
        if anc.status != TaskStatus.IN_PROGRESS:
            continue
        if any(c.status == TaskStatus.IN_PROGRESS for c in anc.children):
            continue
        anc.status = TaskStatus.TODO
        reverted.append(anc)
    return reverted


def reset_active_leaves(tasks: list[Task], *, keep: Task) -> list[Task]:
    """Reset every in-progress leaf other than `keep`; returns all tasks that changed."""
    changed: list[Task] = []
    active = [t for t in leaves(tasks, status=TaskStatus.IN_PROGRESS) if t is not keep]
    for leaf in active:
        leaf.status = TaskStatus.TODO
        changed.append(leaf)
        changed.extend(rederive_ancestors(tasks, leaf.id))
    return changed


def activate_ancestors(tasks: list[Task], task_id: str) -> list[Task]:
    """Mark todo ancestors in_progress, nearest first; done ancestors are left alone."""
    started: list[Task] = []
    for anc in ancestors(tasks, task_id):
        if anc.status == TaskStatus.TODO:
            anc.status = TaskStatus.IN_PROGRESS
            started.append(anc)
    return started


def auto_complete_ancestors(tasks: list[Task], task_id: str, *, note: str) -> list[Task]:
    completed: list[Task] = []
    for anc in ancestors(tasks, task_id):
        if anc.is_done or not all(c.is_done for c in anc.children):
            break
        anc.status = TaskStatus.DONE
        anc.resolution = note
        completed.append(anc)
    return completed


def find_next_task(tasks: list[Task], completed: Task) -> Task | None:
    current = completed
    while True:
        parent = find_parent(tasks, current.id)
        if parent is None:
            return next((t for t in tasks if t.status == TaskStatus.TODO), None)

        siblings = parent.children
        idx = next(i for i, s in enumerate(siblings) if s is current)
        later = next((s for s in siblings[idx + 1 :] if s.status == TaskStatus.TODO), None)
        if later is not None:
            return later
        if not all(s.is_done for s in siblings):
            return None
        current = parent
