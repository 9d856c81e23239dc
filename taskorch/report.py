'''Markdown progress and hierarchy tables rendered from a task forest.

Both tables share one row shape and one header:

    | Task Name | Parent Task | Status | Status Changed | Subtasks | Progress |

- Task Name: the task's name, without indentation.
- Parent Task: the owning task's name, or "-" for top-level tasks.
- Status: a glyph plus the status value (`STATUS_GLYPH`).
- Status Changed: "✓" when the task id is in `changed_ids`, otherwise empty.
- Subtasks: "<done>/<total>" over immediate children, or "-" for leaves.
- Progress: percentage of immediate children done; childless tasks report 100% when done
  and 0% otherwise.

Rows follow pre-order depth-first order from the roots, so each task is immediately
followed by its full subtree. `progress_summary` adds forest-wide counts and a completion
percentage (used after completing a task); `hierarchy_summary` adds the number of levels
(used after starting a task). Percentages round half up. An empty forest renders as
"No tasks found.".
'''

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from .task import Task, TaskStatus
from .tree import walk_with_parent

STATUS_GLYPH: dict[TaskStatus, str] = {
    TaskStatus.TODO: "\U0001f4cb",  # 📋
    TaskStatus.IN_PROGRESS: "\u26a1",  # ⚡
    TaskStatus.DONE: "\u2705",  # ✅
}

CHANGED_MARK = "\u2713"  # ✓

TABLE_HEADER = "| Task Name | Parent Task | Status | Status Changed | Subtasks | Progress |"
TABLE_SEPARATOR = "|-----------|-------------|--------|----------------|----------|----------|"
EMPTY_TABLE = "No tasks found."


@dataclass(frozen=True)
class SummaryRow:
    task_id: str
    name: str
    parent_name: str | None
    depth: int
    status: TaskStatus
    status_changed: bool
    subtasks: str
    progress: str


@dataclass(frozen=True)
class ProgressSummary:
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    completion_percentage: int
    table: str

    def to_dict(self) -> dict[str, object]:
        return {
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "in_progress_tasks": self.in_progress_tasks,
            "todo_tasks": self.todo_tasks,
            "completion_percentage": self.completion_percentage,
            "table": self.table,
        }


@dataclass(frozen=True)
class HierarchySummary:
    total_levels: int
    table: str


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)


def status_label(status: TaskStatus) -> str:
    return f"{STATUS_GLYPH.get(status, ' ')} {status.value}"


def build_rows(tasks: list[Task], changed_ids: Collection[str] = ()) -> list[SummaryRow]:
    depth: dict[str, int] = {}
    rows: list[SummaryRow] = []
    for task, parent in walk_with_parent(tasks):
        depth[task.id] = 0 if parent is None else depth[parent.id] + 1
        if task.children:
            done = sum(1 for c in task.children if c.status == TaskStatus.DONE)
            subtasks = f"{done}/{len(task.children)}"
            progress = f"{_percent(done, len(task.children))}%"
        else:
            subtasks = "-"
            progress = "100%" if task.status == TaskStatus.DONE else "0%"
        rows.append(
            SummaryRow(
                task_id=task.id,
                name=task.name,
                parent_name=(parent.name if parent is not None else None),
                depth=depth[task.id],
                status=task.status,
                status_changed=task.id in changed_ids,
                subtasks=subtasks,
                progress=progress,
            )
        )
    return rows


def render_table(rows: list[SummaryRow]) -> str:
    if not rows:
        return EMPTY_TABLE
    lines = [TABLE_HEADER, TABLE_SEPARATOR]
    for row in rows:
        changed = CHANGED_MARK if row.status_changed else ""
        lines.append(
            f"| {row.name} | {row.parent_name or '-'} | {status_label(row.status)} | {changed} "
            f"| {row.subtasks} | {row.progress} |"
        )
    return "\n".join(lines)


def progress_summary(tasks: list[Task], changed_ids: Collection[str] = ()) -> ProgressSummary:
    rows = build_rows(tasks, changed_ids)
    total = len(rows)
    completed = sum(1 for r in rows if r.status == TaskStatus.DONE)
    in_progress = sum(1 for r in rows if r.status == TaskStatus.IN_PROGRESS)
    return ProgressSummary(
        total_tasks=total,
        completed_tasks=completed,
        in_progress_tasks=in_progress,
        todo_tasks=total - completed - in_progress,
        completion_percentage=_percent(completed, total),
        table=render_table(rows),
    )


def hierarchy_summary(tasks: list[Task], changed_ids: Collection[str] = ()) -> HierarchySummary:
    rows = build_rows(tasks, changed_ids)
    levels = max((r.depth for r in rows), default=-1) + 1
    return HierarchySummary(total_levels=levels, table=render_table(rows))
