"""Error taxonomy for task lifecycle operations.

Every error carries a stable `code` and a human-readable `message` (also `str(err)`).
Errors are raised before any mutation, so a failed operation leaves the snapshot as it was
loaded. None of them are transient: retrying with the same snapshot and inputs fails the
same way until the caller performs the prerequisite action.
"""

from __future__ import annotations

from dataclasses import dataclass

from .task import Task


class TaskError(Exception):
    code = "TASK_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(TaskError, ValueError):
    """Malformed input: empty name, unknown status value, wrong field types."""

    code = "VALIDATION_ERROR"


class NotFoundError(TaskError, KeyError):
    code = "NOT_FOUND"

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class StateConflictError(TaskError, RuntimeError):
    code = "STATE_CONFLICT"


class AlreadyDoneError(StateConflictError):
    pass


class AlreadyInProgressError(StateConflictError):
    pass


class HasChildrenError(StateConflictError):
    pass


class IncompleteChildrenError(StateConflictError):
    def __init__(self, task: Task, incomplete: list[Task]) -> None:
        names = ", ".join(f"'{t.name}'" for t in incomplete)
        super().__init__(
            f"Cannot complete task '{task.name}' because it has incomplete subtasks: {names}. "
            "Please complete all subtasks first."
        )
        self.task = task
        self.incomplete = list(incomplete)


@dataclass(frozen=True)
class BlockingTask:
    order: int
    name: str
    status: str
    description: str


class OrderViolationError(TaskError, RuntimeError):
    """Starting `task` would break the left-to-right execution order.

    `ancestor` is None when the blocking tasks are direct earlier siblings of `task`;
    otherwise it is the ancestor whose earlier siblings are not done yet.
    """

    code = "EXECUTION_ORDER_VIOLATION"

    def __init__(
        self,
        message: str,
        *,
        task: Task,
        blocking: list[BlockingTask],
        ancestor: Task | None = None,
    ) -> None:
        super().__init__(message)
        self.task = task
        self.blocking = list(blocking)
        self.ancestor = ancestor
