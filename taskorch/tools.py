"""Tool-call boundary: named tools with argument shape checks and JSON text responses.

Callers (an agent runtime, the `serve` CLI loop, tests) invoke `call_tool(engine, name,
arguments)` and always get a `ToolResponse` back:

- success: `text` is the JSON-encoded engine result, `is_error` is False;
- failure: `text` is `{"error": {"code": ..., "message": ...}}`, `is_error` is True.

This layer only checks the shape and type of arguments. Whether an operation is legal in
the current tree state is decided by the engine; nothing here skips those checks.

Tools and arguments
- createTask: name (str, required), description (str), parentId (str), insertIndex (int),
  completion_criteria (list[str]), constraints (list[str]), tasks (list of nested task
  objects with the same name/description/completion_criteria/constraints/tasks fields)
- getTask / deleteTask / startTask: id (str, required)
- listTasks: parentId (str)
- updateTask: id (str, required), name, description, status ("todo" | "in_progress" |
  "done"), resolution (str), completion_criteria, constraints
- completeTask: id (str, required), resolution (str, required)

Error codes
Order violations keep their own code (`EXECUTION_ORDER_VIOLATION`); every other failure is
reported with the tool's code from `ERROR_CODES`. Unknown tool names report `UNKNOWN_TOOL`.
A malformed task file surfaces as `ValueError` from the store and is reported the same way,
so a long-running caller such as `serve` keeps going.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .engine import TaskEngine
from .errors import OrderViolationError, TaskError, ValidationError
from .task import TaskInput, TaskStatus

ERROR_CODES: dict[str, str] = {
    "createTask": "TASK_CREATION_ERROR",
    "getTask": "TASK_NOT_FOUND",
    "listTasks": "TASK_LIST_ERROR",
    "updateTask": "TASK_UPDATE_ERROR",
    "deleteTask": "TASK_DELETE_ERROR",
    "startTask": "TASK_START_ERROR",
    "completeTask": "TASK_COMPLETE_ERROR",
}


@dataclass(frozen=True)
class Param:
    kind: str  # "string" | "integer" | "string_list" | "task_list" | "status"
    required: bool = False
    description: str = ""


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: dict[str, Param]


@dataclass(frozen=True)
class ToolResponse:
    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}

    def payload(self) -> Any:
        return json.loads(self.text)


_TASK_FIELDS = {
    "description": Param("string", description="Task description (optional)"),
    "completion_criteria": Param("string_list", description="Criteria that mark the task done (optional)"),
    "constraints": Param("string_list", description="Constraints to respect while working (optional)"),
}

TOOLS: dict[str, ToolSpec] = {
    "createTask": ToolSpec(
        name="createTask",
        description=(
            "Create a new task with an optional parent and position. After creating tasks, call "
            "`startTask` to begin, `completeTask` when done, and start the next task it returns."
        ),
        params={
            "name": Param("string", required=True, description="Task name (required)"),
            "parentId": Param("string", description="Parent task ID for hierarchical organization (optional)"),
            "insertIndex": Param("integer", description="Position among siblings (optional; appends by default)"),
            "tasks": Param("task_list", description="Nested subtasks to create with this task (optional)"),
            **_TASK_FIELDS,
        },
    ),
    "getTask": ToolSpec("getTask", "Get a task by its ID", {"id": Param("string", required=True)}),
    "listTasks": ToolSpec(
        "listTasks",
        "List top-level tasks, or the children of parentId",
        {"parentId": Param("string", description="Filter tasks by parent ID (optional)")},
    ),
    "updateTask": ToolSpec(
        name="updateTask",
        description="Update an existing task",
        params={
            "id": Param("string", required=True),
            "name": Param("string"),
            "status": Param("status"),
            "resolution": Param("string"),
            **_TASK_FIELDS,
        },
    ),
    "deleteTask": ToolSpec("deleteTask", "Delete a task that has no subtasks", {"id": Param("string", required=True)}),
    "startTask": ToolSpec(
        "startTask",
        "Start a task (status in_progress). Call `completeTask` when it is finished.",
        {"id": Param("string", required=True)},
    ),
    "completeTask": ToolSpec(
        "completeTask",
        "Complete a task and get the next task to execute. Start it with `startTask`.",
        {
            "id": Param("string", required=True),
            "resolution": Param("string", required=True, description="Task completion resolution/details"),
        },
    ),
}


def _check_value(key: str, param: Param, value: Any) -> Any:
    if param.kind == "string":
        if not isinstance(value, str):
            raise ValidationError(f"Argument '{key}' must be a string")
        return value
    if param.kind == "integer":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Argument '{key}' must be an integer")
        return value
    if param.kind == "string_list":
        if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
            raise ValidationError(f"Argument '{key}' must be an array of strings")
        return list(value)
    if param.kind == "status":
        valid = [s.value for s in TaskStatus]
        if value not in valid:
            raise ValidationError(f"Argument '{key}' must be one of: {', '.join(valid)}")
        return value
    if param.kind == "task_list":
        if not isinstance(value, list):
            raise ValidationError(f"Argument '{key}' must be an array")
        return [task_input_from_dict(v, path=f"{key}[{i}]") for i, v in enumerate(value)]
    raise ValueError(f"Unknown parameter kind: {param.kind}")


def task_input_from_dict(raw: Any, *, path: str) -> TaskInput:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Task at {path} must be an object")
    name = raw.get("name")
    if not isinstance(name, str):
        raise ValidationError(f"Task at {path} must have a non-empty name")
    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        raise ValidationError(f"Task description at {path} must be a string")
    children = raw.get("tasks")
    if children is not None and not isinstance(children, list):
        raise ValidationError(f"Tasks property at {path} must be an array")
    return TaskInput(
        name=name,
        description=description or "",
        completion_criteria=raw.get("completion_criteria"),
        constraints=raw.get("constraints"),
        tasks=[task_input_from_dict(c, path=f"{path}.tasks[{i}]") for i, c in enumerate(children or [])],
    )


def parse_arguments(spec: ToolSpec, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
    args = dict(arguments or {})
    out: dict[str, Any] = {}
    for key, param in spec.params.items():
        if key not in args or args[key] is None:
            if param.required:
                raise ValidationError(f"Missing required argument: {key}")
            continue
        out[key] = _check_value(key, param, args[key])
    return out


def _dispatch(engine: TaskEngine, name: str, a: dict[str, Any]) -> dict[str, Any]:
    if name == "createTask":
        return engine.create_task(
            a["name"],
            description=a.get("description", ""),
            parent_id=a.get("parentId"),
            insert_index=a.get("insertIndex"),
            completion_criteria=a.get("completion_criteria"),
            constraints=a.get("constraints"),
            tasks=a.get("tasks"),
        ).to_dict()
    if name == "getTask":
        return {"task": engine.get_task(a["id"]).to_dict()}
    if name == "listTasks":
        return {"tasks": [t.to_dict() for t in engine.list_tasks(a.get("parentId"))]}
    if name == "updateTask":
        task = engine.update_task(
            a["id"],
            name=a.get("name"),
            description=a.get("description"),
            status=a.get("status"),
            resolution=a.get("resolution"),
            completion_criteria=a.get("completion_criteria"),
            constraints=a.get("constraints"),
        )
        return {"task": task.to_dict()}
    if name == "deleteTask":
        return {"id": engine.delete_task(a["id"])}
    if name == "startTask":
        return engine.start_task(a["id"]).to_dict()
    if name == "completeTask":
        return engine.complete_task(a["id"], a["resolution"]).to_dict()
    raise KeyError(name)


def _encode(payload: Any) -> str:
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except RecursionError:
        raise ValueError("result is nested too deeply to encode as JSON") from None


def error_response(code: str, message: str) -> ToolResponse:
    return ToolResponse(text=_encode({"error": {"code": code, "message": message}}), is_error=True)


def call_tool(engine: TaskEngine, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResponse:
    spec = TOOLS.get(name)
    if spec is None:
        return error_response("UNKNOWN_TOOL", f"Unknown tool: {name}")
    try:
        args = parse_arguments(spec, arguments)
        text = _encode(_dispatch(engine, name, args))
    except OrderViolationError as exc:
        return error_response(exc.code, exc.message)
    except TaskError as exc:
        return error_response(ERROR_CODES[name], exc.message)
    except ValueError as exc:
        return error_response(ERROR_CODES[name], str(exc))
    return ToolResponse(text=text)
