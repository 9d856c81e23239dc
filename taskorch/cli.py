"""taskorch.cli

Command-line entrypoint for taskorch, a hierarchical task tracker for autonomous agents.

Entry points
- `taskorch.cli:main`
- `python3 -m taskorch ...` (delegates to this module)

Every subcommand is a thin wrapper over one tool in `taskorch.tools`: arguments are
collected into the tool's argument mapping, `call_tool` runs it against the engine, and the
JSON response text is printed to stdout. The exit status is 0 on success and 1 when the tool
reports an error.

Subcommands
- `create NAME [--description D] [--parent ID] [--index N] [--criterion C]... [--constraint C]...
  [--subtasks JSON]`: `--subtasks` takes a JSON array of nested task objects, a path to a file
  holding one, or `-` to read it from stdin.
- `get ID`, `delete ID`, `start ID`
- `list [--parent ID]`
- `update ID [--name N] [--description D] [--status S] [--resolution R] ...`
- `complete ID RESOLUTION`
- `serve`: JSON-lines loop. Each stdin line is `{"tool": <name>, "arguments": {...}}`; each
  response is written as one JSON line `{"content": [...], "isError": bool}` on stdout.

Storage selection
- `--file PATH` wins; otherwise `$TASKORCH_FILE_PATH`. Relative paths are resolved against
  the control root: `$TASKORCH_CONTROL_ROOT` when set, else the current directory.
- With neither set, tasks live in memory for the lifetime of the process. This is what
  `serve` is for; single-shot subcommands warn on stderr because nothing persists.

Progress lines go to stderr with a `[taskorch]` prefix unless `--quiet` is given.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, TextIO

from .engine import EngineConfig, TaskEngine
from .store import FileTaskStore, MemoryTaskStore, TaskStore
from .task import TaskStatus
from .tools import ToolResponse, call_tool, error_response


def _read_json_input(arg: str) -> Any:
    if arg == "-":
        return json.loads(Path("/dev/stdin").read_text(encoding="utf-8"))
    p = Path(arg)
    if p.exists() and p.is_file():
        return json.loads(p.read_text(encoding="utf-8"))
    return json.loads(arg)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="taskorch", description="Hierarchical task lifecycle tracker for agents.")
    p.add_argument(
        "--file",
        default=None,
        help="Path to the task JSON file (default: $TASKORCH_FILE_PATH, else in-memory).",
    )
    p.add_argument("--quiet", action="store_true", help="Do not print progress lines on stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a task.")
    create.add_argument("name")
    create.add_argument("--description", default=None)
    create.add_argument("--parent", default=None, help="Parent task ID.")
    create.add_argument("--index", type=int, default=None, help="Position among siblings (default: append).")
    create.add_argument("--criterion", action="append", default=None, help="Completion criterion (repeatable).")
    create.add_argument("--constraint", action="append", default=None, help="Constraint (repeatable).")
    create.add_argument(
        "--subtasks",
        default=None,
        help="JSON array of nested subtasks, a file containing one, or '-' for stdin.",
    )

    for name, help_text in (("get", "Show a task."), ("delete", "Delete a task."), ("start", "Start a task.")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("id")

    lst = sub.add_parser("list", help="List top-level tasks, or the children of --parent.")
    lst.add_argument("--parent", default=None)

    update = sub.add_parser("update", help="Update task fields (no lifecycle checks).")
    update.add_argument("id")
    update.add_argument("--name", default=None)
    update.add_argument("--description", default=None)
    update.add_argument("--status", choices=[s.value for s in TaskStatus], default=None)
    update.add_argument("--resolution", default=None)
    update.add_argument("--criterion", action="append", default=None)
    update.add_argument("--constraint", action="append", default=None)

    complete = sub.add_parser("complete", help="Complete a task and show the next one.")
    complete.add_argument("id")
    complete.add_argument("resolution")

    sub.add_parser("serve", help="Answer JSON-lines tool calls on stdin/stdout.")
    return p


def resolve_store(file_arg: str | None) -> TaskStore:
    control_root_env = os.environ.get("TASKORCH_CONTROL_ROOT")
    control_root = (Path(control_root_env) if control_root_env else Path.cwd()).resolve()
    raw = file_arg or os.environ.get("TASKORCH_FILE_PATH")
    if not raw:
        return MemoryTaskStore()
    return FileTaskStore((control_root / raw).resolve())


def _tool_call(args: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    cmd = args.command
    if cmd == "create":
        a: dict[str, Any] = {"name": args.name}
        if args.description is not None:
            a["description"] = args.description
        if args.parent is not None:
            a["parentId"] = args.parent
        if args.index is not None:
            a["insertIndex"] = args.index
        if args.criterion is not None:
            a["completion_criteria"] = args.criterion
        if args.constraint is not None:
            a["constraints"] = args.constraint
        if args.subtasks is not None:
            a["tasks"] = _read_json_input(args.subtasks)
        return "createTask", a
    if cmd in ("get", "delete", "start"):
        return f"{cmd}Task", {"id": args.id}
    if cmd == "list":
        return "listTasks", ({"parentId": args.parent} if args.parent else {})
    if cmd == "update":
        a = {"id": args.id}
        for key, value in (
            ("name", args.name),
            ("description", args.description),
            ("status", args.status),
            ("resolution", args.resolution),
            ("completion_criteria", args.criterion),
            ("constraints", args.constraint),
        ):
            if value is not None:
                a[key] = value
        return "updateTask", a
    if cmd == "complete":
        return "completeTask", {"id": args.id, "resolution": args.resolution}
    raise ValueError(f"Unknown command: {cmd}")


def _handle_line(engine: TaskEngine, line: str) -> ToolResponse:
    try:
        request = json.loads(line)
    except json.JSONDecodeError as exc:
        return error_response("INVALID_REQUEST", f"Request is not valid JSON: {exc}")
    if not isinstance(request, dict) or not isinstance(request.get("tool"), str):
        return error_response("INVALID_REQUEST", "Request must be an object with a string 'tool' field")
    arguments = request.get("arguments") or {}
    if not isinstance(arguments, dict):
        return error_response("INVALID_REQUEST", "Request 'arguments' must be an object")
    return call_tool(engine, request["tool"], arguments)


def serve(engine: TaskEngine, *, stdin: TextIO, stdout: TextIO) -> int:
    for line in stdin:
        if not line.strip():
            continue
        response = _handle_line(engine, line)
        stdout.write(json.dumps(response.to_dict(), ensure_ascii=False) + "\n")
        stdout.flush()
    return 0


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(raw_argv)

    store = resolve_store(args.file)
    engine = TaskEngine(EngineConfig(store=store, verbose=not args.quiet))
    if not args.quiet:
        print(f"[taskorch] store: {store.describe()}", file=sys.stderr)

    if args.command == "serve":
        return serve(engine, stdin=sys.stdin, stdout=sys.stdout)

    if isinstance(store, MemoryTaskStore) and not args.quiet:
        print("[taskorch] warning: no task file configured; changes will not persist", file=sys.stderr)

    try:
        name, arguments = _tool_call(args)
    except (OSError, ValueError) as exc:
        response = error_response("INVALID_REQUEST", f"Could not read subtasks: {exc}")
    else:
        response = call_tool(engine, name, arguments)
    print(response.text)
    return 1 if response.is_error else 0
