from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

import taskorch.cli as cli
from taskorch.engine import EngineConfig, TaskEngine
from taskorch.store import FileTaskStore, MemoryTaskStore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TASKORCH_FILE_PATH", raising=False)
    monkeypatch.delenv("TASKORCH_CONTROL_ROOT", raising=False)


def _run(argv: list[str], capsys: pytest.CaptureFixture[str]) -> tuple[int, dict, str]:
    code = cli.main(argv)
    captured = capsys.readouterr()
    return code, json.loads(captured.out), captured.err


def test_build_parser_create_flags() -> None:
    args = cli.build_parser().parse_args(
        ["--file", "t.json", "create", "Write docs", "--parent", "p1", "--index", "2", "--criterion", "a", "--criterion", "b"]
    )

    assert args.file == "t.json"
    assert args.command == "create"
    assert args.name == "Write docs"
    assert args.parent == "p1"
    assert args.index == 2
    assert args.criterion == ["a", "b"]
    assert args.constraint is None
    assert args.quiet is False


def test_build_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_build_parser_rejects_unknown_status() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["update", "x", "--status", "paused"])


def test_read_json_input_from_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_read_text(self: Path, encoding: str = "utf-8") -> str:
        assert str(self) == "/dev/stdin"
        return '[{"name": "from stdin"}]'

    monkeypatch.setattr(cli.Path, "read_text", fake_read_text, raising=False)

    assert cli._read_json_input("-") == [{"name": "from stdin"}]


def test_read_json_input_from_file_or_literal(tmp_path: Path) -> None:
    f = tmp_path / "subtasks.json"
    f.write_text('[{"name": "from file"}]', encoding="utf-8")

    assert cli._read_json_input(str(f)) == [{"name": "from file"}]
    assert cli._read_json_input('[{"name": "literal"}]') == [{"name": "literal"}]


def test_resolve_store_defaults_to_memory() -> None:
    assert isinstance(cli.resolve_store(None), MemoryTaskStore)


def test_resolve_store_uses_env_relative_to_control_root(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKORCH_CONTROL_ROOT", str(tmp_path))
    monkeypatch.setenv("TASKORCH_FILE_PATH", "state/tasks.json")

    store = cli.resolve_store(None)

    assert isinstance(store, FileTaskStore)
    assert store.path == (tmp_path / "state" / "tasks.json").resolve()


def test_resolve_store_file_argument_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKORCH_FILE_PATH", str(tmp_path / "env.json"))

    store = cli.resolve_store(str(tmp_path / "arg.json"))

    assert isinstance(store, FileTaskStore)
    assert store.path.name == "arg.json"


def test_main_lifecycle_with_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "tasks.json"
    base = ["--file", str(path)]

    code, created, err = _run([*base, "create", "Ship", "--subtasks", '[{"name": "Build"}, {"name": "Test"}]'], capsys)
    assert code == 0
    assert "[taskorch] store: file" in err
    assert "warning" not in err
    root_id = created["task"]["id"]
    build_id, test_id = (t["id"] for t in created["task"]["tasks"])

    code, started, _ = _run([*base, "start", root_id], capsys)
    assert code == 0
    assert [t["name"] for t in started["started_tasks"]] == ["Ship", "Build"]

    code, done, err = _run([*base, "complete", build_id, "built"], capsys)
    assert code == 0
    assert done["next_task_id"] == test_id
    assert "[taskorch] next task: Test" in err

    code, listed, _ = _run([*base, "--quiet", "list", "--parent", root_id], capsys)
    assert code == 0
    assert [t["status"] for t in listed["tasks"]] == ["done", "todo"]

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["tasks"][0]["status"] == "in_progress"


def test_main_reports_tool_errors_with_exit_code(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, payload, _ = _run(["--file", str(tmp_path / "t.json"), "--quiet", "start", "ghost"], capsys)

    assert code == 1
    assert payload["error"]["code"] == "TASK_START_ERROR"


def test_main_update_and_delete(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["--file", str(tmp_path / "t.json"), "--quiet"]
    _, created, _ = _run([*base, "create", "Draft", "--constraint", "short"], capsys)
    task_id = created["task"]["id"]

    code, updated, _ = _run([*base, "update", task_id, "--name", "Final", "--status", "in_progress"], capsys)
    assert code == 0
    assert updated["task"]["name"] == "Final"
    assert updated["task"]["constraints"] == ["short"]

    code, deleted, _ = _run([*base, "delete", task_id], capsys)
    assert code == 0
    assert deleted == {"id": task_id}
    code, got, _ = _run([*base, "get", task_id], capsys)
    assert code == 1
    assert got["error"]["code"] == "TASK_NOT_FOUND"


def test_main_without_file_warns(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload, err = _run(["create", "Ephemeral"], capsys)

    assert code == 0
    assert payload["task"]["name"] == "Ephemeral"
    assert "[taskorch] store: memory" in err
    assert "changes will not persist" in err


def test_main_quiet_suppresses_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    code, _, err = _run(["--quiet", "create", "Silent"], capsys)

    assert code == 0
    assert err == ""


def test_main_bad_subtasks_json(capsys: pytest.CaptureFixture[str]) -> None:
    code, payload, _ = _run(["--quiet", "create", "X", "--subtasks", "{not json"], capsys)

    assert code == 1
    assert payload["error"]["code"] == "INVALID_REQUEST"
    assert payload["error"]["message"].startswith("Could not read subtasks:")


def test_serve_answers_each_line() -> None:
    engine = TaskEngine(EngineConfig(store=MemoryTaskStore()))
    stdin = io.StringIO(
        "\n".join(
            [
                json.dumps({"tool": "createTask", "arguments": {"name": "Only"}}),
                "",
                "not json",
                json.dumps({"arguments": {}}),
                json.dumps({"tool": "listTasks", "arguments": ["x"]}),
                json.dumps({"tool": "listTasks"}),
            ]
        )
        + "\n"
    )
    stdout = io.StringIO()

    assert cli.serve(engine, stdin=stdin, stdout=stdout) == 0

    responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert [r["isError"] for r in responses] == [False, True, True, True, False]
    created = json.loads(responses[0]["content"][0]["text"])
    assert created["task"]["name"] == "Only"
    for r in responses[1:4]:
        assert json.loads(r["content"][0]["text"])["error"]["code"] == "INVALID_REQUEST"
    listed = json.loads(responses[4]["content"][0]["text"])
    assert [t["id"] for t in listed["tasks"]] == [created["task"]["id"]]


def test_main_serve_uses_process_streams(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    lines = [
        json.dumps({"tool": "createTask", "arguments": {"name": "A"}}),
        json.dumps({"tool": "startTask", "arguments": {"id": "missing"}}),
    ]
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO("\n".join(lines) + "\n"))

    assert cli.main(["serve"]) == 0

    captured = capsys.readouterr()
    responses = [json.loads(line) for line in captured.out.splitlines()]
    assert [r["isError"] for r in responses] == [False, True]
    assert "[taskorch] store: memory" in captured.err
    assert "changes will not persist" not in captured.err


def test_serve_keeps_running_on_malformed_task_file(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"tasks": [{"name": "no id"}]}), encoding="utf-8")
    engine = TaskEngine(EngineConfig(store=FileTaskStore(path)))
    stdin = io.StringIO(
        json.dumps({"tool": "listTasks"}) + "\n" + json.dumps({"tool": "getTask", "arguments": {"id": "x"}}) + "\n"
    )
    stdout = io.StringIO()

    assert cli.serve(engine, stdin=stdin, stdout=stdout) == 0

    responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert [r["isError"] for r in responses] == [True, True]
    codes = [json.loads(r["content"][0]["text"])["error"]["code"] for r in responses]
    assert codes == ["TASK_LIST_ERROR", "TASK_NOT_FOUND"]
