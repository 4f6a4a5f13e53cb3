from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from setup_sandbox.audit import EVENT_SANDBOX_VIOLATION, EVENT_SECURITY
from setup_sandbox.errors import ValidationError
from setup_sandbox.gate import SecurityGate, SetupSession
from setup_sandbox.host import (
    SETUP_SCRIPT_NAME,
    find_script_violations,
    load_setup_function,
    run_setup_script,
)
from setup_sandbox.testing import RecordingLogger


def _session(root: Path) -> SetupSession:
    return SecurityGate().open(
        project_dir=root,
        project_name="demo",
        inputs={"AUTHOR": "Jane"},
        sink=RecordingLogger(),
    )


def _script(root: Path, body: str) -> Path:
    path = root / SETUP_SCRIPT_NAME
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_successful_script_uses_tools(tmp_path: Path) -> None:
    session = _session(tmp_path)
    script = _script(
        tmp_path,
        """
        def setup(ctx, tools):
            tools.files.write("README.md", "# " + ctx.project_name)
            tools.json.set("package.json", "author", tools.inputs.get("AUTHOR"))
            tools.logger.info("done")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is True
    assert outcome.error is None
    assert (tmp_path / "README.md").read_text(encoding="utf-8") == "# demo"
    assert session.tools.json.read("package.json") == {"author": "Jane"}
    assert list(session.audit.iter_events(EVENT_SECURITY))[-1]["data"] == {"script": SETUP_SCRIPT_NAME, "ok": True}


def test_import_is_rejected_and_audited(tmp_path: Path) -> None:
    session = _session(tmp_path)
    script = _script(
        tmp_path,
        """
        import os

        def setup(ctx, tools):
            os.remove("x")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "sandbox_violation"
    violations = list(session.audit.iter_events(EVENT_SANDBOX_VIOLATION))
    assert violations[0]["data"]["line"] == 2


def test_script_exception_is_reported_not_raised(tmp_path: Path) -> None:
    session = _session(tmp_path)
    script = _script(
        tmp_path,
        """
        def setup(ctx, tools):
            tools.files.write("partial.txt", "kept")
            raise RuntimeError("boom")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error == {
        "kind": "setup",
        "code": "setup_script_failed",
        "operation": "setup_script",
        "message": "RuntimeError: boom",
    }
    assert (tmp_path / "partial.txt").exists()


def test_tool_errors_keep_their_kind(tmp_path: Path) -> None:
    session = _session(tmp_path)
    script = _script(
        tmp_path,
        """
        def setup(ctx, tools):
            tools.files.write("../../etc/passwd", "x")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["kind"] == "boundary"


def test_missing_setup_function(tmp_path: Path) -> None:
    outcome = run_setup_script(_script(tmp_path, "value = 1\n"), _session(tmp_path))
    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "missing_setup_function"


def test_async_setup_is_rejected(tmp_path: Path) -> None:
    script = _script(
        tmp_path,
        """
        async def setup(ctx, tools):
            tools.files.write("never.txt", "x")
        """,
    )
    outcome = run_setup_script(script, _session(tmp_path))
    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "async_setup"
    assert not (tmp_path / "never.txt").exists()


def test_unreadable_script(tmp_path: Path) -> None:
    outcome = run_setup_script(tmp_path / "missing.py", _session(tmp_path))
    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "script_unreadable"


@pytest.mark.parametrize(
    "source",
    [
        "from pathlib import Path\n",
        "x = open('f')\n",
        "x = ().__class__\n",
        "x = __builtins__\n",
        "x = '{0.__class__}'.format(1)\n",
        "def f():\n    global y\n",
        "x = getattr(1, 'real')\n",
        "def setup(ctx, tools):\n    return tools.files._resolver\n",
        "def setup(ctx, tools):\n    return ctx._x\n",
    ],
)
def test_find_script_violations(source: str) -> None:
    assert find_script_violations(source)


def test_plain_script_has_no_violations() -> None:
    assert find_script_violations("def setup(ctx, tools):\n    return [len(x) for x in sorted({'a'})]\n") == []


def test_syntax_error_is_validation_error() -> None:
    with pytest.raises(ValidationError) as exc:
        find_script_violations("def setup(:\n")
    assert exc.value.code == "syntax_error"


def test_loaded_function_sees_only_safe_builtins() -> None:
    fn = load_setup_function("def setup(ctx, tools):\n    return sorted(ctx)\n")
    assert fn([3, 1, 2], None) == [1, 2, 3]

    bare_print = load_setup_function("def setup(ctx, tools):\n    return print\n")
    with pytest.raises(NameError):
        bare_print(None, None)


def _nested_project(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    return project


def test_context_paths_are_not_filesystem_handles(tmp_path: Path) -> None:
    project = _nested_project(tmp_path)
    session = _session(project)
    script = _script(
        project,
        """
        def setup(ctx, tools):
            ctx.project_dir.parent.joinpath("escaped.txt").write_text("pwned")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "setup_script_failed"
    assert "AttributeError" in outcome.error["message"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["project"]


def test_context_paths_are_plain_strings(tmp_path: Path) -> None:
    session = _session(tmp_path)
    script = _script(
        tmp_path,
        """
        def setup(ctx, tools):
            tools.files.write("kinds.txt", str(isinstance(ctx.project_dir, str) and isinstance(ctx.cwd, str)))
        """,
    )
    assert run_setup_script(script, session).ok is True
    assert (tmp_path / "kinds.txt").read_text(encoding="utf-8") == "True"


def test_tool_internals_cannot_be_rebound(tmp_path: Path) -> None:
    project = _nested_project(tmp_path)
    session = _session(project)
    script = _script(
        project,
        """
        def setup(ctx, tools):
            r = tools.files._resolver
            r._root = r._root.parent
            tools.files.write("rebound.txt", "pwned")
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error is not None
    assert outcome.error["code"] == "sandbox_violation"
    assert not (tmp_path / "rebound.txt").exists()
    assert not (project / "rebound.txt").exists()
    violations = list(session.audit.iter_events(EVENT_SANDBOX_VIOLATION))
    assert [v["data"]["line"] for v in violations] == [3, 4, 4]


def test_tool_methods_cannot_be_replaced(tmp_path: Path) -> None:
    project = _nested_project(tmp_path)
    session = _session(project)
    script = _script(
        project,
        """
        def setup(ctx, tools):
            tools.files.read = tools.files.write
        """,
    )

    outcome = run_setup_script(script, session)

    assert outcome.ok is False
    assert outcome.error is not None
    assert "AttributeError" in outcome.error["message"]
    session.tools.files.write("a.txt", "x")
    assert session.tools.files.read("a.txt") == "x"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["project"]
