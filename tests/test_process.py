import asyncio
import sys

from backup_scheduler.process import run_process, EXIT_NOT_EXECUTABLE


def test_stdout_is_streamed_into_file(tmp_path):
    target = tmp_path / "out.sql"
    result = asyncio.run(run_process(
        [sys.executable, "-c", "import sys; sys.stdout.write('SELECT 1;')"],
        stdout_path=str(target),
    ))

    assert result.ok
    assert target.read_text() == "SELECT 1;"


def test_nonzero_exit_reports_code_and_stderr():
    result = asyncio.run(run_process(
        [sys.executable, "-c", "import sys; sys.stderr.write('access denied'); sys.exit(3)"],
    ))

    assert not result.ok
    assert result.returncode == 3
    assert "access denied" in result.stderr


def test_environment_is_layered_on_current_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("KEEP_ME", "yes")
    target = tmp_path / "env.txt"
    asyncio.run(run_process(
        [sys.executable, "-c", "import os, sys; sys.stdout.write(os.environ['PGPASSWORD'] + os.environ['KEEP_ME'])"],
        env={"PGPASSWORD": "pw"},
        stdout_path=str(target),
    ))

    assert target.read_text() == "pwyes"


def test_missing_executable_is_a_failed_result(tmp_path):
    result = asyncio.run(run_process([str(tmp_path / "no-such-tool"), "--version"]))

    assert result.returncode == EXIT_NOT_EXECUTABLE
    assert "no-such-tool" in result.stderr
    assert result.tool == "no-such-tool"
