"""
Unit tests for TaskRunner with fake toolchain programs.
"""

import asyncio
import dataclasses
import threading
import time

import pytest

from songbook_toolchain.models.config import AppConfig
from songbook_toolchain.models.results import TaskResult
from songbook_toolchain.models.states import LineSeverity, LintOutcome, ProcessState, TaskState
from songbook_toolchain.models.tasks import (
    clean_task,
    compile_task,
    download_task,
    latex_lint_task,
    resize_covers_task,
)
from songbook_toolchain.orchestration import LogSink, TaskRunner, resolve_lint_outcome
from songbook_toolchain.validation import TaskAlreadyRunningError


def _with_toolchain(config: AppConfig, **changes) -> AppConfig:
    return dataclasses.replace(config, toolchain=dataclasses.replace(config.toolchain, **changes))


def _with_engine(config: AppConfig, **changes) -> AppConfig:
    return dataclasses.replace(config, engine=dataclasses.replace(config.engine, **changes))


def _wait_for(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


@pytest.mark.unit
class TestTaskRunnerExecute:
    """Basic execution and result reporting."""

    def test_clean_succeeds(self, songbook_workspace, app_config):
        sink = LogSink()
        runner = TaskRunner(songbook_workspace, config=app_config, log_sink=sink)
        task = clean_task()

        result = runner.execute(task)

        assert result.state is TaskState.SUCCEEDED
        assert result.handles_created == 1
        assert result.handles[0].invocation.argv == [app_config.toolchain.build_tool, "clean"]
        assert result.exit_code == 0
        assert [line.text for line in result.lines] == ["make clean"]
        assert result.lines[0].task_id == task.task_id
        assert result.lines[0].handle_id == result.handles[0].handle_id
        assert result.started_at <= result.finished_at
        assert not runner.is_busy

    def test_sink_keeps_output_after_result_is_dropped(self, songbook_workspace, app_config):
        sink = LogSink()
        runner = TaskRunner(songbook_workspace, config=app_config, log_sink=sink)
        task = compile_task("mybook.pdf")
        runner.execute(task)
        assert [line.text for line in sink.lines_for_task(task.task_id)] == ["make mybook.pdf"]

    def test_default_sink_uses_configured_rules(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", 'echo "make: *** [all] Error 1"; exit 2'))
        runner = TaskRunner(songbook_workspace, config=config)
        result = runner.execute(clean_task())
        assert result.lines[0].severity is LineSeverity.ERROR

    def test_failure(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", 'echo "No rule to make target"; exit 2'))
        result = TaskRunner(songbook_workspace, config=config).execute(compile_task("mybook.pdf"))
        assert result.state is TaskState.FAILED
        assert result.exit_code == 2
        assert result.message == "failed (exit code 2)"

    def test_crash(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", "kill -SEGV $$"))
        result = TaskRunner(songbook_workspace, config=config).execute(clean_task())
        assert result.state is TaskState.CRASHED
        assert result.handles[0].terminal.signal == 11

    def test_tool_not_found(self, songbook_workspace, app_config, temp_dir):
        config = _with_toolchain(app_config, build_tool=str(temp_dir / "no-make"))
        sink = LogSink()
        result = TaskRunner(songbook_workspace, config=config, log_sink=sink).execute(clean_task())
        assert result.state is TaskState.TOOL_NOT_FOUND
        assert result.handles_created == 1
        assert result.handles[0].terminal.state is ProcessState.TOOL_NOT_FOUND
        assert len(sink) == 0

    def test_configuration_error_creates_no_handle(self, songbook_workspace, app_config):
        runner = TaskRunner(songbook_workspace, config=app_config)
        result = runner.execute(download_task("https://example.org/sb.git"))
        assert result.state is TaskState.CONFIGURATION_ERROR
        assert result.handles_created == 0
        assert runner.handles == []
        assert "confirmed" in result.message

    def test_execute_async(self, songbook_workspace, app_config):
        runner = TaskRunner(songbook_workspace, config=app_config)
        result = asyncio.run(runner.execute_async(clean_task()))
        assert result.state is TaskState.SUCCEEDED


@pytest.mark.unit
class TestTaskRunnerConcurrency:
    """One task instance at a time; independent runners in parallel."""

    def test_same_task_twice_raises(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", "echo started; sleep 30"))
        task = clean_task()
        runner = TaskRunner(songbook_workspace, config=config)
        other_runner = TaskRunner(songbook_workspace, config=config)

        thread = threading.Thread(target=runner.execute, args=(task,))
        thread.start()
        try:
            assert _wait_for(lambda: runner.current_handle is not None and runner.current_handle.is_running)
            with pytest.raises(TaskAlreadyRunningError):
                other_runner.execute(task)
        finally:
            runner.cancel()
            thread.join(15)
        assert not thread.is_alive()

    def test_busy_runner_raises(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", "sleep 30"))
        runner = TaskRunner(songbook_workspace, config=config)

        thread = threading.Thread(target=runner.execute, args=(clean_task(),))
        thread.start()
        try:
            assert _wait_for(lambda: runner.current_handle is not None)
            with pytest.raises(TaskAlreadyRunningError):
                runner.execute(clean_task())
        finally:
            runner.cancel()
            thread.join(15)

    def test_task_can_run_again_after_completion(self, songbook_workspace, app_config):
        runner = TaskRunner(songbook_workspace, config=app_config)
        task = clean_task()
        assert runner.execute(task).succeeded
        assert runner.execute(task).succeeded

    def test_independent_runners_do_not_block_each_other(self, temp_dir, app_config, fake_tool):
        slow_dir = temp_dir / "slow"
        fast_dir = temp_dir / "fast"
        slow_dir.mkdir()
        fast_dir.mkdir()
        slow_config = _with_toolchain(app_config, build_tool=fake_tool("slow-make", "sleep 30"))
        sink = LogSink()
        slow_runner = TaskRunner(slow_dir, config=slow_config, log_sink=sink)
        fast_runner = TaskRunner(fast_dir, config=app_config, log_sink=sink)

        thread = threading.Thread(target=slow_runner.execute, args=(clean_task(),))
        thread.start()
        try:
            assert _wait_for(lambda: slow_runner.current_handle is not None)
            result = fast_runner.execute(clean_task())
            assert result.succeeded
            assert slow_runner.is_busy
        finally:
            slow_runner.cancel()
            thread.join(15)

    def test_cancel_idle_runner(self, songbook_workspace, app_config):
        assert TaskRunner(songbook_workspace, config=app_config).cancel() is False


@pytest.mark.unit
class TestLatexLint:
    """Lint outcomes distinguish findings from checker failures."""

    @pytest.mark.parametrize("body, state, outcome", [
        ('echo "all songs ok"', TaskState.SUCCEEDED, LintOutcome.CLEAN),
        ('echo "songs/a.sg:3: warning: unbalanced brace"; exit 1', TaskState.FAILED, LintOutcome.ISSUES_FOUND),
        ('echo "Traceback (most recent call last):"; exit 2', TaskState.FAILED, LintOutcome.CHECKER_FAILED),
        ("kill -ABRT $$", TaskState.CRASHED, LintOutcome.CHECKER_FAILED),
    ])
    def test_outcomes(self, songbook_workspace, app_config, fake_tool, body, state, outcome):
        config = _with_toolchain(app_config, lint_tool=fake_tool("lint", body))
        result = TaskRunner(songbook_workspace, config=config).execute(latex_lint_task().configure())
        assert result.state is state
        assert result.lint_outcome is outcome

    def test_missing_checker(self, songbook_workspace, app_config, temp_dir):
        config = _with_toolchain(app_config, lint_tool=str(temp_dir / "no-python"))
        result = TaskRunner(songbook_workspace, config=config).execute(latex_lint_task().configure())
        assert result.state is TaskState.TOOL_NOT_FOUND
        assert result.lint_outcome is LintOutcome.CHECKER_FAILED

    def test_configured_issue_codes(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, lint_tool=fake_tool("lint", "exit 3"), lint_issues_exit_codes=[3])
        result = TaskRunner(songbook_workspace, config=config).execute(latex_lint_task().configure())
        assert result.lint_outcome is LintOutcome.ISSUES_FOUND

    def test_other_tasks_have_no_outcome(self, songbook_workspace, app_config):
        assert TaskRunner(songbook_workspace, config=app_config).execute(clean_task()).lint_outcome is None

    def test_cancelled_run_is_checker_failure(self):
        result = TaskResult(task=latex_lint_task(), state=TaskState.FAILED, cancelled=True)
        assert resolve_lint_outcome(result, [1]) is LintOutcome.CHECKER_FAILED


@pytest.mark.unit
class TestResizeCovers:
    """Batch behaviour of the cover resizing task."""

    @pytest.fixture
    def covers(self, songbook_workspace):
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            (songbook_workspace / "img" / name).write_bytes(b"\xff\xd8")
        return songbook_workspace

    @pytest.fixture
    def failing_convert(self, fake_tool):
        return fake_tool("convert", 'echo "convert $1"; case "$1" in *b.jpg) exit 1;; esac')

    def test_all_images(self, covers, app_config):
        result = TaskRunner(covers, config=app_config).execute(resize_covers_task().configure())
        assert result.state is TaskState.SUCCEEDED
        assert [line.text for line in result.lines] == ["convert img/a.jpg", "convert img/b.jpg", "convert img/c.jpg"]
        assert result.handles_created == 3
        assert len({record.handle_id for record in result.handles}) == 3

    def test_empty_batch_succeeds(self, songbook_workspace, app_config):
        result = TaskRunner(songbook_workspace, config=app_config).execute(resize_covers_task().configure())
        assert result.state is TaskState.SUCCEEDED
        assert result.handles_created == 0

    def test_continue_policy(self, covers, app_config, failing_convert):
        config = _with_toolchain(app_config, image_tool=failing_convert)
        result = TaskRunner(covers, config=config).execute(resize_covers_task().configure())
        assert result.state is TaskState.FAILED
        assert result.handles_created == 3
        assert result.exit_code == 1

    def test_stop_policy(self, covers, app_config, failing_convert):
        config = _with_engine(_with_toolchain(app_config, image_tool=failing_convert), resize_failure_policy="stop")
        result = TaskRunner(covers, config=config).execute(resize_covers_task().configure())
        assert result.state is TaskState.FAILED
        assert result.handles_created == 2
        assert [line.text for line in result.lines] == ["convert img/a.jpg", "convert img/b.jpg"]

    def test_missing_image_tool_stops_batch(self, covers, app_config, temp_dir):
        config = _with_toolchain(app_config, image_tool=str(temp_dir / "no-convert"))
        result = TaskRunner(covers, config=config).execute(resize_covers_task().configure())
        assert result.state is TaskState.TOOL_NOT_FOUND
        assert result.handles_created == 1


@pytest.mark.unit
@pytest.mark.slow
class TestTaskRunnerCancel:
    """Cancellation of a running task."""

    def test_cancel_running_task(self, songbook_workspace, app_config, fake_tool):
        config = _with_toolchain(app_config, build_tool=fake_tool("make", "echo compiling; sleep 30"))
        runner = TaskRunner(songbook_workspace, config=config)
        results = []

        thread = threading.Thread(target=lambda: results.append(runner.execute(compile_task("mybook.pdf"))))
        thread.start()
        assert _wait_for(lambda: len(runner.log_sink) == 1)

        assert runner.cancel() is True
        thread.join(15)

        [result] = results
        assert result.state is TaskState.FAILED
        assert result.cancelled
        assert result.message == "cancelled"
        assert [line.text for line in result.lines] == ["compiling"]
