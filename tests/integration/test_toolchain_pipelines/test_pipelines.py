"""
Integration tests for complete toolchain runs.

Each scenario drives the real runner and sequencer against fake tools that
behave like make, git and the image tool, including slow and failing ones.
"""

import concurrent.futures
import dataclasses
import threading
import time

import pytest

from songbook_toolchain.models.states import LineSeverity, SequenceState, TaskState
from songbook_toolchain.models.tasks import (
    clean_task,
    compile_task,
    download_task,
    resize_covers_task,
)
from songbook_toolchain.orchestration import LogSink, Sequencer, TaskRunner, build_pipeline


def _replace_toolchain(config, **changes):
    return dataclasses.replace(config, toolchain=dataclasses.replace(config.toolchain, **changes))


def _wait_for(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return False


@pytest.mark.integration
class TestBuildPipelines:
    """Clean-then-compile pipelines."""

    def test_clean_then_compile(self, songbook_workspace, app_config):
        sink = LogSink.with_rules(app_config.rules)
        runner = TaskRunner(songbook_workspace, config=app_config, log_sink=sink)
        result = Sequencer([clean_task(), compile_task("songbook.pdf")], runner).run()

        assert result.state is SequenceState.SUCCEEDED
        assert result.handles_created == 2
        compile_step = result.steps[1]
        assert compile_step.handles[0].invocation.argv == [app_config.toolchain.build_tool, "songbook.pdf"]
        assert compile_step.state is TaskState.SUCCEEDED
        assert [line.task_label for line in sink.lines()] == ["clean", "compile songbook.pdf"]

    def test_failed_clean_skips_compile(self, songbook_workspace, app_config, fake_tool):
        make = fake_tool("make", '[ "$1" = "clean" ] && { echo "make: *** No rule to make target"; exit 2; }; echo built')
        config = _replace_toolchain(app_config, build_tool=make)
        sink = LogSink.with_rules(config.rules)
        runner = TaskRunner(songbook_workspace, config=config, log_sink=sink)

        result = Sequencer([clean_task(), compile_task("songbook.pdf")], runner).run()

        assert result.state is SequenceState.FAILED
        assert result.failed_index == 0
        assert result.steps[0].exit_code == 2
        assert len(runner.handles) == 1
        assert [line.text for line in sink.lines()] == ["make: *** No rule to make target"]
        assert sink.lines()[0].severity is LineSeverity.ERROR

    def test_songbook_pipeline_with_latex_output(self, songbook_workspace, app_config, fake_tool):
        make = fake_tool("make", """
            [ "$1" = "clean" ] && exit 0
            echo "This is pdfTeX"
            echo "Overfull hbox (1.2pt too wide)"
            echo "LaTeX Warning: Label(s) may have changed."
            echo "Output written on $1"
        """)
        config = _replace_toolchain(app_config, build_tool=make)
        sink = LogSink.with_rules(config.rules)

        result = build_pipeline(songbook_workspace / "mybook.sb", config=config, log_sink=sink).run()

        assert result.succeeded
        assert sink.severity_counts()[LineSeverity.WARNING] == 1
        assert sink.lines()[-1].text == "Output written on mybook.pdf"


@pytest.mark.integration
class TestDownload:
    """Clone and update of the songbook sources."""

    def test_existing_snapshot_is_updated(self, songbook_workspace, app_config):
        (songbook_workspace / ".git").mkdir()
        sink = LogSink()
        runner = TaskRunner(songbook_workspace, config=app_config, log_sink=sink)

        result = runner.execute(download_task().configure(confirmed=True))

        assert result.state is TaskState.SUCCEEDED
        assert result.handles[0].invocation.args == ["pull"]
        assert result.handles[0].invocation.cwd == songbook_workspace
        assert [line.text for line in sink.lines()] == ["git pull"]

    def test_clone_into_new_directory(self, temp_dir, app_config):
        destination = temp_dir / "fresh"
        runner = TaskRunner(destination, config=app_config)

        result = runner.execute(download_task("https://example.org/sb.git").configure(confirmed=True))

        assert result.state is TaskState.SUCCEEDED
        assert result.handles[0].invocation.args == ["clone", "https://example.org/sb.git", str(destination.resolve())]


@pytest.mark.integration
@pytest.mark.slow
class TestCancellation:
    """Cancelling a batch in the middle of a run."""

    def test_cancel_resize_after_two_images(self, songbook_workspace, app_config, fake_tool):
        for name in ("a", "b", "c", "d", "e"):
            (songbook_workspace / "img" / f"{name}.jpg").write_bytes(b"")
        convert = fake_tool("convert", """
            case "$1" in
                *c.jpg) sleep 30 ;;
                *) echo "convert $1" ;;
            esac
        """)
        config = _replace_toolchain(app_config, image_tool=convert)
        sink = LogSink()
        runner = TaskRunner(songbook_workspace, config=config, log_sink=sink)

        future_result = {}

        def run():
            future_result["result"] = runner.execute(resize_covers_task().configure(confirmed=True))

        thread = threading.Thread(target=run)
        thread.start()

        def on_third_image():
            handle = runner.current_handle
            return handle is not None and handle.invocation.subject == "img/c.jpg" and handle.is_running

        assert _wait_for(on_third_image)
        started = time.monotonic()
        assert runner.cancel()
        thread.join(timeout=20)

        assert not thread.is_alive()
        assert time.monotonic() - started < 10
        result = future_result["result"]
        assert result.state is TaskState.FAILED
        assert result.cancelled
        assert result.message == "cancelled"
        assert result.handles_created == 3
        assert [line.text for line in sink.lines()] == ["convert img/a.jpg", "convert img/b.jpg"]


@pytest.mark.integration
class TestTranscriptFidelity:
    """What the tools print is what the transcript holds."""

    def test_missing_executable(self, songbook_workspace, app_config):
        config = _replace_toolchain(app_config, build_tool="definitely-not-installed-make")
        sink = LogSink()
        result = TaskRunner(songbook_workspace, config=config, log_sink=sink).execute(clean_task())

        assert result.state is TaskState.TOOL_NOT_FOUND
        assert len(sink) == 0
        assert result.lines == []

    def test_recorded_lines_equal_emitted_lines(self, songbook_workspace, app_config, fake_tool):
        make = fake_tool("make", """
            i=1
            while [ $i -le 200 ]; do
                echo "line $i"
                [ $((i % 50)) -eq 0 ] && echo "stderr $i" >&2
                i=$((i + 1))
            done
        """)
        config = _replace_toolchain(app_config, build_tool=make)
        sink = LogSink()
        result = TaskRunner(songbook_workspace, config=config, log_sink=sink).execute(clean_task())

        assert result.succeeded
        expected = []
        for i in range(1, 201):
            expected.append(f"line {i}")
            if i % 50 == 0:
                expected.append(f"stderr {i}")
        assert [line.text for line in sink.lines()] == expected
        assert [line.seq for line in sink.lines()] == list(range(len(expected)))

    def test_parallel_runners_share_a_sink(self, temp_dir, app_config, fake_tool):
        make = fake_tool("make", 'for i in 1 2 3 4 5; do echo "$PWD $i"; done')
        config = _replace_toolchain(app_config, build_tool=make)
        sink = LogSink()
        first, second = temp_dir / "first", temp_dir / "second"
        first.mkdir()
        second.mkdir()

        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(
                lambda directory: TaskRunner(directory, config=config, log_sink=sink).execute(clean_task()),
                [first, second],
            ))

        assert all(result.succeeded for result in results)
        assert len(sink) == 10
        for result in results:
            texts = [line.text for line in sink.lines_for_task(result.task.task_id)]
            assert [text.rsplit(" ", 1)[1] for text in texts] == ["1", "2", "3", "4", "5"]
