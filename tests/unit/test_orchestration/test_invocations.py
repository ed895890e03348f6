"""
Unit tests for building invocations from tasks.
"""

import pytest

from songbook_toolchain.models.config import AppConfig, ToolchainConfig
from songbook_toolchain.models.tasks import (
    clean_task,
    compile_task,
    download_task,
    latex_lint_task,
    resize_covers_task,
)
from songbook_toolchain.orchestration import build_invocations
from songbook_toolchain.validation import ConfigurationError


@pytest.fixture
def default_config():
    return AppConfig()


@pytest.mark.unit
class TestCleanAndCompile:
    """Build tool invocations."""

    def test_clean(self, songbook_workspace, default_config):
        [invocation] = build_invocations(clean_task(), songbook_workspace, default_config)
        assert invocation.argv == ["make", "clean"]
        assert invocation.cwd == songbook_workspace

    def test_compile(self, songbook_workspace, default_config):
        [invocation] = build_invocations(compile_task("mybook.pdf"), songbook_workspace, default_config)
        assert invocation.argv == ["make", "mybook.pdf"]

    def test_configured_build_tool(self, songbook_workspace):
        config = AppConfig(toolchain=ToolchainConfig(build_tool="gmake", clean_target="distclean"))
        [invocation] = build_invocations(clean_task(), songbook_workspace, config)
        assert invocation.argv == ["gmake", "distclean"]

    def test_environment_is_passed(self, songbook_workspace):
        config = AppConfig(toolchain=ToolchainConfig(environment={"TEXINPUTS": "tex:"}))
        [invocation] = build_invocations(clean_task(), songbook_workspace, config)
        assert invocation.env == {"TEXINPUTS": "tex:"}

    def test_missing_working_directory(self, temp_dir, default_config):
        with pytest.raises(ConfigurationError, match="does not exist"):
            build_invocations(clean_task(), temp_dir / "missing", default_config)

    def test_compile_without_build_file(self, songbook_workspace, default_config):
        (songbook_workspace / "makefile").unlink()
        with pytest.raises(ConfigurationError, match="No build file"):
            build_invocations(compile_task("mybook.pdf"), songbook_workspace, default_config)

    @pytest.mark.parametrize("target", ["", "-B", "../mybook.pdf"])
    def test_compile_invalid_target(self, songbook_workspace, default_config, target):
        with pytest.raises(ConfigurationError):
            build_invocations(compile_task(target), songbook_workspace, default_config)

    def test_deterministic(self, songbook_workspace, default_config):
        task = compile_task("mybook.pdf")
        first = build_invocations(task, songbook_workspace, default_config)
        second = build_invocations(task, songbook_workspace, default_config)
        assert [i.argv for i in first] == [i.argv for i in second]


@pytest.mark.unit
class TestDownload:
    """Version-control invocations."""

    def test_unconfirmed(self, temp_dir, default_config):
        with pytest.raises(ConfigurationError, match="confirmed"):
            build_invocations(download_task("https://example.org/sb.git"), temp_dir / "sb", default_config)

    def test_clone_into_new_directory(self, temp_dir, default_config):
        target = temp_dir / "songbook"
        task = download_task("https://example.org/sb.git").configure()
        [invocation] = build_invocations(task, target, default_config)
        assert invocation.argv == ["git", "clone", "https://example.org/sb.git", str(target.resolve())]
        assert invocation.cwd == temp_dir.resolve()

    def test_clone_into_empty_directory(self, temp_dir, default_config):
        target = temp_dir / "songbook"
        target.mkdir()
        task = download_task("https://example.org/sb.git").configure()
        [invocation] = build_invocations(task, target, default_config)
        assert invocation.args[0] == "clone"

    def test_default_remote(self, temp_dir):
        config = AppConfig(toolchain=ToolchainConfig(default_remote="git@example.org:sb.git"))
        [invocation] = build_invocations(download_task().configure(), temp_dir / "songbook", config)
        assert "git@example.org:sb.git" in invocation.args

    def test_update_existing_snapshot(self, songbook_workspace, default_config):
        (songbook_workspace / ".git").mkdir()
        [invocation] = build_invocations(download_task().configure(), songbook_workspace, default_config)
        assert invocation.argv == ["git", "pull"]
        assert invocation.cwd == songbook_workspace

    def test_no_remote(self, temp_dir, default_config):
        with pytest.raises(ConfigurationError, match="remote"):
            build_invocations(download_task().configure(), temp_dir / "songbook", default_config)

    def test_non_empty_directory_without_snapshot(self, songbook_workspace, default_config):
        task = download_task("https://example.org/sb.git").configure()
        with pytest.raises(ConfigurationError, match="not empty"):
            build_invocations(task, songbook_workspace, default_config)


@pytest.mark.unit
class TestResizeAndLint:
    """Image tool and checker invocations."""

    def test_one_invocation_per_image(self, songbook_workspace, default_config):
        for name in ("b.jpg", "a.png"):
            (songbook_workspace / "img" / name).write_bytes(b"")

        invocations = build_invocations(resize_covers_task().configure(), songbook_workspace, default_config)

        assert [i.argv for i in invocations] == [
            ["convert", "img/a.png", "-resize", "128x128>", "img/a.png"],
            ["convert", "img/b.jpg", "-resize", "128x128>", "img/b.jpg"],
        ]
        assert [i.subject for i in invocations] == ["img/a.png", "img/b.jpg"]

    def test_no_images(self, songbook_workspace, default_config):
        assert build_invocations(resize_covers_task().configure(), songbook_workspace, default_config) == []

    def test_lint(self, songbook_workspace, default_config):
        [invocation] = build_invocations(latex_lint_task().configure(), songbook_workspace, default_config)
        assert invocation.argv == ["python3", "utils/latex-preprocessing.py"]
        assert invocation.cwd == songbook_workspace

    def test_lint_unconfirmed(self, songbook_workspace, default_config):
        with pytest.raises(ConfigurationError):
            build_invocations(latex_lint_task(), songbook_workspace, default_config)
