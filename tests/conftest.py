"""
Pytest configuration and shared fixtures for the songbook_toolchain test suite.

Real processes are used wherever practical: the toolchain programs are
replaced by small POSIX shell scripts written into a temporary directory.
"""

import shutil
import sys
import tempfile
import textwrap
from pathlib import Path

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from songbook_toolchain.models.config import (  # noqa: E402
    AppConfig,
    EngineConfig,
    RuleConfig,
    ToolchainConfig,
)


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def bin_dir(temp_dir):
    """Directory holding the fake toolchain programs."""
    path = temp_dir / "bin"
    path.mkdir()
    return path


@pytest.fixture
def fake_tool(bin_dir):
    """
    Factory writing an executable shell script and returning its absolute path.

    Usage: fake_tool("make", 'echo "make $@"; exit 0')
    """

    def _make(name: str, body: str = "exit 0") -> str:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + textwrap.dedent(body).strip() + "\n")
        path.chmod(0o755)
        return str(path)

    return _make


@pytest.fixture
def songbook_workspace(temp_dir):
    """A valid songbook working directory with one songbook file."""
    workspace = temp_dir / "songbook"
    workspace.mkdir()
    (workspace / "makefile").write_text("all:\n\t@echo building\n")
    (workspace / "songbook.py").write_text("# generator\n")
    for entry in ("songs", "img", "lilypond", "utils"):
        (workspace / entry).mkdir()
    (workspace / "mybook.sb").write_text('{"songs": "all"}\n')
    return workspace


@pytest.fixture
def sample_rules():
    """A small classification rule set, already sorted by priority."""
    return [
        RuleConfig(priority=200, severity="error", match_type="prefix", patterns="! "),
        RuleConfig(priority=190, severity="error", match_type="regex",
                   patterns=r"^make(\[\d+\])?: \*\*\*", tool="make"),
        RuleConfig(priority=150, severity="error", match_type="regex", patterns=r"(?i)\berror\b"),
        RuleConfig(priority=100, severity="warning", match_type="regex", patterns=r"(?i)\bwarning\b"),
    ]


@pytest.fixture
def app_config(fake_tool, sample_rules):
    """
    Configuration whose toolchain points at well-behaved fake tools.

    Every tool echoes its arguments and exits 0. Tests replace individual
    tools with ``fake_tool`` to script failures.
    """
    toolchain = ToolchainConfig(
        build_tool=fake_tool("make", 'echo "make $@"'),
        vcs_tool=fake_tool("git", 'echo "git $@"'),
        image_tool=fake_tool("convert", 'echo "convert $1"'),
        lint_tool=fake_tool("lint", 'echo "lint ok"'),
        lint_args=[],
    )
    engine = EngineConfig(cancel_grace_timeout=1.0, kill_timeout=1.0)
    return AppConfig(engine=engine, toolchain=toolchain, rules=sample_rules)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_config_data():
    """Raw config.toml contents."""
    return {
        "engine": {
            "cancel_grace_timeout": 2.0,
            "kill_timeout": 1.0,
            "merge_stderr": True,
            "resize_failure_policy": "stop",
        },
        "toolchain": {
            "build_tool": "gmake",
            "default_remote": "https://example.org/songbook.git",
            "lint_issues_exit_codes": [1, 3],
        },
        "workspace": {
            "songbook_extension": ".sb",
        },
        "logging": {
            "level": "debug",
        },
    }


@pytest.fixture
def sample_rules_data():
    """Raw rules.toml rule tables."""
    return [
        {"priority": 100, "severity": "warning", "match_type": "contains", "patterns": "Overfull"},
        {"priority": 200, "severity": "error", "match_type": "prefix", "patterns": "! "},
        {"priority": 150, "severity": "ERROR", "match_type": "regex",
         "patterns": "^fatal:", "tool": "git"},
    ]


@pytest.fixture
def config_files(temp_dir, sample_config_data, sample_rules_data):
    """Create temporary configuration files for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    config_data = dict(sample_config_data, paths={"rules_config": "rules.toml"})
    with open(config_file, "w") as f:
        toml.dump(config_data, f)

    rules_file = temp_dir / "rules.toml"
    with open(rules_file, "w") as f:
        toml.dump({"rules": sample_rules_data}, f)

    return {"config": config_file, "rules": rules_file, "dir": temp_dir}


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration and classification caches after each test."""
    from songbook_toolchain.config import clear_config_cache, set_config_path
    from songbook_toolchain.config.manager import _DEFAULT_CONFIG_FILE_PATH
    from songbook_toolchain.classification import clear_classification_cache

    yield

    clear_config_cache()
    clear_classification_cache()
    set_config_path(_DEFAULT_CONFIG_FILE_PATH)
