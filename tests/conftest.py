"""Shared fixtures: isolated Git configuration and repository helpers."""

import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

from gitlink.config import Config
from gitlink.host import NullHost

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Any:
    """Pins identity and branch defaults so tests never read the user's Git setup."""
    home = tmp_path_factory.mktemp("home")
    gitconfig = home / ".gitconfig"
    gitconfig.write_text(
        "[init]\n\tdefaultBranch = main\n"
        "[pull]\n\trebase = false\n"
        "[commit]\n\tgpgsign = false\n"
        "[advice]\n\tdetachedHead = false\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")

    monkeypatch.setattr("gitlink.config.CONFIG_FILE", home / "missing.toml")
    Config._global_cache = None
    yield
    Config._global_cache = None


class RecordingHost(NullHost):
    """A host that records every callback and answers prompts from a queue."""

    def __init__(self, path: Path, answers: list[str | None] | None = None):
        super().__init__(path)
        self.answers = list(answers or [])
        self.errors: list[BaseException] = []
        self.messages: list[tuple[str, str]] = []
        self.prompts: list[tuple[str, str, str]] = []
        self.busy: list[bool] = []
        self.tree_refreshes = 0
        self.rescans = 0

    def refresh_tree(self) -> None:
        self.tree_refreshes += 1

    def rescan_files(self) -> None:
        self.rescans += 1

    def set_busy(self, busy: bool) -> None:
        self.busy.append(busy)

    def report_error(self, error: BaseException) -> None:
        self.errors.append(error)

    def show_message(self, title: str, message: str) -> None:
        self.messages.append((title, message))

    def prompt(self, title: str, message: str, default: str = "") -> str | None:
        self.prompts.append((title, message, default))
        return self.answers.pop(0) if self.answers else None

    def load_icon(self, name: str) -> Any:
        return f"icon:{name}"


def git(path: Path, *args: str) -> str:
    """Runs a raw git command for test setup and inspection."""
    res = subprocess.run(
        ["git", *args], cwd=path, capture_output=True, text=True, check=True
    )
    return res.stdout.strip()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory with a couple of files and no repository."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "main.ino").write_text("void setup() {}\n")
    (root / "src" / "util.cpp").write_text("int x = 1;\n")
    return root


@pytest.fixture
def host(project: Path) -> RecordingHost:
    return RecordingHost(project)
