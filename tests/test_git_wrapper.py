import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitlink.git_wrapper import GitRepo


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    # A fake .git directory is enough for GitRepo to accept the path
    (tmp_path / ".git").mkdir()
    return GitRepo(tmp_path)


def test_rejects_path_without_git_dir(tmp_path: Path) -> None:
    """Verifies that a wrapper is never bound to a plain directory."""
    with pytest.raises(ValueError, match="Not a git repository"):
        GitRepo(tmp_path)


def test_run_raises_runtime_error_with_stderr(
    mocker: MagicMock, repo: GitRepo
) -> None:
    """Verifies that non-zero exits surface as RuntimeError carrying git's stderr."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            128, ["git", "log"], stderr="fatal: bad revision\n"
        ),
    )

    with pytest.raises(RuntimeError, match="Git error: fatal: bad revision"):
        repo._run(["log"])


def test_uncaptured_commands_still_report_stderr(
    mocker: MagicMock, repo: GitRepo
) -> None:
    """Verifies that push-style calls keep stdout on the terminal but surface stderr."""
    mock_run = mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            1, ["git", "pull"], stderr="fatal: couldn't find remote ref main\n"
        ),
    )

    with pytest.raises(RuntimeError, match="couldn't find remote ref main"):
        repo.pull("upstream")

    kwargs = mock_run.call_args.kwargs
    assert kwargs["stdout"] is None
    assert kwargs["stderr"] == subprocess.PIPE


def test_identity_env_is_layered_over_environment(
    mocker: MagicMock, tmp_path: Path
) -> None:
    """Verifies that extra variables are merged into, not replacing, os.environ."""
    (tmp_path / ".git").mkdir()
    mocker.patch.dict("os.environ", {"PATH": "/usr/bin"}, clear=True)
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "main\n"

    repo = GitRepo(tmp_path, env={"GIT_AUTHOR_NAME": "Ada"})
    assert repo.current_branch() == "main"

    env = mock_run.call_args.kwargs["env"]
    assert env == {"PATH": "/usr/bin", "GIT_AUTHOR_NAME": "Ada"}


def test_commit_flags(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies commit command construction for tracked-only and empty commits."""
    mock_run = mocker.patch.object(repo, "_run")

    repo.commit("msg", all_tracked=True)
    mock_run.assert_called_with(["commit", "-m", "msg", "--all"], capture=False)

    repo.commit("init", allow_empty=True)
    mock_run.assert_called_with(
        ["commit", "-m", "init", "--allow-empty"], capture=False
    )


def test_push_pull_and_branch_commands(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies the remote and branch commands passed to git."""
    mock_run = mocker.patch.object(repo, "_run")

    repo.push("origin")
    mock_run.assert_called_with(
        ["push", "--all", "--set-upstream", "origin"], capture=False
    )

    repo.pull("upstream")
    mock_run.assert_called_with(["pull", "--no-edit", "upstream"], capture=False)

    repo.pull("upstream", "refs/heads/main")
    mock_run.assert_called_with(
        ["pull", "--no-edit", "upstream", "refs/heads/main"], capture=False
    )

    repo.checkout("feature", create=True)
    mock_run.assert_called_with(["checkout", "-b", "feature"], capture=False)

    repo.merge("refs/heads/feature")
    mock_run.assert_called_with(
        ["merge", "--no-edit", "refs/heads/feature"], capture=False
    )

    repo.add("src/a b.cpp")
    mock_run.assert_called_with(["add", "--", "src/a b.cpp"], capture=False)


def test_status_porcelain_is_not_stripped(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies the leading status column survives for the first entry."""
    mocker.patch("gitlink.git_wrapper._git", return_value=" M main.ino\0")

    assert repo.status_porcelain() == " M main.ino\0"


def test_ls_tree_splits_nul_entries(mocker: MagicMock, repo: GitRepo) -> None:
    mocker.patch.object(repo, "_run", return_value="a.txt\0dir/with space.txt\0")

    assert repo.ls_tree() == ["a.txt", "dir/with space.txt"]


def test_list_remotes_parses_config(mocker: MagicMock, repo: GitRepo) -> None:
    """Verifies remote names are extracted from dotted config keys."""
    mock_run = mocker.patch.object(repo, "_run")
    mock_run.return_value = (
        "remote.origin.url git@example.com:me/proj.git\n"
        "remote.my.mirror.url https://example.com/proj.git"
    )

    assert repo.list_remotes() == {
        "origin": "git@example.com:me/proj.git",
        "my.mirror": "https://example.com/proj.git",
    }


def test_list_remotes_empty_when_none_configured(
    mocker: MagicMock, repo: GitRepo
) -> None:
    """Verifies that git's 'no match' exit code yields an empty mapping."""
    mocker.patch.object(repo, "_run", side_effect=RuntimeError("Git error: 1"))

    assert repo.list_remotes() == {}


def test_rev_parse_returns_none_on_failure(
    mocker: MagicMock, repo: GitRepo, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unresolvable revisions are logged at debug level, not raised."""
    import logging

    caplog.set_level(logging.DEBUG, logger="gitlink")
    mocker.patch.object(repo, "_run", side_effect=RuntimeError("unborn"))

    assert repo.rev_parse("HEAD") is None
    assert "rev-parse failed for 'HEAD'" in caplog.text
