"""Tests for the configuration management subsystem."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitlink.config import Config, parse_size, parse_time
from gitlink.constants import ICON_CONFLICTING


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with sensible defaults."""
    conf = Config()
    assert conf.core.remote_name == "origin"
    assert conf.core.initial_commit_message == "Initial repository creation"
    assert conf.cache.refresh_interval == 1.0
    assert conf.icons.untracked == ICON_CONFLICTING
    assert conf.core.identity_env() == {}


def test_identity_env() -> None:
    conf = Config()
    conf.core.author_name = "Ada"
    conf.core.author_email = "ada@example.com"

    assert conf.core.identity_env() == {
        "GIT_AUTHOR_NAME": "Ada",
        "GIT_COMMITTER_NAME": "Ada",
        "GIT_AUTHOR_EMAIL": "ada@example.com",
        "GIT_COMMITTER_EMAIL": "ada@example.com",
    }


def test_config_load_merges_layers(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies the cascading merge logic (Defaults -> Global -> Local).

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    global_config_path = tmp_path / "global_config.toml"
    global_config_path.write_text(
        '[core]\nremote_name = "upstream"\n'
        '[cache]\nrefresh_interval = "2s"\n'
        '[icons]\nuntracked = "vcs-untracked.png"\n'
    )

    local_toml = tmp_path / "gitlink.toml"
    local_toml.write_text('[cache]\nrefresh_interval = "10ms"\n')

    mocker.patch("gitlink.config.CONFIG_FILE", global_config_path)

    conf = Config.load(repo_path=tmp_path)

    assert conf.core.remote_name == "upstream"  # From Global
    assert conf.cache.refresh_interval == pytest.approx(0.01)  # Local overrides
    assert conf.icons.untracked == "vcs-untracked.png"  # From Global


def test_local_overrides_do_not_leak_into_global_cache(
    tmp_path: Path, mocker: MagicMock
) -> None:
    """Verifies that one project's settings never bleed into another's."""
    mocker.patch("gitlink.config.CONFIG_FILE", tmp_path / "none.toml")
    project = tmp_path / "project"
    project.mkdir()
    (project / "gitlink.toml").write_text('[core]\nremote_name = "mine"\n')

    assert Config.load(repo_path=project).core.remote_name == "mine"
    assert Config.load(repo_path=tmp_path).core.remote_name == "origin"


def test_config_load_from_pyproject(tmp_path: Path) -> None:
    """Verifies that configuration can be loaded from pyproject.toml."""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(
        '[tool.gitlink.core]\nremote_name = "backup"\n'
        '[tool.gitlink.logging]\nlevel = "debug"\n'
    )

    conf = Config.load(repo_path=tmp_path)

    assert conf.core.remote_name == "backup"
    assert conf.logging.level == "DEBUG"


def test_parse_size() -> None:
    """Verifies that human-readable sizes are correctly converted to bytes."""
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")


def test_parse_time() -> None:
    """Verifies that human-readable times are correctly converted to seconds."""
    assert parse_time(2) == 2.0
    assert parse_time("10ms") == pytest.approx(0.01)
    assert parse_time("30s") == 30
    assert parse_time("2 sec") == 2
    assert parse_time("1.5 min") == 90

    with pytest.raises(ValueError, match=r"Invalid time format '10 lightyears'"):
        parse_time("10 lightyears")


def test_config_invalid_keys_and_values(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    import logging

    caplog.set_level(logging.WARNING)

    local_toml = tmp_path / "gitlink.toml"
    local_toml.write_text(
        "[cache]\n"
        'refresh_interval = "soon"\n'
        'fake_setting = "ignored"\n'
        "[logging]\n"
        'max_log_size = "10 gallons"\n'
        'level = "LOUD"\n'
    )

    conf = Config.load(repo_path=tmp_path)

    assert conf.cache.refresh_interval == 1.0
    assert conf.logging.max_log_size == 5242880
    assert conf.logging.level == "INFO"

    assert "Unknown config keys in [cache]: fake_setting" in caplog.text
    assert "Config error in [cache].refresh_interval: Invalid time format" in caplog.text
    assert "Config error in [logging].max_log_size: Invalid size format" in caplog.text
    assert "Config error in [logging].level: Invalid log level 'LOUD'" in caplog.text


def test_config_syntax_error_is_logged(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    (tmp_path / "gitlink.toml").write_text("[core\nremote_name = ")

    conf = Config.load(repo_path=tmp_path)

    assert conf.core.remote_name == "origin"
    assert "Config syntax error" in caplog.text
