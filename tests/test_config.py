"""Tests for environment loading and config accessors."""
import os

import pytest

from kinetic import config
from kinetic.config import ConfigError, REQUIRED_ENV, load_environment
from kinetic.logging_utils import log_activity


def _unset(monkeypatch, *names):
    # setenv first so teardown removes whatever load_dotenv writes
    for name in names:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_load_environment_reads_dotenv_from_working_directory(tmp_path, monkeypatch):
    _unset(monkeypatch, *REQUIRED_ENV)
    (tmp_path / ".env").write_text("".join(f"{var}=from-dotenv\n" for var in REQUIRED_ENV))
    monkeypatch.chdir(tmp_path)

    load_environment(validate=True)

    assert all(os.getenv(var) == "from-dotenv" for var in REQUIRED_ENV)


def test_load_environment_without_dotenv_names_missing_vars(tmp_path, monkeypatch):
    _unset(monkeypatch, *REQUIRED_ENV)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError) as exc_info:
        load_environment(validate=True)
    assert "TWITTER_BEARER_TOKEN" in str(exc_info.value)


def test_logs_dir_from_dotenv_is_used(tmp_path, monkeypatch):
    _unset(monkeypatch, "KINETIC_LOGS_DIR")
    target = tmp_path / "mylogs"
    (tmp_path / ".env").write_text(f"KINETIC_LOGS_DIR={target}\n")
    monkeypatch.chdir(tmp_path)

    load_environment(validate=False)
    log_activity("TEST", "hello")

    assert config.logs_dir() == target
    assert "TEST: hello" in (target / "activity.log").read_text()


def test_logs_dir_defaults_under_project(monkeypatch):
    _unset(monkeypatch, "KINETIC_LOGS_DIR")
    assert config.logs_dir() == config.DEFAULT_LOGS_DIR


def test_feature_enabled_only_false_disables(monkeypatch):
    monkeypatch.setenv("ENABLE_AUTO_POSTS", "FALSE")
    assert config.feature_enabled("market") is False
    monkeypatch.setenv("ENABLE_AUTO_POSTS", "0")
    assert config.feature_enabled("market") is True
    assert config.feature_enabled("unknown") is True
