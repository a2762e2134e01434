import os
import sys

import pytest

from suipanel import config
from suipanel.config import LogLevel


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("SUI_DEBUG", "SUI_LOG_LEVEL", "SUI_DB_FOLDER"):
        monkeypatch.delenv(key, raising=False)


def test_is_debug_only_for_exact_true(monkeypatch):
    assert config.is_debug() is False
    monkeypatch.setenv("SUI_DEBUG", "TRUE")
    assert config.is_debug() is False
    monkeypatch.setenv("SUI_DEBUG", "true")
    assert config.is_debug() is True


def test_default_log_level_is_info():
    assert config.get_log_level() is LogLevel.INFO


@pytest.mark.parametrize("value", ["debug", "info", "warn", "error"])
def test_log_level_from_env(monkeypatch, value):
    monkeypatch.setenv("SUI_LOG_LEVEL", value)
    assert config.get_log_level().value == value


def test_debug_overrides_log_level(monkeypatch):
    monkeypatch.setenv("SUI_LOG_LEVEL", "error")
    monkeypatch.setenv("SUI_DEBUG", "true")
    assert config.get_log_level() is LogLevel.DEBUG


def test_unknown_log_level_raises(monkeypatch):
    monkeypatch.setenv("SUI_LOG_LEVEL", "loud")
    with pytest.raises(ValueError):
        config.get_log_level()


def test_db_folder_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SUI_DB_FOLDER", str(tmp_path))
    assert config.get_db_folder_path() == str(tmp_path)


def test_db_path_uses_folder_and_name(monkeypatch, tmp_path):
    monkeypatch.setenv("SUI_DB_FOLDER", str(tmp_path))
    assert config.get_db_path() == f"{tmp_path}/{config.get_name()}.db"


def test_db_folder_defaults_next_to_program(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "prog")])
    folder = config.get_db_folder_path()
    assert folder == os.path.join(str(tmp_path), "db")


def test_name_and_version_are_trimmed():
    assert config.get_name() == "s-ui"
    assert config.get_version() == config.get_version().strip()
    assert config.get_version()