"""
Tests for env.py (load_env_if_present, load_default_env, env_int, env_float).

Tests cover:
- Loading from .env file and reporting which file was used
- Skipping comments, blank lines and malformed lines
- Not overwriting existing environment variables
- Quote stripping
- Typed readers falling back on unset or malformed values
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest

from agentcore.env import env_float, env_int, load_default_env, load_env_if_present

_TEST_KEYS = [
    "AGENTCORE_TEST_A",
    "AGENTCORE_TEST_B",
    "AGENTCORE_TEST_C",
    "AGENTCORE_TEST_EXISTING",
    "AGENTCORE_TEST_COMMENTED",
]


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    env = tmp_path / ".env"
    env.write_text("AGENTCORE_TEST_A=hello\n" "AGENTCORE_TEST_B=world\n")
    return env


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Remove test env vars after each test."""
    yield
    for key in _TEST_KEYS:
        os.environ.pop(key, None)


class TestLoadEnvIfPresent:
    def test_loads_from_valid_file(self, env_file: Path) -> None:
        assert load_env_if_present([env_file]) == env_file
        assert os.environ.get("AGENTCORE_TEST_A") == "hello"
        assert os.environ.get("AGENTCORE_TEST_B") == "world"

    def test_missing_file_returns_none(self) -> None:
        assert load_env_if_present([Path("/nonexistent/path/.env")]) is None

    def test_skips_directories(self, tmp_path: Path) -> None:
        assert load_env_if_present([tmp_path]) is None

    def test_skips_comments_and_malformed_lines(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text(
            "# comment\n"
            "\n"
            "AGENTCORE_TEST_A=value\n"
            "# AGENTCORE_TEST_COMMENTED=nope\n"
            "no_equals_here\n"
            "=no_key\n"
        )
        load_env_if_present([env])

        assert os.environ.get("AGENTCORE_TEST_A") == "value"
        assert os.environ.get("AGENTCORE_TEST_COMMENTED") is None

    def test_does_not_overwrite_existing(self, tmp_path: Path) -> None:
        os.environ["AGENTCORE_TEST_EXISTING"] = "original"
        env = tmp_path / ".env"
        env.write_text("AGENTCORE_TEST_EXISTING=overwritten\n")
        load_env_if_present([env])

        assert os.environ.get("AGENTCORE_TEST_EXISTING") == "original"

    def test_value_keeps_inner_equals_and_drops_quotes(self, tmp_path: Path) -> None:
        env = tmp_path / ".env"
        env.write_text("AGENTCORE_TEST_A=a=b=c\n" "AGENTCORE_TEST_B='quoted value'\n")
        load_env_if_present([env])

        assert os.environ.get("AGENTCORE_TEST_A") == "a=b=c"
        assert os.environ.get("AGENTCORE_TEST_B") == "quoted value"

    def test_stops_after_first_valid_file(self, tmp_path: Path) -> None:
        first = tmp_path / "first.env"
        first.write_text("AGENTCORE_TEST_A=from_first\n")
        second = tmp_path / "second.env"
        second.write_text("AGENTCORE_TEST_A=from_second\nAGENTCORE_TEST_C=only_in_second\n")

        assert load_env_if_present([first, second]) == first
        assert os.environ.get("AGENTCORE_TEST_A") == "from_first"
        assert os.environ.get("AGENTCORE_TEST_C") is None


class TestLoadDefaultEnv:
    def test_loads_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("AGENTCORE_TEST_C=from_cwd\n")

        load_default_env()

        assert os.environ.get("AGENTCORE_TEST_C") == "from_cwd"


class TestTypedReaders:
    def test_unset_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AGENTCORE_TEST_A", raising=False)
        assert env_int("AGENTCORE_TEST_A", 7) == 7
        assert env_float("AGENTCORE_TEST_A", 1.5) == 1.5

    def test_parses_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTCORE_TEST_A", "4")
        monkeypatch.setenv("AGENTCORE_TEST_B", "0.25")
        assert env_int("AGENTCORE_TEST_A", 7) == 4
        assert env_float("AGENTCORE_TEST_B", 1.5) == 0.25

    def test_malformed_value_warns_and_uses_default(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("AGENTCORE_TEST_A", "many")
        with caplog.at_level("WARNING", logger="agentcore.env"):
            assert env_int("AGENTCORE_TEST_A", 7) == 7
        assert "AGENTCORE_TEST_A" in caplog.text
