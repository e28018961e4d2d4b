"""Tests for config loading."""

import os
from pathlib import Path

import pytest

from netwatch import config as config_mod
from netwatch.config import Config, load_config, load_env, _resolve_env_vars


def test_resolve_env_vars():
    os.environ["NETWATCH_TEST_TEXT"] = "healthy"
    assert _resolve_env_vars("${NETWATCH_TEST_TEXT}") == "healthy"
    assert _resolve_env_vars("no-vars-here") == "no-vars-here"
    assert _resolve_env_vars("${NONEXISTENT_VAR_XYZ}") == "${NONEXISTENT_VAR_XYZ}"
    del os.environ["NETWATCH_TEST_TEXT"]


def test_load_config_from_toml(tmp_path, monkeypatch):
    monkeypatch.setenv("NETWATCH_TEST_TEXT", "status: ok")
    path = tmp_path / "config.toml"
    path.write_text("""
[host]
timeout = 2
interval = 0.5
fuzzy = 3
stats_every = 10
ipv4 = true

[web]
expected_status = 204
required_text = "${NETWATCH_TEST_TEXT}"
delay = 1
max_attempts = 7

[logging]
level = "DEBUG"
""")
    config = load_config(path)

    assert config.host.timeout == 2.0
    assert config.host.interval == 0.5
    assert config.host.fuzzy == 3
    assert config.host.stats_every == 10
    assert config.host.ipv4 is True
    assert config.host.static is False
    assert config.web.expected_status == 204
    assert config.web.required_text == "status: ok"
    assert config.web.delay == 1.0
    assert config.web.max_attempts == 7
    assert config.web.max_redirects == 20
    assert config.log_level == "DEBUG"


def test_defaults():
    config = Config()
    assert config.host.timeout == 1.0
    assert config.host.fuzzy == 0
    assert config.web.expected_status == 200
    assert config.web.delay == 5.0
    assert config.web.max_attempts == 0
    assert config.log_level == "WARNING"


def test_missing_default_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "_DEFAULT_CONFIG_PATH", tmp_path / "absent.toml")
    assert load_config() == Config()


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.toml")


def test_load_env(tmp_path, monkeypatch):
    monkeypatch.delenv("NETWATCH_ENV_PROBE", raising=False)
    env = tmp_path / ".env"
    env.write_text("NETWATCH_ENV_PROBE=from-dotenv\n")
    assert load_env(env) is True
    assert os.environ["NETWATCH_ENV_PROBE"] == "from-dotenv"
    monkeypatch.delenv("NETWATCH_ENV_PROBE")


def test_load_env_missing(tmp_path):
    assert load_env(Path(tmp_path / "nope.env")) is False


def test_bool_from_env_string(tmp_path, monkeypatch):
    monkeypatch.setenv("NETWATCH_STATIC", "false")
    monkeypatch.setenv("NETWATCH_IPV4", "yes")
    path = tmp_path / "config.toml"
    path.write_text('[host]\nstatic = "${NETWATCH_STATIC}"\nipv4 = "${NETWATCH_IPV4}"\n')

    config = load_config(path)
    assert config.host.static is False
    assert config.host.ipv4 is True


def test_numbers_from_env_string(tmp_path, monkeypatch):
    monkeypatch.setenv("NETWATCH_FUZZ", "4")
    path = tmp_path / "config.toml"
    path.write_text('[host]\nfuzzy = "${NETWATCH_FUZZ}"\ntimeout = "2.5"\n')

    config = load_config(path)
    assert config.host.fuzzy == 4
    assert config.host.timeout == 2.5


@pytest.mark.parametrize("section, line, key", [
    ("host", 'static = "maybe"', "static"),
    ("host", 'fuzzy = "${NETWATCH_UNSET_FUZZ}"', "fuzzy"),
    ("host", "count = true", "count"),
    ("web", 'delay = "soon"', "delay"),
    ("web", 'max_attempts = "1.5"', "max_attempts"),
])
def test_bad_values_name_the_key(tmp_path, monkeypatch, section, line, key):
    monkeypatch.delenv("NETWATCH_UNSET_FUZZ", raising=False)
    path = tmp_path / "config.toml"
    path.write_text(f"[{section}]\n{line}\n")

    with pytest.raises(ValueError, match=key):
        load_config(path)
