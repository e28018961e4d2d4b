"""Configuration loading from TOML + environment variables."""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_DEFAULT_CONFIG_PATH = Path("~/.netwatch/config.toml").expanduser()
_DEFAULT_ENV_PATH = Path("~/.netwatch/.env").expanduser()


def _resolve_env_vars(value: str) -> str:
    """Replace ${VAR} placeholders with environment variable values."""
    return re.sub(
        r"\$\{(\w+)\}",
        lambda m: os.environ.get(m.group(1), m.group(0)),
        value,
    )


def _resolve_deep(obj: object) -> object:
    if isinstance(obj, str):
        return _resolve_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _resolve_deep(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve_deep(v) for v in obj]
    return obj


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _as_int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


def _as_float(section: dict, key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def _as_bool(section: dict, key: str, default: bool) -> bool:
    """Accept TOML booleans and the usual string spellings from ${VAR} values."""
    value = section.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.strip().lower() in _TRUE:
            return True
        if value.strip().lower() in _FALSE:
            return False
    raise ValueError(f"{key} must be true or false, got {value!r}")


@dataclass
class HostConfig:
    timeout: float = 1.0
    interval: float = 1.0
    fuzzy: int = 0
    count: int = 0
    stats_every: int = 60
    ipv4: bool = False
    ipv6: bool = False
    static: bool = False


@dataclass
class WebConfig:
    expected_status: int = 200
    required_text: str = ""
    delay: float = 5.0
    max_attempts: int = 0  # 0 = retry forever
    timeout: float = 10.0
    max_redirects: int = 20


@dataclass
class Config:
    host: HostConfig = field(default_factory=HostConfig)
    web: WebConfig = field(default_factory=WebConfig)

    # Logging
    log_level: str = "WARNING"


def load_env(path: Path | None = None) -> bool:
    """Load ~/.netwatch/.env if present. Returns True when a file was read."""
    env_path = path or _DEFAULT_ENV_PATH
    if not env_path.exists():
        return False
    return load_dotenv(env_path)


def load_config(path: Path | None = None) -> Config:
    """Load configuration from TOML file with env var substitution.

    The default location is optional and falls back to built-in defaults;
    an explicitly requested file must exist. Values that do not parse as
    the field type raise ValueError naming the key.
    """
    if path is None:
        if not _DEFAULT_CONFIG_PATH.exists():
            return Config()
        config_path = _DEFAULT_CONFIG_PATH
    else:
        config_path = path
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        raw = tomllib.load(f)

    raw = _resolve_deep(raw)

    host = raw.get("host", {})
    web = raw.get("web", {})
    log = raw.get("logging", {})

    return Config(
        host=HostConfig(
            timeout=_as_float(host, "timeout", 1.0),
            interval=_as_float(host, "interval", 1.0),
            fuzzy=_as_int(host, "fuzzy", 0),
            count=_as_int(host, "count", 0),
            stats_every=_as_int(host, "stats_every", 60),
            ipv4=_as_bool(host, "ipv4", False),
            ipv6=_as_bool(host, "ipv6", False),
            static=_as_bool(host, "static", False),
        ),
        web=WebConfig(
            expected_status=_as_int(web, "expected_status", 200),
            required_text=str(web.get("required_text", "")),
            delay=_as_float(web, "delay", 5.0),
            max_attempts=_as_int(web, "max_attempts", 0),
            timeout=_as_float(web, "timeout", 10.0),
            max_redirects=_as_int(web, "max_redirects", 20),
        ),
        log_level=log.get("level", "WARNING"),
    )
