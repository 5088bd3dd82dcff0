"""Loading of the YAML application configuration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_CONFIG_PATH = "./config/config.yaml"

_log = logging.getLogger(__name__)

_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


@dataclass
class HTTPServer:
    address: str = ""
    timeout: timedelta = timedelta(0)
    idle_timeout: timedelta = timedelta(0)
    user: str = ""
    password: str = ""


@dataclass
class Database:
    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""
    dbname: str = ""


@dataclass
class Config:
    env: str = ""
    storage_path: str = ""
    http_server: HTTPServer = field(default_factory=HTTPServer)
    database: Database = field(default_factory=Database)


def _parse_duration(text: str) -> timedelta:
    rest = text
    sign = 1
    if rest and rest[0] in "+-":
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    total = Decimal(0)
    position = 0
    for match in _DURATION_PART.finditer(rest):
        if match.start() != position:
            break
        total += Decimal(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if not rest or position != len(rest):
        raise ConfigError(f'time: invalid duration "{text}"')
    return sign * timedelta(microseconds=int(total / 1000))


def _duration(section: Mapping[str, Any], key: str) -> timedelta:
    value = section.get(key)
    if value is None:
        return timedelta(0)
    if isinstance(value, bool):
        raise ConfigError(f"{key}: expected a duration")
    if isinstance(value, int):
        return timedelta(microseconds=int(value / 1000))
    if isinstance(value, str):
        return _parse_duration(value)
    raise ConfigError(f"{key}: expected a duration")


def _text(section: Mapping[str, Any], key: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"{key}: expected a scalar value")


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key}: expected a mapping")
    return value


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """Read the configuration file; raise ConfigError if it is missing or invalid."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"config file {path} does not exist")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"error reading config file: {exc}") from exc
    if data is None:
        raise ConfigError("error reading config file: EOF")
    if not isinstance(data, Mapping):
        raise ConfigError("error reading config file: expected a mapping")
    try:
        server = _section(data, "http_server")
        database = _section(data, "database")
        return Config(
            env=_text(data, "env"),
            storage_path=_text(data, "storage_path"),
            http_server=HTTPServer(
                address=_text(server, "address"),
                timeout=_duration(server, "timeout"),
                idle_timeout=_duration(server, "idle_timeout"),
                user=_text(server, "user"),
                password=_text(server, "password"),
            ),
            database=Database(
                host=_text(database, "host"),
                port=_text(database, "port"),
                user=_text(database, "user"),
                password=_text(database, "password"),
                dbname=_text(database, "dbname"),
            ),
        )
    except ConfigError as exc:
        raise ConfigError(f"error reading config file: {exc}") from exc


def must_load(path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load the configuration or stop the process with exit status 1."""
    try:
        config = load_config(path)
    except ConfigError as exc:
        _log.critical("%s", exc)
        raise SystemExit(1) from exc
    _log.info("Loaded config: %s", config)
    return config