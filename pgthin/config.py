"""Connection settings and config file loading."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any, Mapping

import tomllib

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .errors import ConfigError

CONFIG_FILE = Path.home() / ".config" / "pgthin" / "database.toml"

_DESCRIPTOR_FIELDS = (
    ("host", "hostname"),
    ("user", "user"),
    ("port", "port"),
    ("dbname", "dbname"),
    ("password", "password"),
)


class DatabaseConfig(BaseModel):
    """Settings for a single database target.

    ``username`` is accepted as an alias for ``user``. Supplying both with
    different values is rejected rather than letting one silently win.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dbname: str
    hostname: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    options: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _merge_username(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or "username" not in data:
            return data
        merged = dict(data)
        username = merged.pop("username")
        user = merged.get("user")
        if user is not None and username is not None and user != username:
            raise ValueError(f"Conflicting 'user' ({user!r}) and 'username' ({username!r}) settings")
        if user is None:
            merged["user"] = username
        return merged

    @classmethod
    def from_mapping(cls, options: Mapping[str, object]) -> DatabaseConfig:
        """Validate a plain mapping (e.g. a parsed config section)."""

        try:
            return cls.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigError(f"Invalid database settings: {exc}") from exc

    def descriptor(self) -> str:
        """Return the libpq-style ``key=value`` connection string."""

        tokens: list[str] = []
        for key, field in _DESCRIPTOR_FIELDS:
            value = getattr(self, field)
            if value is None:
                continue
            tokens.append(f"{key}={_quote(str(value))}")
        if self.options is not None:
            tokens.append(f"options={_quote(self.options, force=True)}")
        return " ".join(tokens)

    def server_settings(self) -> dict[str, str]:
        """Translate ``-c name=value`` style options into server settings."""

        if not self.options:
            return {}
        settings: dict[str, str] = {}
        try:
            tokens = shlex.split(self.options)
        except ValueError as exc:
            raise ConfigError(f"Malformed connection options: {exc}") from exc
        idx = 0
        while idx < len(tokens):
            token = tokens[idx]
            if token == "-c":
                idx += 1
                if idx >= len(tokens):
                    raise ConfigError("Option '-c' requires a name=value argument")
                assignment = tokens[idx]
            elif token.startswith("--"):
                assignment = token[2:]
            elif token.startswith("-c"):
                assignment = token[2:]
            else:
                raise ConfigError(f"Unsupported connection option: {token!r}")
            name, sep, value = assignment.partition("=")
            if not sep or not name:
                raise ConfigError(f"Expected name=value in connection option, got {assignment!r}")
            settings[name.replace("-", "_")] = value
            idx += 1
        return settings

    def connect_kwargs(self) -> dict[str, object]:
        """Keyword arguments for ``asyncpg.connect``."""

        kwargs: dict[str, object] = {"database": self.dbname}
        if self.hostname:
            kwargs["host"] = self.hostname
        if self.port is not None:
            kwargs["port"] = self.port
        if self.user:
            kwargs["user"] = self.user
        if self.password is not None:
            kwargs["password"] = self.password
        settings = self.server_settings()
        if settings:
            kwargs["server_settings"] = settings
        return kwargs


def load_config(path: Path | None = None, *, section: str | None = "database") -> DatabaseConfig:
    """Load settings from a TOML file.

    The named section is used when present; otherwise the top-level table is
    read as the settings mapping.
    """

    config_path = path or CONFIG_FILE
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigError(f"Could not read config file {config_path}: {exc}") from exc

    data = raw
    if section and isinstance(raw.get(section), dict):
        data = raw[section]
    return DatabaseConfig.from_mapping(data)


def _quote(value: str, *, force: bool = False) -> str:
    if not force and value and not any(ch.isspace() or ch in "'\\" for ch in value):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


__all__ = ["CONFIG_FILE", "DatabaseConfig", "load_config"]
