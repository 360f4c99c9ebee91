from __future__ import annotations

import os
import tomllib

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pendulum
from dotenv import find_dotenv, load_dotenv

from timelog.exceptions import ConfigError

# Setting name -> environment variable. The first four keep the names the tool has always used.
ENVIRONMENT = {
    "user": "USERNAME",
    "token": "ACCESS_TOKEN",
    "organization": "ORG",
    "project": "PROJECT",
    "base_url": "TIMELOG_BASE_URL",
    "timezone": "TIMELOG_TIMEZONE",
    "max_workers": "TIMELOG_MAX_WORKERS",
    "timeout": "TIMELOG_TIMEOUT",
}

REQUIRED = ("user", "token", "organization", "project")


@dataclass(frozen=True)
class Config:
    """Configuration for the timelog CLI. This object includes the default values for the CLI."""
    user: Optional[str] = None
    token: Optional[str] = None
    organization: Optional[str] = None
    project: Optional[str] = None
    base_url: str = "https://dev.azure.com"
    timezone: pendulum.Timezone = pendulum.UTC
    max_workers: int = 4
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """
        Build a config from a mapping of setting names to (possibly string) values.
        Unknown keys and empty values are ignored.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {k: v for k, v in data.items() if k in known and v not in (None, "")}

        try:
            if "timezone" in values and not isinstance(values["timezone"], pendulum.Timezone):
                values["timezone"] = pendulum.timezone(str(values["timezone"]))
            if "max_workers" in values:
                values["max_workers"] = int(values["max_workers"])
            if "timeout" in values:
                values["timeout"] = float(values["timeout"])
        except (ValueError, TypeError, KeyError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        if values.get("max_workers", 1) < 1:
            raise ConfigError("max_workers must be at least 1.")
        if not values.get("timeout", 1) > 0:
            raise ConfigError("timeout must be greater than 0.")
        if "base_url" in values:
            values["base_url"] = str(values["base_url"]).rstrip("/")

        return cls(**values)

    @classmethod
    def from_toml_file(cls, path: Path) -> Config:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        return cls.from_dict(data)

    def merged(self, overrides: Mapping[str, Any]) -> Config:
        """Return a copy with every non-empty value in `overrides` applied on top."""
        updates = Config.from_dict(overrides)
        changed = {k: getattr(updates, k) for k in overrides
                   if k in ENVIRONMENT and overrides[k] not in (None, "")}
        return replace(self, **changed)

    def validate(self) -> Config:
        missing = [name for name in REQUIRED if not getattr(self, name)]
        if missing:
            hints = ", ".join(f"{name} (${ENVIRONMENT[name]})" for name in missing)
            raise ConfigError(f"Missing required settings: {hints}.")
        return self


def load_config(config_file: Optional[Path] = None,
                overrides: Optional[Mapping[str, Any]] = None,
                dotenv_path: Optional[Path] = None,
                validate: bool = True) -> Config:
    """
    Resolve configuration: command line overrides, then the environment (after loading
    a `.env` file), then the optional TOML file, then the defaults.

    Raises:
        ConfigError: If a value is invalid, or a required setting is missing and
            `validate` is set.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))

    config = Config.from_toml_file(config_file) if config_file else Config()
    config = config.merged(environment_settings())
    config = config.merged(overrides or {})
    return config.validate() if validate else config


def environment_settings(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
    """Setting values found in the environment, keyed by setting name."""
    environ = os.environ if environ is None else environ
    return {name: environ.get(var) for name, var in ENVIRONMENT.items()}
