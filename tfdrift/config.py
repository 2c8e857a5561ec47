"""
Runtime configuration.

Precedence, lowest first: built-in defaults, a YAML file (tfdrift.yaml in the
working directory, or an explicit path), TFDRIFT_* environment variables.
The CLI applies its own flags on top.
"""
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import yaml

from tfdrift.engine import DEFAULT_STATE_FILE_NAME
from tfdrift.errors import ConfigError
from tfdrift.parsers.terraform_state import DEFAULT_STATE_SIZE_LIMIT

DEFAULT_CONFIG_FILE = "tfdrift.yaml"

_ENV = {
    "organization_id": "TFDRIFT_ORGANIZATION_ID",
    "buckets":         "TFDRIFT_BUCKETS",
    "state_file_name": "TFDRIFT_STATE_FILE_NAME",
    "max_state_bytes": "TFDRIFT_MAX_STATE_BYTES",
    "hierarchy_file":  "TFDRIFT_HIERARCHY_FILE",
}


@dataclass
class Config:
    organization_id: Optional[str] = None
    buckets: List[str] = field(default_factory=list)
    state_file_name: str = DEFAULT_STATE_FILE_NAME
    max_state_bytes: int = DEFAULT_STATE_SIZE_LIMIT
    hierarchy_file: Optional[str] = None

    def merge(self, **overrides: Any) -> "Config":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return _validate(replace(self, **values))


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key}: expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key}: expected an integer, got {value!r}") from None


def _as_buckets(value: Any, key: str) -> List[str]:
    if isinstance(value, str):
        return [b.strip() for b in value.split(",") if b.strip()]
    if isinstance(value, list):
        return [str(b) for b in value]
    raise ConfigError(f"{key}: expected a list or comma-separated string, got {value!r}")


def _validate(cfg: Config) -> Config:
    if cfg.max_state_bytes <= 0:
        raise ConfigError(f"max_state_bytes must be positive, got {cfg.max_state_bytes}")
    if not cfg.state_file_name:
        raise ConfigError("state_file_name must not be empty")
    return cfg


def _coerce(raw: Mapping[str, Any], source: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, val in raw.items():
        if key not in _ENV:
            raise ConfigError(f"{source}: unknown setting {key!r}")
        if val is None:
            continue
        where = f"{source}: {key}"
        if key == "buckets":
            values[key] = _as_buckets(val, where)
        elif key == "max_state_bytes":
            values[key] = _as_int(val, where)
        else:
            values[key] = str(val)
    return values


def _read_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"malformed config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return _coerce(data, path)


def _read_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    raw = {key: environ[var] for key, var in _ENV.items() if environ.get(var)}
    return _coerce(raw, "environment")


def load_config(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Config:
    """
    Build a Config from defaults, an optional YAML file and the environment.

    An explicit path must exist; the default tfdrift.yaml is optional.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    if path is not None:
        values.update(_read_file(path))
    elif os.path.exists(DEFAULT_CONFIG_FILE):
        values.update(_read_file(DEFAULT_CONFIG_FILE))

    values.update(_read_env(environ))
    return _validate(Config(**values))
