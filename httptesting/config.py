from __future__ import annotations

"""Pool configuration.

Defaults suit local test runs; override with keyword arguments, a YAML
file (:func:`load_config_from_yaml`) or environment variables
(:meth:`PoolConfig.from_env`).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = ["PoolConfig", "load_config_from_yaml"]

_ENV_PREFIX = "HTTPTESTING_"


@dataclass
class PoolConfig:  # noqa: D101 – self-documenting via fields
    # Interface every pooled server binds to (port is always ephemeral)
    host: str = "127.0.0.1"
    # Level applied to the ``httptesting`` logger when a pool is created;
    # None leaves the current level alone
    log_level: Optional[str] = None
    # Socket timeout for client connections, None waits forever
    request_timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown pool config key(s): {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PoolConfig":
        """Build a config from ``HTTPTESTING_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        if f"{_ENV_PREFIX}HOST" in env:
            data["host"] = env[f"{_ENV_PREFIX}HOST"]
        if f"{_ENV_PREFIX}LOG_LEVEL" in env:
            data["log_level"] = env[f"{_ENV_PREFIX}LOG_LEVEL"]
        if f"{_ENV_PREFIX}REQUEST_TIMEOUT" in env:
            data["request_timeout"] = float(env[f"{_ENV_PREFIX}REQUEST_TIMEOUT"])
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config_from_yaml(path: str | Path) -> PoolConfig:
    """Load a :class:`PoolConfig` from a YAML mapping."""
    import yaml

    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Pool config in {path} must be a mapping, got {type(data).__name__}")
    return PoolConfig.from_dict(data)
