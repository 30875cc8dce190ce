# pcapdj/config.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .core import DEFAULT_PORT, DEFAULT_SRV, POLL_INTERVAL, PQUEUE, ConfigurationError
from .feed import LENGTH_ACCOUNTING


@dataclass
class Settings:
    pipe: Optional[str] = None
    redis_host: str = DEFAULT_SRV
    redis_port: int = DEFAULT_PORT
    queue: str = PQUEUE
    poll_interval: float = POLL_INTERVAL
    auth_timeout: Optional[float] = None
    length_accounting: str = "wire"
    log_dir: Optional[str] = None
    log_level: str = "INFO"


_FIELDS = {f.name for f in dataclasses.fields(Settings)}

# command-line dest -> Settings field
_ARG_MAP = {
    "pipe": "pipe",
    "server": "redis_host",
    "port": "redis_port",
    "queue": "queue",
    "auth_timeout": "auth_timeout",
}


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML mapping of Settings fields, e.g.

        pipe: /tmp/pcapdj.fifo
        redis_host: 10.0.0.5
        auth_timeout: 300
        length_accounting: legacy
    """
    try:
        doc = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e.strerror}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigurationError(f"Config file {path} must hold a mapping")
    unknown = sorted(set(doc) - _FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return doc


def _validate(s: Settings) -> Settings:
    if not s.pipe:
        raise ConfigurationError("A named pipe must be specified")
    try:
        s.redis_port = int(s.redis_port)
        s.poll_interval = float(s.poll_interval)
        if s.auth_timeout is not None:
            s.auth_timeout = float(s.auth_timeout)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e
    if not 0 < s.redis_port < 65536:
        raise ConfigurationError(f"redis port out of range: {s.redis_port}")
    if s.poll_interval <= 0:
        raise ConfigurationError("poll_interval must be > 0")
    if s.auth_timeout is not None and s.auth_timeout <= 0:
        raise ConfigurationError("auth_timeout must be > 0")
    if s.length_accounting not in LENGTH_ACCOUNTING:
        raise ConfigurationError(f"length_accounting must be one of {', '.join(LENGTH_ACCOUNTING)}")
    if not s.queue:
        raise ConfigurationError("queue name must not be empty")
    return s


def build_settings(args) -> Settings:
    """Defaults < config file (-c) < command-line flags."""
    values: Dict[str, Any] = {}
    if getattr(args, "config", None):
        values.update(load_config_file(args.config))
    for dest, name in _ARG_MAP.items():
        v = getattr(args, dest, None)
        if v is not None:
            values[name] = v
    return _validate(Settings(**values))
