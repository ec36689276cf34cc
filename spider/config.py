from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import yaml

from .errors import ConfigError


@dataclass
class LimitsConfig:
    connect_timeout_ms: int = 4000
    read_timeout_ms: int = 15000
    max_retries: int = 3
    backoff_base_ms: int = 500
    backoff_cap_ms: int = 8000

    def __post_init__(self):
        if self.connect_timeout_ms < 100:
            raise ValueError(f"limits.connect_timeout_ms too low: {self.connect_timeout_ms}")
        if self.read_timeout_ms < 100:
            raise ValueError(f"limits.read_timeout_ms too low: {self.read_timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"limits.max_retries must be >= 0, got {self.max_retries}")
        if self.backoff_cap_ms < self.backoff_base_ms:
            raise ValueError("limits.backoff_cap_ms must be >= backoff_base_ms")


@dataclass
class RobotsConfig:
    enabled: bool = True
    timeout_sec: float = 10.0

    def __post_init__(self):
        if self.timeout_sec <= 0:
            raise ValueError(f"robots.timeout_sec must be > 0, got {self.timeout_sec}")


@dataclass
class LogsConfig:
    log_file: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"logs.log_level is not a valid level: {self.log_level}")


@dataclass
class SpiderConfig:
    root_url: str
    user_agent: str = "spider/0.1"
    include_subdomains: bool = False
    workers: int = 4
    # 0 means no limit
    max_pages: int = 0

    limits: LimitsConfig = field(default_factory=LimitsConfig)
    robots: RobotsConfig = field(default_factory=RobotsConfig)
    logs: LogsConfig = field(default_factory=LogsConfig)

    def __post_init__(self):
        self.root_url = (self.root_url or "").strip()
        parts = urlsplit(self.root_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"root_url must be an absolute http(s) URL, got {self.root_url!r}")
        if not self.user_agent:
            raise ValueError("user_agent cannot be empty")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.max_pages < 0:
            raise ValueError(f"max_pages must be >= 0, got {self.max_pages}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpiderConfig':
        try:
            return cls(
                root_url=data.get('root_url', ''),
                user_agent=data.get('user_agent', 'spider/0.1'),
                include_subdomains=bool(data.get('include_subdomains', False)),
                workers=int(data.get('workers', 4)),
                max_pages=int(data.get('max_pages', 0)),
                limits=LimitsConfig(**_section(data, 'limits')),
                robots=RobotsConfig(**_section(data, 'robots')),
                logs=LogsConfig(**_section(data, 'logs')),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str) -> 'SpiderConfig':
        return cls.from_dict(load_yaml_config(config_path))


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Read a spider YAML file (root_url, workers, limits, robots, logs) into a dict."""
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ConfigError(f"Spider config not found: {config_path} (pass ROOT_URL or --config)")

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Spider config {config_path} must be a mapping with at least root_url")

    return data


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    # An empty "limits:" key in YAML loads as None
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name}: expected a mapping of {name} settings, got {type(value).__name__}")
    return value
