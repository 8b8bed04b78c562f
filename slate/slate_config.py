"""
Configuration for the session host.

Priority order (highest first):
1. SLATE_* environment variables
2. the YAML file given explicitly, named by SLATE_CONFIG, or ./slate.yaml
3. dataclass defaults
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from slate.slate_context import DEFAULT_IMPORTS
from slate.slate_datatypes import ConfigurationError

_ENV_OVERRIDES = {
    "SLATE_REFS_FILE": "refs_file",
    "SLATE_LOG_LEVEL": "log_level",
    "SLATE_LOG_FORMAT": "log_format",
    "SLATE_CACHE_DIR": "cache_dir",
}


def _filter_dataclass_fields(data: Dict[str, Any], cls: type) -> Dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k.replace("-", "_"): v for k, v in data.items() if k.replace("-", "_") in valid_fields}


@dataclass
class EngineConfig:
    refs_file: Optional[str] = None
    default_imports: List[str] = field(default_factory=lambda: list(DEFAULT_IMPORTS))
    cache_dir: Optional[str] = None
    log_level: str = "WARNING"
    log_format: str = "console"
    http_timeout: float = 5.0
    http_retries: int = 2

    @property
    def http_config(self) -> Dict[str, Any]:
        return {"timeout": self.http_timeout, "retries": self.http_retries}

    def apply(self) -> None:
        """Publishes the process-wide settings; call before building engines."""
        from slate.slate_engine import InteractiveEngine
        InteractiveEngine.refs_file_path = self.refs_file


def load_config(path: Optional[str] = None) -> EngineConfig:
    if path is None:
        path = os.getenv("SLATE_CONFIG")
        if path is None and Path("slate.yaml").exists():
            path = "slate.yaml"

    data: Dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot read config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"config file {path} must contain a mapping")
        data = _filter_dataclass_fields(loaded, EngineConfig)

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            data[key] = value

    return EngineConfig(**data)
