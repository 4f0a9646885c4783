"""Settings loader for WebIndex.

Defaults, then an optional YAML file deep-merged over them, then
environment variables.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from indexer.batching import MAX_BATCH_SIZE
from indexer.store import BatchMode
from pipelines.transport import DEFAULT_USER_AGENT

from .database import DatabaseConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WEBINDEX_CONFIG"


class CrawlConfig(BaseModel):
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = Field(default=10.0, gt=0, description="Seconds per HTTP request")


class IndexingConfig(BaseModel):
    batch_size: int = Field(default=MAX_BATCH_SIZE, ge=1, description="Statements per batch")
    batch_mode: BatchMode = BatchMode.LOGGED


class LoggingConfig(BaseModel):
    level: str = "INFO"
    use_json: bool = False
    log_file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return value


class IndexerSettings(BaseModel):
    """All runtime settings."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _default_config_path() -> Optional[Path]:
    # Look for config file in multiple locations
    possible_paths = [
        os.environ.get(CONFIG_ENV_VAR),
        os.path.join(os.getcwd(), 'config', 'indexer.yaml'),
        os.path.join(Path(__file__).parent, 'indexer.yaml'),
    ]

    for path in possible_paths:
        if path and os.path.exists(path):
            return Path(path)
    return None


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    env_map = {
        'WEBINDEX_DATABASE_URL': ('database', 'url'),
        'WEBINDEX_USER_AGENT': ('crawl', 'user_agent'),
        'WEBINDEX_REQUEST_TIMEOUT': ('crawl', 'request_timeout'),
        'WEBINDEX_BATCH_SIZE': ('indexing', 'batch_size'),
        'WEBINDEX_BATCH_MODE': ('indexing', 'batch_mode'),
        'WEBINDEX_LOG_LEVEL': ('logging', 'level'),
    }
    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def load_settings(config_path: Optional[str] = None) -> IndexerSettings:
    """Load settings from defaults, YAML and the environment.

    Args:
        config_path: Explicit YAML path. When omitted, ``$WEBINDEX_CONFIG``,
            ``./config/indexer.yaml`` and the packaged default are tried.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
        pydantic.ValidationError: If a value is invalid
    """
    data = IndexerSettings().model_dump(mode="json")

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _default_config_path()

    if path is not None:
        with open(path, 'r', encoding='utf-8') as f:
            file_config = yaml.safe_load(f) or {}
        data = _deep_merge(data, file_config)
        logger.debug(f"Loaded settings from {path}")

    data = _deep_merge(data, _env_overrides())
    return IndexerSettings.model_validate(data)
