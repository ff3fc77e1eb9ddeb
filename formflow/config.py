from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_CONFIG_FILE, DEFAULT_SESSION_PATH, DEFAULT_WORKFLOWS_PATH


class RedisConfig(BaseModel):
    """Configuration for the Redis session store."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class SessionConfig(BaseModel):
    """Session store configuration settings."""

    backend: Literal["inmemory", "file", "redis"] = "inmemory"
    path: str = DEFAULT_SESSION_PATH
    ttl_seconds: Optional[int] = None
    redis: RedisConfig = RedisConfig()


class FormflowConfig(BaseModel):
    """Top-level configuration model."""

    workflows_path: str = DEFAULT_WORKFLOWS_PATH
    database_url: Optional[str] = None
    session: SessionConfig = SessionConfig()


def load_config(path: Optional[str] = None) -> FormflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FORMFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("FORMFLOW_CONFIG", DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FormflowConfig(**data)
    else:
        config = FormflowConfig()

    env_db_url = os.getenv("FORMFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_workflows = os.getenv("FORMFLOW_WORKFLOWS_PATH")
    if env_workflows:
        config.workflows_path = env_workflows
    return config
