# file: backend/config.py
"""
Backend configuration.

Loads backend/.env (if present) into the environment, then reads every
setting from os.environ. Settings are immutable once built.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from hierarchy_kernel.constants import (
    PRIVILEGED_ROLE,
    PROJECTS_STORAGE_KEY,
    SEED_NODE_NAME,
    SEED_ROLE_NAME,
    STORAGE_KEY,
)

_ENV_PATH = os.path.join(os.path.dirname(__file__), ".env")


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    sqlite_path: str = "orgflow.db"
    storage_key: str = STORAGE_KEY
    projects_key: str = PROJECTS_STORAGE_KEY
    privileged_role: str = PRIVILEGED_ROLE
    seed_role_name: str = SEED_ROLE_NAME
    seed_node_name: str = SEED_NODE_NAME
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"
    log_format: str = "console"


def load_settings() -> Settings:
    """Build Settings from the environment (after loading backend/.env)."""
    if os.path.exists(_ENV_PATH):
        load_dotenv(_ENV_PATH)

    defaults = Settings()
    return Settings(
        database_url=os.environ.get("DATABASE_URL", defaults.database_url),
        sqlite_path=os.environ.get("SQLITE_PATH", defaults.sqlite_path),
        storage_key=os.environ.get("STORAGE_KEY", defaults.storage_key),
        projects_key=os.environ.get("PROJECTS_STORAGE_KEY", defaults.projects_key),
        privileged_role=os.environ.get("PRIVILEGED_ROLE", defaults.privileged_role),
        seed_role_name=os.environ.get("SEED_ROLE_NAME", defaults.seed_role_name),
        seed_node_name=os.environ.get("SEED_NODE_NAME", defaults.seed_node_name),
        frontend_url=os.environ.get("FRONTEND_URL", defaults.frontend_url),
        log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
        log_format=os.environ.get("LOG_FORMAT", defaults.log_format).lower(),
    )
