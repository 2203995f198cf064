from __future__ import annotations

# insight/db.py
import datetime as dt
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

import yaml

from .domain.record import format_timestamp

logger = logging.getLogger(__name__)

# DB path resolution order:
# 1) env INSIGHT_DB_PATH (highest priority)
# 2) config.yaml test_db_path (when running under tests)
# 3) config.yaml db_path
# 4) fallback: insight.db in the project root
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_ROOT_DB = os.path.join(_PROJECT_ROOT, "insight.db")
SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.sql")

DEFAULT_LOG_LEVEL = "INFO"

# datetimes are bound as fixed-width UTC text; see domain.record.format_timestamp
sqlite3.register_adapter(dt.datetime, format_timestamp)


def _read_config_yaml() -> dict:
    cfg_path = os.environ.get("INSIGHT_CONFIG") or os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("ignoring unreadable config %s: %s", cfg_path, e)
        return {}
    if not isinstance(cfg, dict):
        return {}
    out = {}
    for k in ("db_path", "test_db_path", "log_level"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = v.strip()
    return out


def get_db_path() -> str:
    env_path = os.environ.get("INSIGHT_DB_PATH")
    cfg = _read_config_yaml()
    cfg_db = cfg.get("db_path")
    cfg_test = cfg.get("test_db_path")
    is_test = (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)

    if env_path:
        path = env_path
    elif is_test and cfg_test:
        path = cfg_test
    elif cfg_db:
        path = cfg_db
    else:
        path = _ROOT_DB

    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


def get_log_level() -> str:
    level = os.environ.get("INSIGHT_LOG_LEVEL") or _read_config_yaml().get("log_level") or DEFAULT_LOG_LEVEL
    return level.upper()


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Open a SQLite connection. An explicit db_path wins, otherwise get_db_path().
    Rows come back as sqlite3.Row; statements autocommit.
    """
    path = db_path or get_db_path()
    conn = sqlite3.connect(
        path,
        check_same_thread=False,
        isolation_level=None,
    )
    try:
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()


def ensure_schema(db_path: str | None = None) -> None:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        ddl = f.read()
    with get_conn(db_path) as conn:
        conn.executescript(ddl)
