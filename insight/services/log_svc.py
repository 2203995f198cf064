from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from typing import List, Optional

from ..db import get_conn
from ..domain.query_builder import FilterCriteria
from ..domain.record import LogRecord, map_rows, normalize_for_insert, validate_log_record
from ..errors import StoreError
from ..repository import log_repo

logger = logging.getLogger(__name__)

# applied by callers (HTTP edge, CLI) when no positive limit is given
DEFAULT_LIMIT = 100


def fetch_logs(criteria: FilterCriteria, db_path: str | None = None) -> List[LogRecord]:
    """Run a filtered query; undecodable rows are skipped, store failures raise StoreError."""
    try:
        with get_conn(db_path) as conn:
            rows = log_repo.select_logs(conn, criteria)
    except sqlite3.Error as e:
        logger.error("error fetching logs: %s", e)
        raise StoreError("failed to fetch logs") from e
    return map_rows(rows)


def save_log(record: LogRecord, db_path: str | None = None, now: Optional[dt.datetime] = None) -> LogRecord:
    """
    Validate, normalize and insert a record.

    Returns the persisted record with its store-assigned id. Raises
    ValidationError before touching the store, StoreError if the insert fails.
    """
    validate_log_record(record)
    entry = normalize_for_insert(record, now=now)
    try:
        with get_conn(db_path) as conn:
            new_id = log_repo.insert_log(conn, entry)
    except sqlite3.Error as e:
        logger.error("error inserting log: %s", e)
        raise StoreError("failed to save log") from e
    logger.debug("inserted log %d for service %s", new_id, entry.service_name)
    return entry.model_copy(update={"id": new_id})
