from __future__ import annotations

import logging
from sqlite3 import Connection, Row
from typing import List

from ..domain.query_builder import SQLITE, FilterCriteria, build_select_query
from ..domain.record import LogRecord, insert_params

logger = logging.getLogger(__name__)

INSERT_SQL = (
    "INSERT INTO logs(service_name, log_level, message, timestamp, trace_id, span_id, metadata) "
    "VALUES(?,?,?,?,?,?,?)"
)


def select_logs(conn: Connection, criteria: FilterCriteria) -> List[Row]:
    sql, args = build_select_query(criteria, SQLITE)
    logger.debug("select logs: %s (%d args)", sql, len(args))
    return conn.execute(sql, args).fetchall()


def insert_log(conn: Connection, record: LogRecord) -> int:
    """Insert an already validated and normalized record; returns the new id."""
    cur = conn.execute(INSERT_SQL, insert_params(record))
    return int(cur.lastrowid)
