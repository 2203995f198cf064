"""
Filter query builder.

Turns a FilterCriteria into a single parameterized SELECT over the ``logs``
table plus its ordered argument list. Every filter that is set contributes
exactly one ``AND <column> <op> <placeholder>`` clause, always in the order
service -> level -> message -> start time -> end time, and placeholders are
numbered contiguously from 1 whichever filters are present.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

SELECT_COLUMNS = "id, service_name, log_level, message, timestamp, trace_id, span_id, metadata"
BASE_QUERY = f"SELECT {SELECT_COLUMNS} FROM logs WHERE 1=1"
ORDER_BY = " ORDER BY timestamp DESC"


@dataclass(frozen=True)
class Dialect:
    """Placeholder style and case-insensitive match operator of a store."""
    name: str
    placeholder_prefix: str
    ilike_op: str

    def placeholder(self, n: int) -> str:
        return f"{self.placeholder_prefix}{n}"


POSTGRES = Dialect("postgres", "$", "ILIKE")
# SQLite LIKE already folds ASCII case; ?NNN binds positionally from a sequence.
SQLITE = Dialect("sqlite", "?", "LIKE")


def is_zero_time(value: Optional[dt.datetime]) -> bool:
    """None and the year-1 minimum both mean "no time given"."""
    if value is None:
        return True
    return value.replace(tzinfo=None) == dt.datetime.min


@dataclass(frozen=True)
class FilterCriteria:
    service_name: str = ""
    log_level: str = ""
    message_contains: str = ""
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    limit: int = 0
    offset: int = 0


# (condition, clause template, value) ; "{ph}" / "{op}" are filled while folding
PredicateSpec = Tuple[Callable[[FilterCriteria], bool], str, Callable[[FilterCriteria], Any]]

PREDICATES: Tuple[PredicateSpec, ...] = (
    (lambda c: bool(c.service_name), "service_name = {ph}", lambda c: c.service_name),
    (lambda c: bool(c.log_level), "log_level = {ph}", lambda c: c.log_level),
    (lambda c: bool(c.message_contains), "message {op} {ph}", lambda c: f"%{c.message_contains}%"),
    (lambda c: not is_zero_time(c.start_time), "timestamp >= {ph}", lambda c: c.start_time),
    (lambda c: not is_zero_time(c.end_time), "timestamp <= {ph}", lambda c: c.end_time),
)


def build_select_query(criteria: FilterCriteria, dialect: Dialect = SQLITE) -> Tuple[str, List[Any]]:
    """
    Build the SELECT statement and its bound arguments.

    Args:
        criteria: filters; empty strings, None/zero times and non-positive
            limit/offset count as "not set"
        dialect: placeholder style of the target store

    Returns:
        (sql, args) where ``len(args)`` equals the number of placeholders in
        ``sql`` and ``args[i]`` binds placeholder ``i + 1``
    """
    sql = BASE_QUERY
    args: List[Any] = []

    for condition, template, value in PREDICATES:
        if not condition(criteria):
            continue
        args.append(value(criteria))
        sql += " AND " + template.format(ph=dialect.placeholder(len(args)), op=dialect.ilike_op)

    sql += ORDER_BY

    if criteria.limit > 0:
        args.append(criteria.limit)
        sql += f" LIMIT {dialect.placeholder(len(args))}"

        # TODO: an offset sent without a limit is silently dropped; revisit
        # when the query API is next versioned.
        if criteria.offset > 0:
            args.append(criteria.offset)
            sql += f" OFFSET {dialect.placeholder(len(args))}"

    return sql, args
