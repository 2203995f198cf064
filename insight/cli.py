#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Log ingestion service command line (SQLite)

Commands:
  init                Create the logs table and indexes
  add                 Validate, normalize and store one log record
  query               Filter stored logs (JSON, table or CSV output)
  serve               Run the HTTP API with uvicorn

Notes:
- The database path comes from --db, else INSIGHT_DB_PATH / config.yaml (see insight.db).
- query applies the same defaults as the HTTP API: limit 100, offset 0.
"""
from __future__ import annotations

import argparse
import json
import sys

import pandas as pd

from .db import ensure_schema, get_db_path
from .domain.query_builder import FilterCriteria
from .domain.record import LogRecord, parse_rfc3339
from .errors import StoreError, ValidationError
from .services.log_svc import DEFAULT_LIMIT, fetch_logs, save_log

EXIT_STORE_ERROR = 1
EXIT_USAGE = 2


def _int64(value: str) -> int:
    n = int(value)
    if not -(2 ** 63) <= n <= 2 ** 63 - 1:
        raise argparse.ArgumentTypeError(f"out of range: {value}")
    return n


# ---------------- Commands ----------------

def cmd_init(args) -> int:
    ensure_schema(args.db)
    print(f"schema ready: {args.db or get_db_path()}")
    return 0


def cmd_add(args) -> int:
    try:
        metadata = json.loads(args.metadata) if args.metadata else None
    except json.JSONDecodeError as e:
        print(f"invalid --metadata: {e}", file=sys.stderr)
        return EXIT_USAGE
    if metadata is not None and not isinstance(metadata, dict):
        print("invalid --metadata: must be a JSON object", file=sys.stderr)
        return EXIT_USAGE

    timestamp = parse_rfc3339(args.timestamp)
    if args.timestamp and timestamp is None:
        print(f"invalid --timestamp: {args.timestamp}", file=sys.stderr)
        return EXIT_USAGE

    record = LogRecord(
        service_name=args.service,
        log_level=args.level or "",
        message=args.message,
        timestamp=timestamp,
        trace_id=args.trace_id,
        span_id=args.span_id,
        metadata=metadata,
    )
    try:
        saved = save_log(record, db_path=args.db)
    except ValidationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE
    except StoreError as e:
        print(str(e), file=sys.stderr)
        return EXIT_STORE_ERROR
    print(saved.model_dump_json())
    return 0


def cmd_query(args) -> int:
    criteria = FilterCriteria(
        service_name=args.service or "",
        log_level=args.level or "",
        message_contains=args.message or "",
        start_time=parse_rfc3339(args.start_time),
        end_time=parse_rfc3339(args.end_time),
        limit=args.limit if args.limit > 0 else DEFAULT_LIMIT,
        offset=max(args.offset, 0),
    )
    try:
        records = fetch_logs(criteria, db_path=args.db)
    except StoreError as e:
        print(str(e), file=sys.stderr)
        return EXIT_STORE_ERROR

    items = [r.model_dump(mode="json") for r in records]
    if args.csv or args.table:
        df = pd.DataFrame(items, columns=["id", "service_name", "log_level", "message", "timestamp",
                                          "trace_id", "span_id", "metadata"])
        df["metadata"] = df["metadata"].map(lambda m: json.dumps(m, ensure_ascii=False))
        if args.csv:
            df.to_csv(args.csv, index=False, encoding="utf-8-sig")
            print(f"{len(df)} rows exported to {args.csv}")
        else:
            pd.set_option("display.width", 160)
            print(df.to_string(index=False) if not df.empty else "(empty)")
    else:
        print(json.dumps(items, ensure_ascii=False, indent=2))
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("insight.api:app", host=args.host, port=args.port)
    return 0


# ---------------- Entry ----------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log ingestion and query service (SQLite)")
    parser.add_argument("--db", default=None, help="SQLite file (default: INSIGHT_DB_PATH / config.yaml)")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="create the logs schema")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add", help="store one log record")
    p_add.add_argument("--service", required=True)
    p_add.add_argument("--message", required=True)
    p_add.add_argument("--level", required=False, help="DEBUG/INFO/WARN/ERROR/FATAL")
    p_add.add_argument("--timestamp", required=False, help="RFC3339 (default now)")
    p_add.add_argument("--trace-id", required=False)
    p_add.add_argument("--span-id", required=False)
    p_add.add_argument("--metadata", required=False, help="JSON object")
    p_add.set_defaults(func=cmd_add)

    p_query = sub.add_parser("query", help="filter stored logs")
    p_query.add_argument("--service", required=False)
    p_query.add_argument("--level", required=False)
    p_query.add_argument("--message", required=False, help="case-insensitive substring")
    p_query.add_argument("--start-time", required=False, help="RFC3339, inclusive")
    p_query.add_argument("--end-time", required=False, help="RFC3339, inclusive")
    p_query.add_argument("--limit", type=_int64, default=DEFAULT_LIMIT)
    p_query.add_argument("--offset", type=_int64, default=0)
    out = p_query.add_mutually_exclusive_group()
    out.add_argument("--table", action="store_true", help="print as a table")
    out.add_argument("--csv", required=False, help="export to this CSV path")
    p_query.set_defaults(func=cmd_query)

    p_serve = sub.add_parser("serve", help="run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8080)
    p_serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
