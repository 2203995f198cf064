from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from ..domain.query_builder import FilterCriteria
from ..domain.record import decode_log_record, parse_rfc3339
from ..errors import DecodeError, StoreError, ValidationError
from ..services.log_svc import DEFAULT_LIMIT, fetch_logs, save_log

router = APIRouter()

# SQLite binds integers as signed 64-bit
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1


def _parse_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        n = int(value)
    except ValueError:
        return None
    if not INT64_MIN <= n <= INT64_MAX:
        return None
    return n


def criteria_from_query(
    service: Optional[str] = None,
    level: Optional[str] = None,
    message: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
) -> FilterCriteria:
    """Raw query-string values -> FilterCriteria. Bad values fall back to defaults silently."""
    lim = _parse_int(limit)
    off = _parse_int(offset)
    return FilterCriteria(
        service_name=service or "",
        log_level=level or "",
        message_contains=message or "",
        start_time=parse_rfc3339(start_time),
        end_time=parse_rfc3339(end_time),
        limit=lim if lim is not None and lim > 0 else DEFAULT_LIMIT,
        offset=off if off is not None and off >= 0 else 0,
    )


@router.get("/logs")
def api_logs_list(
    service: Optional[str] = None,
    level: Optional[str] = None,
    message: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
):
    criteria = criteria_from_query(service, level, message, start_time, end_time, limit, offset)
    try:
        records = fetch_logs(criteria)
    except StoreError:
        return PlainTextResponse("Failed to fetch logs", status_code=500)
    return [r.model_dump(mode="json") for r in records]


@router.post("/logs", status_code=201)
async def api_logs_create(request: Request):
    body = await request.body()
    try:
        record = decode_log_record(body)
    except DecodeError:
        return PlainTextResponse("Invalid request body", status_code=400)
    try:
        saved = await run_in_threadpool(save_log, record)
    except ValidationError as e:
        return PlainTextResponse(str(e), status_code=400)
    except StoreError:
        return PlainTextResponse("Failed to save log", status_code=500)
    return saved.model_dump(mode="json")
