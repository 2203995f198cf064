"""
Log record model and its mapping to and from the store.

Inbound: decode_log_record -> validate_log_record -> normalize_for_insert -> insert_params.
Outbound: record_from_row per stored row; map_rows skips rows that fail.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import DecodeError, RowScanError, ValidationError
from .query_builder import is_zero_time

logger = logging.getLogger(__name__)

# ordered by severity
LOG_LEVELS: Tuple[str, ...] = ("DEBUG", "INFO", "WARN", "ERROR", "FATAL")

ROW_COLUMNS: Tuple[str, ...] = (
    "id", "service_name", "log_level", "message", "timestamp", "trace_id", "span_id", "metadata",
)


class LogRecord(BaseModel):
    """Canonical log entry, used both as request body and response item."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    service_name: str = ""
    log_level: str = ""
    message: str = ""
    timestamp: Optional[dt.datetime] = None
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("service_name", "log_level", "message", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return "" if v is None else v

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v) if v is not None else None


def as_utc(value: dt.datetime) -> dt.datetime:
    """Naive datetimes are taken to be UTC already. Raises ValueError if the UTC instant is out of range."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    try:
        return value.astimezone(dt.timezone.utc)
    except OverflowError as e:
        raise ValueError(f"timestamp out of range in UTC: {value.isoformat()}") from e


def format_timestamp(value: dt.datetime) -> str:
    """Fixed-width UTC text, so string order in the store is time order."""
    v = as_utc(value)
    # strftime("%Y") does not zero-pad years below 1000
    return (
        f"{v.year:04d}-{v.month:02d}-{v.day:02d}T"
        f"{v.hour:02d}:{v.minute:02d}:{v.second:02d}.{v.microsecond:06d}+00:00"
    )


def parse_timestamp(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return as_utc(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if not isinstance(value, str) or not value:
        raise ValueError(f"unsupported timestamp value: {value!r}")
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return as_utc(dt.datetime.fromisoformat(value))


def parse_rfc3339(value: Optional[str]) -> Optional[dt.datetime]:
    """Parse an RFC3339 timestamp (offset required); None when it is not one."""
    if not value or len(value) < 20 or value[10] not in "Tt":
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    try:
        return as_utc(parsed)
    except ValueError:
        return None


def nullable(value: Optional[str]) -> Optional[str]:
    """Empty string means absent."""
    return value if value else None


def decode_log_record(body: bytes | str) -> LogRecord:
    """Decode a JSON request body; any syntax or type problem is a DecodeError."""
    try:
        return LogRecord.model_validate_json(body)
    except PydanticValidationError as e:
        raise DecodeError("invalid request body") from e


def validate_log_record(record: LogRecord) -> None:
    if not record.service_name:
        raise ValidationError("service name is required")
    if not record.message:
        raise ValidationError("message is required")
    if record.log_level and record.log_level not in LOG_LEVELS:
        raise ValidationError(f"invalid log level: {record.log_level}")


def normalize_for_insert(record: LogRecord, now: Optional[dt.datetime] = None) -> LogRecord:
    """
    Apply the pre-insert defaults and return a new record.

    - zero/missing timestamp -> current time
    - empty trace_id / span_id -> None
    - missing or empty metadata -> {}
    - any caller-supplied id is dropped; the store assigns it
    """
    timestamp = record.timestamp
    if is_zero_time(timestamp):
        timestamp = now or dt.datetime.now(dt.timezone.utc)
    return record.model_copy(update={
        "id": None,
        "timestamp": as_utc(timestamp),
        "trace_id": nullable(record.trace_id),
        "span_id": nullable(record.span_id),
        "metadata": record.metadata or {},
    })


def insert_params(record: LogRecord) -> Tuple[Any, ...]:
    """Bound values for (service_name, log_level, message, timestamp, trace_id, span_id, metadata)."""
    return (
        record.service_name,
        record.log_level,
        record.message,
        record.timestamp,
        record.trace_id,
        record.span_id,
        json.dumps(record.metadata or {}, ensure_ascii=False),
    )


def _column(row: Any, idx: int) -> Any:
    name = ROW_COLUMNS[idx]
    try:
        return row[name]
    except (KeyError, IndexError, TypeError):
        pass
    try:
        return row[idx]
    except (KeyError, IndexError, TypeError) as e:
        raise RowScanError(f"missing column {name}") from e


def _decode_metadata(raw: Any) -> Dict[str, Any]:
    if raw is None or len(raw) == 0:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8")
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("metadata is not a JSON object")
    return value


def record_from_row(row: Any) -> LogRecord:
    """Map one stored row (sqlite3.Row, mapping or sequence) to a LogRecord."""
    values = [_column(row, i) for i in range(len(ROW_COLUMNS))]
    row_id, service_name, log_level, message, ts, trace_id, span_id, raw_metadata = values

    if not isinstance(row_id, int) or isinstance(row_id, bool):
        raise RowScanError(f"invalid id: {row_id!r}", row_id)
    if not isinstance(service_name, str) or not isinstance(message, str):
        raise RowScanError("service_name and message must be text", row_id)
    for name, value in (("log_level", log_level), ("trace_id", trace_id), ("span_id", span_id)):
        if value is not None and not isinstance(value, str):
            raise RowScanError(f"{name} must be text or NULL: {value!r}", row_id)
    try:
        timestamp = parse_timestamp(ts)
    except ValueError as e:
        raise RowScanError(f"invalid timestamp: {ts!r}", row_id) from e
    try:
        metadata = _decode_metadata(raw_metadata)
    except (TypeError, ValueError) as e:
        raise RowScanError(f"invalid metadata: {e}", row_id) from e

    return LogRecord.model_construct(
        id=row_id,
        service_name=service_name,
        log_level=log_level or "",
        message=message,
        timestamp=timestamp,
        trace_id=nullable(trace_id),
        span_id=nullable(span_id),
        metadata=metadata,
    )


def iter_records(rows: Iterable[Any]) -> Iterator[LogRecord]:
    """Yield decodable rows; log and skip the rest."""
    for row in rows:
        try:
            yield record_from_row(row)
        except RowScanError as e:
            logger.warning("skipping log row %s: %s", e.row_id, e)


def map_rows(rows: Iterable[Any]) -> List[LogRecord]:
    return list(iter_records(rows))
