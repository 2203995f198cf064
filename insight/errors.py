"""Exceptions raised by the log ingestion and query layers."""

from __future__ import annotations


class InsightError(Exception):
    """Base exception for the service."""


class ValidationError(InsightError):
    """Raised when a log record violates a required-field or level constraint."""


class DecodeError(InsightError):
    """Raised when an inbound body cannot be decoded into a log record."""


class StoreError(InsightError):
    """Raised when the underlying store fails to execute a statement."""


class RowScanError(InsightError):
    """Raised when a single stored row cannot be mapped back to a log record."""

    def __init__(self, message: str, row_id: object | None = None):
        super().__init__(message)
        self.row_id = row_id
