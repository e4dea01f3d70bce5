"""Error types raised by the reading pipeline and its data sources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RowRejectedError(ValueError):
    """Base class for rows dropped during normalization."""

    def __init__(self, reason: str, field: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.field = field


class SchemaError(RowRejectedError):
    """A required field is missing or its timestamp cannot be parsed."""


class InvalidValueError(RowRejectedError):
    """A count is negative or not an integer."""


class FailureKind(str, Enum):
    network = "network"
    authorization = "authorization"
    missing_table = "missing_table"
    http = "http"
    malformed_response = "malformed_response"
    cancelled = "cancelled"
    unexpected = "unexpected"


@dataclass(frozen=True)
class FailureReason:
    kind: FailureKind
    message: str
    status_code: Optional[int] = None


class FetchError(Exception):
    """The external read failed; the refresh cycle is aborted."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.reason = FailureReason(kind=kind, message=message, status_code=status_code)
