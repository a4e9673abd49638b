"""Custom exceptions for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, message: str = "Not found", details: Any | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class InvalidInputError(AppError):
    """Non-positive ids, malformed ranges or malformed prize splits."""

    def __init__(self, message: str = "Invalid input", details: Any | None = None) -> None:
        super().__init__(code="invalid_input", message=message, status_code=400, details=details)


class InsufficientDataError(AppError):
    """Prize or static data missing for a required draw."""

    def __init__(self, message: str = "Insufficient data", details: Any | None = None) -> None:
        super().__init__(code="insufficient_data", message=message, status_code=422, details=details)


class UpstreamUnavailableError(AppError):
    """Network or timeout failure on a collaborator call."""

    def __init__(self, message: str = "Upstream unavailable", details: Any | None = None) -> None:
        super().__init__(code="upstream_unavailable", message=message, status_code=503, details=details)


class MetricsUnavailableError(AppError):
    """No valid metrics snapshot could be produced."""

    def __init__(self, message: str = "Metrics unavailable", details: Any | None = None) -> None:
        super().__init__(code="metrics_unavailable", message=message, status_code=503, details=details)
