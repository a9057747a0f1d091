"""
Report error taxonomy and store failure classification.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    error: str = "server_error"

    def __init__(self, message: str, details: Optional[list[dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class RequestValidationError(ReportError):
    """Malformed request; rejected before any store access."""

    status_code = 400
    error = "validation_error"

    def __init__(
        self,
        message: str = "Invalid query parameters",
        details: Optional[list[dict[str, str]]] = None,
        error: Optional[str] = None,
    ):
        super().__init__(message, details)
        if error:
            self.error = error

    @classmethod
    def for_field(cls, path: str, message: str) -> "RequestValidationError":
        return cls(details=[{"path": path, "message": message}])


class StoreUnavailableError(ReportError):
    """The transaction store cannot be reached. Safe to retry."""

    status_code = 503
    error = "database_unavailable"

    def __init__(self, message: str = "Transaction store is unavailable"):
        super().__init__(message)


class ExportTooLargeError(ReportError):
    """Export would exceed the row cap; the caller must narrow the range."""

    status_code = 413
    error = "too_large"

    def __init__(self, max_rows: int):
        super().__init__(
            f"Export too large for inline CSV: more than {max_rows} rows. Narrow the date range."
        )
        self.max_rows = max_rows


class InternalFaultError(ReportError):
    """Unexpected failure; details stay in the logs."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


def validation_details(exc) -> list[dict[str, str]]:
    """Flatten pydantic / FastAPI validation errors to [{path, message}]."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "header", "body")]
        details.append({"path": ".".join(loc), "message": err.get("msg", "invalid")})
    return details


@contextmanager
def store_guard(operation: str, **context: Any) -> Iterator[None]:
    """
    Classify store failures raised inside the block.
    Connection-level failures become StoreUnavailableError, anything else
    from SQLAlchemy is logged with context and becomes InternalFaultError.
    """
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError) as e:
        logger.warning("%s: transaction store unavailable (%s) %s", operation, type(e).__name__, context)
        raise StoreUnavailableError() from e
    except SQLAlchemyError as e:
        logger.exception("%s failed %s", operation, context)
        raise InternalFaultError() from e
