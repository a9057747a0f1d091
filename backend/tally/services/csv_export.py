"""CSV export of raw transactions with a hard row cap."""

import csv
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from tally.config import settings
from tally.errors import ExportTooLargeError, store_guard
from tally.models.transaction import Transaction
from tally.services.periods import PeriodRange, to_iso_timestamp
from tally.services.query_filters import range_clauses, validate_owner_id

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "id",
    "amount",
    "currency",
    "description",
    "category",
    "categoryId",
    "date",
    "createdAt",
]
CSV_MEDIA_TYPE = "text/csv"
_FILENAME_UNSAFE = re.compile(r"[^0-9A-Za-z._-]+")


@dataclass
class CsvExport:
    filename: str
    content: str
    row_count: int

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def csv_value(value: Any) -> str:
    """Missing values export as empty strings, never "None"."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return to_iso_timestamp(value)
    return str(value)


def transaction_row(txn: Transaction) -> list[str]:
    return [
        csv_value(txn.id),
        csv_value(txn.amount),
        csv_value(txn.currency),
        csv_value(txn.description),
        csv_value(txn.category_name),
        csv_value(txn.category_id),
        csv_value(txn.occurred_at),
        csv_value(txn.created_at),
    ]


def render_csv(rows: Iterable[Sequence[str]]) -> str:
    """
    Header plus one line per row. Fields containing a comma, quote, CR or LF
    are quoted and embedded quotes are doubled.
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(EXPORT_HEADER)
    writer.writerows(rows)
    return output.getvalue()


def export_filename(date_from: datetime, date_to: datetime) -> str:
    start = _FILENAME_UNSAFE.sub("-", date_from.date().isoformat())
    end = _FILENAME_UNSAFE.sub("-", date_to.date().isoformat())
    return f"expenses_{start}_to_{end}.csv"


class CsvExporter:
    def __init__(self, db: Session, max_rows: Optional[int] = None):
        self.db = db
        self.max_rows = max_rows if max_rows is not None else settings.export_max_rows

    def export(self, owner_id: str, period: PeriodRange, filename: Optional[str] = None) -> CsvExport:
        """
        Export an owner's transactions in `period`, newest first.
        Raises ExportTooLargeError, with nothing rendered, when more than
        `max_rows` rows match.
        """
        owner_id = validate_owner_id(owner_id)
        query = (
            select(Transaction)
            .where(*range_clauses(owner_id, period))
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
            .limit(self.max_rows + 1)
        )

        with store_guard("export", owner_id=owner_id, start=period.start.isoformat(), end=period.end.isoformat()):
            transactions = self.db.execute(query).scalars().all()

        if len(transactions) > self.max_rows:
            logger.info("export refused for owner=%s: more than %s rows", owner_id, self.max_rows)
            raise ExportTooLargeError(self.max_rows)

        return CsvExport(
            filename=filename or export_filename(period.start, period.end),
            content=render_csv(transaction_row(t) for t in transactions),
            row_count=len(transactions),
        )
