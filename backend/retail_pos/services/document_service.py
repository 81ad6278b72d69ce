# Overview: Document number allocation (per-day sequential bill numbers).

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, Sale

BILL_DOCUMENT_TYPE = "BILL"
BILL_PREFIX = "BILL"


def bill_prefix(sold_at: datetime) -> str:
    return f"{BILL_PREFIX}-{sold_at:%Y%m%d}-"


def _highest_bill_suffix(prefix: str) -> int:
    """Highest numeric suffix among existing bills with this day prefix (0 if none)."""
    rows = db.session.query(Sale.bill_number).filter(Sale.bill_number.like(f"{prefix}%")).all()
    highest = 0
    for (bill_number,) in rows:
        suffix = bill_number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def _bump_sequence(document_type: str, period_key: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period_key == period_key,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, period_key=period_key)
        .scalar()
    )
    return current - 1


def next_bill_number(sold_at: datetime, *, pad: int = 4) -> str:
    """
    Allocate BILL-YYYYMMDD-NNNN for the UTC day of sold_at.

    Must run inside the caller's sale transaction: the UPDATE on the day's
    sequence row holds its row lock until the sale is committed, so two
    concurrent sales cannot receive the same suffix. The first bill of a day
    seeds the row from the highest suffix already stored for that day.
    """
    prefix = bill_prefix(sold_at)
    period_key = f"{sold_at:%Y%m%d}"

    seq = _bump_sequence(BILL_DOCUMENT_TYPE, period_key)
    if seq is None:
        seq = _highest_bill_suffix(prefix) + 1
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(
                        document_type=BILL_DOCUMENT_TYPE,
                        period_key=period_key,
                        next_number=seq + 1,
                    )
                )
        except IntegrityError:
            # Another transaction created today's row first
            seq = _bump_sequence(BILL_DOCUMENT_TYPE, period_key)
            if seq is None:
                raise

    return f"{prefix}{seq:0{pad}d}"
