"""
Transaction API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tally.dependencies import get_db, get_owner_id, parse_query
from tally.errors import store_guard
from tally.models.transaction import Transaction
from tally.schemas.requests import TransactionListQuery
from tally.schemas.transaction import TransactionListResponse, TransactionResponse
from tally.services.query_filters import TransactionFilter, list_clauses, normalize_pagination

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    category: Optional[str] = None,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    q: Optional[str] = Query(None, description="Search description, or category when no category filter"),
    limit: Optional[str] = None,
    page: Optional[str] = None,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """List an owner's transactions with filtering and pagination, newest first."""
    params = parse_query(
        TransactionListQuery,
        date_from=date_from,
        date_to=date_to,
        category=category,
        category_id=category_id,
        q=q,
        limit=limit,
        page=page,
    )
    filters = TransactionFilter(
        owner_id=owner_id,
        date_from=params.date_from,
        date_to=params.date_to,
        category_id=params.category_id,
        category_name=None if params.category_id else params.category,
        term=params.q,
    )
    pagination = normalize_pagination(params.limit, params.page)
    clauses = list_clauses(filters)

    with store_guard("list_transactions", owner_id=owner_id, page=pagination.page):
        total = db.execute(select(func.count(Transaction.id)).where(*clauses)).scalar() or 0
        query = (
            select(Transaction)
            .where(*clauses)
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        transactions = db.execute(query).scalars().all()

    return TransactionListResponse(
        items=[TransactionResponse.from_model(t) for t in transactions],
        total=total,
        page=pagination.page,
        pages=pagination.pages(total),
        limit=pagination.limit,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Get a single transaction"""
    with store_guard("get_transaction", owner_id=owner_id, transaction_id=transaction_id):
        transaction = db.execute(
            select(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.owner_id == owner_id,
            )
        ).scalar_one_or_none()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.from_model(transaction)
