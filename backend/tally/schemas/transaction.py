"""
Transaction schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tally.services.periods import to_iso_timestamp


class TransactionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    amount: float
    currency: str
    description: Optional[str]
    category: Optional[str]
    category_id: Optional[str]
    date: str
    created_at: str

    @classmethod
    def from_model(cls, txn) -> "TransactionResponse":
        return cls(
            id=txn.id,
            amount=float(txn.amount),
            currency=txn.currency,
            description=txn.description,
            category=txn.category_name,
            category_id=txn.category_id,
            date=to_iso_timestamp(txn.occurred_at),
            created_at=to_iso_timestamp(txn.created_at),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
    page: int
    pages: int
    limit: int
