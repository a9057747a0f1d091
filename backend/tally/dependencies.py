"""
FastAPI dependencies.
"""

from typing import Generator, Optional, Type, TypeVar

from fastapi import Header
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from tally.database import SessionLocal
from tally.errors import RequestValidationError, validation_details
from tally.services.query_filters import validate_owner_id

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_owner_id(x_owner_id: Optional[str] = Header(None, alias="X-Owner-Id")) -> str:
    """Owner resolved by the upstream authenticator."""
    return validate_owner_id(x_owner_id)


def parse_query(model: Type[RequestModel], **values) -> RequestModel:
    """
    Build a typed request from raw query values, dropping absent ones.
    Any failure becomes a RequestValidationError.
    """
    try:
        return model(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        raise RequestValidationError(details=validation_details(e)) from e
