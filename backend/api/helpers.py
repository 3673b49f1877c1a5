"""Shared API helpers for route handlers.

Common query patterns, request scoping and error translation used across
multiple route files.
"""

from typing import TypeVar

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from database import Base
from integrations.exceptions import ExternalServiceError
from models import Account
from services.exceptions import (
    ImportStateError,
    LedgerError,
    LedgerOperationError,
    NotFoundError,
)

T = TypeVar("T", bound=Base)


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Scope a request to the user named in the ``X-User-Id`` header.

    Raises:
        HTTPException: 400 if the header is blank.
    """
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="X-User-Id header is required")
    return user_id


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def get_user_account_or_404(db: Session, user_id: str, account_id: str) -> Account:
    """Fetch an account owned by ``user_id`` or raise 404."""
    account = get_or_404(db, Account, account_id, "Account not found")
    if account.user_id != user_id:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


def http_error_for(exc: Exception) -> HTTPException:
    """Translate a service exception into the matching HTTP error.

    NotFound -> 404, rejected ledger operations and other ledger errors ->
    400, import state conflicts -> 409, external collaborator failures -> 502.
    """
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ImportStateError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, LedgerOperationError):
        return HTTPException(
            status_code=404 if exc.result.error_kind == "not_found" else 400,
            detail=str(exc),
        )
    if isinstance(exc, LedgerError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ExternalServiceError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal server error")
