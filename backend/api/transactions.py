"""Transaction API endpoints.

Creating, deleting and replacing a transaction applies or reverses its
ledger effect in the same database transaction; a rejected effect rejects
the request.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id, http_error_for
from database import get_db
from schemas.transaction import (
    TransactionCreate,
    TransactionMutationResponse,
    TransactionResponse,
)
from services.exceptions import LedgerError
from services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def get_transaction_service() -> TransactionService:
    """Get TransactionService instance, allowing for test overrides."""
    return TransactionService()


@router.post("", response_model=TransactionMutationResponse, status_code=201)
def create_transaction(
    data: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: TransactionService = Depends(get_transaction_service),
):
    """Record a transaction and apply it to its account."""
    try:
        txn, result = service.create_transaction(db, user_id, data)
    except LedgerError as e:
        db.rollback()
        raise http_error_for(e)
    db.commit()
    db.refresh(txn)
    return {"transaction": txn, "balance_delta": result.balance_delta}


@router.get("", response_model=list[TransactionResponse])
def list_transactions(
    account_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List transactions, newest first."""
    return TransactionService.list_transactions(
        db, user_id, account_id=account_id, start=start_date, end=end_date
    )


@router.put("/{transaction_id}", response_model=TransactionMutationResponse)
def replace_transaction(
    transaction_id: str,
    data: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: TransactionService = Depends(get_transaction_service),
):
    """Edit a transaction (reverse and delete it, then create the replacement)."""
    try:
        txn, result = service.replace_transaction(db, user_id, transaction_id, data)
    except LedgerError as e:
        db.rollback()
        raise http_error_for(e)
    db.commit()
    db.refresh(txn)
    return {"transaction": txn, "balance_delta": result.balance_delta}


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: TransactionService = Depends(get_transaction_service),
):
    """Reverse a transaction's effect and delete it."""
    try:
        service.delete_transaction(db, user_id, transaction_id)
    except LedgerError as e:
        db.rollback()
        raise http_error_for(e)
    db.commit()
