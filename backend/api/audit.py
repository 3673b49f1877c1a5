"""Reconciliation audit and repair endpoints.

GET routes only report. Balances and holdings are rewritten only by the
POST repair routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id, get_user_account_or_404
from database import get_db
from schemas.audit import (
    AccountAuditResponse,
    BulkRepairResponse,
    DataAuditReportResponse,
    RebuildResponse,
    RepairResponse,
)
from services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("", response_model=DataAuditReportResponse)
def audit_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Audit all of the user's accounts and list orphaned transactions."""
    return ReconciliationService.audit_user(db, user_id)


@router.get("/accounts/{account_id}", response_model=AccountAuditResponse)
def audit_account(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Audit one account's balance and holdings."""
    account = get_user_account_or_404(db, user_id, account_id)
    return {
        "balance": ReconciliationService.audit_account(db, account),
        "holdings": ReconciliationService.audit_holdings(db, account),
    }


@router.post("/accounts/{account_id}/recalculate", response_model=RepairResponse)
def recalculate_account_balance(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Overwrite an account's stored balance with its replayed balance."""
    get_user_account_or_404(db, user_id, account_id)
    result = ReconciliationService.recalculate_account_balance(db, user_id, account_id)
    if not result.success:
        db.rollback()
        raise HTTPException(status_code=500, detail=result.error)
    db.commit()
    return result


@router.post("/recalculate-all", response_model=BulkRepairResponse)
def recalculate_all_account_balances(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Repair every account's balance; failures are reported per account."""
    result = ReconciliationService.recalculate_all_account_balances(db, user_id)
    db.commit()
    return result


@router.post("/accounts/{account_id}/rebuild-holdings", response_model=RebuildResponse)
def rebuild_account_holdings(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Rebuild an account's holdings and lots from its buy/sell history."""
    get_user_account_or_404(db, user_id, account_id)
    result = ReconciliationService.rebuild_account_holdings(db, user_id, account_id)
    if not result.success:
        db.rollback()
        raise HTTPException(status_code=500, detail="; ".join(result.errors))
    db.commit()
    return result
