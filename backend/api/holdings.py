"""Holding and lot API endpoints for an account."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id, get_user_account_or_404
from database import get_db
from models import Holding, HoldingLot
from schemas.holding import HoldingLotResponse, HoldingResponse
from services.lot_tracker import LOT_OPEN, LotTracker

router = APIRouter(prefix="/api/accounts", tags=["holdings"])


@router.get("/{account_id}/holdings", response_model=list[HoldingResponse])
def get_account_holdings(
    account_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get the current holdings of an account with their open-lot totals."""
    get_user_account_or_404(db, user_id, account_id)
    holdings = (
        db.query(Holding)
        .filter(Holding.account_id == account_id)
        .order_by(Holding.symbol)
        .all()
    )

    response = []
    for holding in holdings:
        summary = LotTracker.lot_summary(db, holding)
        item = HoldingResponse.model_validate(holding)
        item.lot_count = summary.lot_count
        item.lot_cost_basis = summary.lot_cost_basis
        response.append(item)
    return response


@router.get("/{account_id}/lots", response_model=list[HoldingLotResponse])
def get_account_lots(
    account_id: str,
    symbol: str | None = Query(default=None),
    include_closed: bool = Query(default=False),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get lots for an account in FIFO order."""
    get_user_account_or_404(db, user_id, account_id)
    query = db.query(HoldingLot).filter(HoldingLot.account_id == account_id)
    if symbol:
        query = query.filter(HoldingLot.symbol == symbol.upper())
    if not include_closed:
        query = query.filter(HoldingLot.lot_status == LOT_OPEN)
    return query.order_by(
        HoldingLot.symbol, HoldingLot.purchase_date, HoldingLot.created_at
    ).all()
