"""Portfolio snapshot endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id
from database import get_db
from schemas.snapshot import (
    BackfillRequest,
    BackfillResponse,
    PortfolioSnapshotResponse,
    SnapshotCreate,
    SnapshotResultResponse,
)
from services.snapshot_service import SnapshotService

router = APIRouter(prefix="/api/snapshots", tags=["snapshots"])


@router.post("", response_model=SnapshotResultResponse)
def generate_snapshot(
    data: SnapshotCreate | None = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Write (or overwrite) the snapshot for a date, default today."""
    snapshot_date = data.snapshot_date if data else None
    result = SnapshotService.generate_snapshot(db, user_id, snapshot_date)
    if not result.success:
        db.rollback()
        raise HTTPException(status_code=500, detail=result.error)
    db.commit()
    return {
        "success": True,
        "snapshot_date": result.snapshot_date,
        "total_assets": result.data.total_assets,
        "total_liabilities": result.data.total_liabilities,
        "net_worth": result.data.net_worth,
        "asset_class_breakdown": result.data.asset_class_breakdown,
    }


@router.post("/backfill", response_model=BackfillResponse)
def backfill_snapshots(
    data: BackfillRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create snapshots for every missing date in a range."""
    result = SnapshotService.backfill_snapshots(db, user_id, data.start_date, data.end_date)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    db.commit()
    return result


@router.get("", response_model=list[PortfolioSnapshotResponse])
def get_historical_snapshots(
    days: int = Query(default=30, ge=1, le=3650),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Snapshots from the last ``days`` days, oldest first."""
    return SnapshotService.get_historical_snapshots(db, user_id, days)
