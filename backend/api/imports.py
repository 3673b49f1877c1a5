"""Statement import endpoints: upload, process, review and promote."""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id, http_error_for
from api.transactions import get_transaction_service
from database import get_db
from integrations.exceptions import ExternalServiceError
from schemas.statement_import import (
    ParsedTradeResponse,
    ParsedTradeUpdate,
    StatementImportResponse,
)
from schemas.transaction import PromoteTradesRequest, PromotionResponse
from services.exceptions import LedgerError
from services.statement_import_service import StatementImportService
from services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/imports", tags=["imports"])


def get_import_service() -> StatementImportService:
    """Get StatementImportService instance, allowing for test overrides."""
    return StatementImportService()


@router.post("", response_model=StatementImportResponse, status_code=201)
async def upload_statement(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: StatementImportService = Depends(get_import_service),
):
    """Upload a statement file; it stays pending until processed."""
    content = await file.read()
    filename = file.filename or "statement"
    file_type = file.content_type or "application/octet-stream"
    try:
        record = service.create_import(db, user_id, filename, file_type, content)
    except ExternalServiceError as e:
        db.rollback()
        raise http_error_for(e)
    db.commit()
    db.refresh(record)
    return record


@router.post("/{import_id}/process", response_model=StatementImportResponse)
def process_import(
    import_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: StatementImportService = Depends(get_import_service),
):
    """Parse a pending import. A parse failure is reported as status ``failed``."""
    try:
        record = service.process_import(db, user_id, import_id)
    except LedgerError as e:
        raise http_error_for(e)
    db.refresh(record)
    return record


@router.get("", response_model=list[StatementImportResponse])
def list_imports(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the user's imports, newest first."""
    return StatementImportService.list_imports(db, user_id)


@router.get("/{import_id}/trades", response_model=list[ParsedTradeResponse])
def get_parsed_trades(
    import_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Candidate trades of an import with their validation issues."""
    try:
        return StatementImportService.get_parsed_trades(db, user_id, import_id)
    except LedgerError as e:
        raise http_error_for(e)


@router.patch("/{import_id}/trades/{trade_id}", response_model=ParsedTradeResponse)
def update_parsed_trade(
    import_id: str,
    trade_id: str,
    data: ParsedTradeUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Select or deselect a candidate trade for promotion."""
    try:
        trade = StatementImportService.set_trade_selection(
            db, user_id, import_id, trade_id, data.is_selected
        )
    except LedgerError as e:
        raise http_error_for(e)
    db.commit()
    db.refresh(trade)
    return trade


@router.post("/{import_id}/promote", response_model=PromotionResponse)
def promote_trades(
    import_id: str,
    data: PromoteTradesRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: TransactionService = Depends(get_transaction_service),
):
    """Create ledger transactions from the import's selected trades."""
    try:
        result = service.promote_parsed_trades(db, user_id, import_id, data.account_id)
    except LedgerError as e:
        db.rollback()
        raise http_error_for(e)
    db.commit()
    return result
