"""Statement import workflow.

An uploaded statement moves ``pending -> processing -> completed | failed``.
Processing downloads the stored file, extracts and validates candidate
trades, persists them for review and deletes the uploaded file. Status
transitions are committed as they happen so a failed run is recorded even
though its candidates are discarded.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from integrations.exceptions import StorageError
from integrations.storage_protocol import LocalStatementStorage, StatementStorage
from models import ParsedTrade, StatementImport
from models.utils import utc_now
from services.exceptions import ImportNotFoundError, ImportStateError, NotFoundError
from services.statement_parser import detect_broker, extract_trades
from services.trade_validation_service import TradeValidationService

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class StatementImportService:
    """Runs statement imports against a file storage collaborator."""

    def __init__(self, storage: StatementStorage | None = None):
        self._storage = storage or LocalStatementStorage()

    @staticmethod
    def get_import(db: Session, user_id: str, import_id: str) -> StatementImport:
        record = (
            db.query(StatementImport)
            .filter(StatementImport.id == import_id, StatementImport.user_id == user_id)
            .first()
        )
        if record is None:
            raise ImportNotFoundError(f"Import {import_id} not found", import_id)
        return record

    def create_import(
        self,
        db: Session,
        user_id: str,
        filename: str,
        file_type: str,
        content: bytes,
    ) -> StatementImport:
        """Store an uploaded file and record a pending import.

        Raises:
            StorageError: If the file could not be stored.
        """
        path = self._storage.save(user_id, filename, content)
        record = StatementImport(
            user_id=user_id,
            filename=filename,
            file_type=file_type,
            file_path=path,
            file_size=len(content),
            status=STATUS_PENDING,
        )
        db.add(record)
        db.flush()
        logger.info("Created import %s for %s (%d bytes)", record.id, filename, len(content))
        return record

    def process_import(
        self,
        db: Session,
        user_id: str,
        import_id: str,
        today: date | None = None,
    ) -> StatementImport:
        """Parse and validate a pending (or previously failed) import.

        Returns the import record, which ends ``completed`` or ``failed``.

        Raises:
            ImportNotFoundError: If the import does not exist for the user.
            ImportStateError: If the import is completed or already processing.
        """
        record = self.get_import(db, user_id, import_id)
        if record.status in (STATUS_COMPLETED, STATUS_PROCESSING):
            raise ImportStateError(f"Import {import_id} is already {record.status}")

        record.status = STATUS_PROCESSING
        record.error_message = None
        db.commit()
        logger.info("Processing import %s (%s)", record.id, record.filename)

        try:
            content = self._storage.download(record.file_path)
            text = content.decode("utf-8", errors="replace")
            broker = detect_broker(text)
            candidates = extract_trades(text, default_date=today or date.today())
            validated, summary = TradeValidationService.validate_trades(
                db, user_id, candidates, today=today
            )

            with db.begin_nested():
                for item in validated:
                    trade = item.candidate
                    db.add(
                        ParsedTrade(
                            import_id=record.id,
                            user_id=user_id,
                            symbol=trade.symbol,
                            action=trade.action,
                            shares=trade.shares,
                            price=trade.price,
                            amount=trade.amount,
                            trade_date=trade.trade_date,
                            account_name=trade.account_name,
                            confidence_score=trade.confidence_score,
                            validation_status=item.validation_status,
                            validation_errors=[issue.to_dict() for issue in item.issues],
                            raw_text_snippet=trade.raw_text_snippet,
                            is_selected=True,
                        )
                    )
                db.flush()
        except Exception as e:
            logger.warning("Import %s failed: %s", record.id, e, exc_info=True)
            # The processing state is committed; drop whatever the failure left pending
            db.rollback()
            record.status = STATUS_FAILED
            record.error_message = str(e) or type(e).__name__
            record.processed_at = utc_now()
            db.commit()
            return record

        record.status = STATUS_COMPLETED
        record.processed_at = utc_now()
        record.broker_name = broker.value
        record.trade_count = len(validated)
        record.validation_summary = summary.to_dict()
        db.commit()

        try:
            self._storage.delete(record.file_path)
        except StorageError:
            logger.warning(
                "Import %s completed but its upload could not be removed", record.id, exc_info=True
            )
        logger.info(
            "Import %s completed: %d trades (%d valid, %d warning, %d error), broker %s",
            record.id,
            record.trade_count,
            summary.valid_count,
            summary.warning_count,
            summary.error_count,
            record.broker_name,
        )
        return record

    @staticmethod
    def list_imports(db: Session, user_id: str) -> list[StatementImport]:
        return (
            db.query(StatementImport)
            .filter(StatementImport.user_id == user_id)
            .order_by(StatementImport.uploaded_at.desc())
            .all()
        )

    @staticmethod
    def get_parsed_trades(db: Session, user_id: str, import_id: str) -> list[ParsedTrade]:
        StatementImportService.get_import(db, user_id, import_id)
        return (
            db.query(ParsedTrade)
            .filter(ParsedTrade.import_id == import_id, ParsedTrade.user_id == user_id)
            .order_by(ParsedTrade.created_at.asc())
            .all()
        )

    @staticmethod
    def set_trade_selection(
        db: Session, user_id: str, import_id: str, trade_id: str, is_selected: bool
    ) -> ParsedTrade:
        """Include or exclude a parsed trade from promotion."""
        StatementImportService.get_import(db, user_id, import_id)
        trade = (
            db.query(ParsedTrade)
            .filter(
                ParsedTrade.id == trade_id,
                ParsedTrade.import_id == import_id,
                ParsedTrade.user_id == user_id,
            )
            .first()
        )
        if trade is None:
            raise NotFoundError(f"Parsed trade {trade_id} not found", trade_id)
        trade.is_selected = is_selected
        db.flush()
        return trade
