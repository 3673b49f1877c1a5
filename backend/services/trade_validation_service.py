"""Validation and duplicate detection for parsed statement trades.

Every candidate is kept; validation only attaches issues and an overall
status (error if any error-severity issue, else warning if any warning,
else valid) for the user to review.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Transaction
from services.statement_parser import TradeCandidate
from services.transaction_metadata import resolve_metadata

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

DUPLICATE_TOLERANCE = Decimal("0.01")
AMOUNT_MISMATCH_TOLERANCE = Decimal("0.02")
MAX_TRADE_AGE_YEARS = 10

DUPLICATE_MESSAGE = "Potential duplicate transaction detected"


@dataclass
class ValidationIssue:
    field: str
    severity: str
    message: str
    suggested_fix: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ValidatedTrade:
    candidate: TradeCandidate
    validation_status: str
    issues: list[ValidationIssue] = field(default_factory=list)
    is_duplicate: bool = False


@dataclass
class ValidationSummary:
    total_trades: int = 0
    valid_count: int = 0
    warning_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    issues: list[ValidationIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalTrades": self.total_trades,
            "validCount": self.valid_count,
            "warningCount": self.warning_count,
            "errorCount": self.error_count,
            "duplicateCount": self.duplicate_count,
            "issues": [issue.to_dict() for issue in self.issues],
        }


def _check_required(trade: TradeCandidate, issues: list[ValidationIssue]) -> None:
    if not trade.symbol or not trade.symbol.strip():
        issues.append(ValidationIssue(
            "symbol", SEVERITY_ERROR, "Symbol is required", "Add a valid stock ticker symbol"
        ))
    if not trade.action or not trade.action.strip():
        issues.append(ValidationIssue(
            "action", SEVERITY_ERROR, "Action is required",
            "Specify the trade action (BUY, SELL, etc.)",
        ))
    if trade.amount is None:
        issues.append(ValidationIssue(
            "amount", SEVERITY_ERROR, "Amount is required", "Enter the total transaction amount"
        ))
    if trade.trade_date is None:
        issues.append(ValidationIssue(
            "trade_date", SEVERITY_ERROR, "Trade date is required",
            "Enter a valid date in YYYY-MM-DD format",
        ))


def _check_symbol(trade: TradeCandidate, issues: list[ValidationIssue]) -> None:
    if not trade.symbol:
        return
    if not (trade.symbol.isalpha() and trade.symbol.isupper() and len(trade.symbol) <= 5):
        issues.append(ValidationIssue(
            "symbol", SEVERITY_WARNING, "Symbol format may be invalid",
            "Verify the ticker symbol is correct (1-5 uppercase letters)",
        ))
    if len(trade.symbol) > 5:
        issues.append(ValidationIssue(
            "symbol", SEVERITY_ERROR, "Symbol too long",
            "Use standard ticker symbols (max 5 characters)",
        ))


def _check_amounts(trade: TradeCandidate, issues: list[ValidationIssue]) -> None:
    if trade.amount is not None and trade.amount <= 0:
        issues.append(ValidationIssue(
            "amount", SEVERITY_WARNING, "Amount is not positive",
            "Verify the total transaction amount",
        ))
    if trade.shares is not None and trade.shares <= 0:
        issues.append(ValidationIssue(
            "shares", SEVERITY_ERROR, "Shares must be greater than zero",
            "Enter a positive number of shares",
        ))
    if trade.price is not None and trade.price <= 0:
        issues.append(ValidationIssue(
            "price", SEVERITY_ERROR, "Price must be greater than zero",
            "Enter a positive price per share",
        ))
    if trade.shares is not None and trade.price is not None and trade.amount is not None:
        calculated = abs(trade.shares * trade.price)
        actual = abs(trade.amount)
        if abs(calculated - actual) > AMOUNT_MISMATCH_TOLERANCE:
            issues.append(ValidationIssue(
                "amount", SEVERITY_WARNING,
                f"Amount mismatch: {trade.shares} x ${trade.price} = ${calculated:.2f}, "
                f"but amount is ${actual:.2f}",
                "Verify shares, price, and total amount are correct",
            ))


def _check_date(trade: TradeCandidate, issues: list[ValidationIssue], today: date) -> None:
    if trade.trade_date is None:
        return
    if trade.trade_date > today:
        issues.append(ValidationIssue(
            "trade_date", SEVERITY_WARNING, "Trade date is in the future",
            "Verify the date is correct",
        ))
    try:
        oldest = today.replace(year=today.year - MAX_TRADE_AGE_YEARS)
    except ValueError:
        # Feb 29 with no counterpart ten years back
        oldest = today.replace(year=today.year - MAX_TRADE_AGE_YEARS, day=28)
    if trade.trade_date < oldest:
        issues.append(ValidationIssue(
            "trade_date", SEVERITY_WARNING, "Trade date is more than 10 years old",
            "Verify this is a historical import",
        ))


def _status_for(issues: list[ValidationIssue]) -> str:
    if any(issue.severity == SEVERITY_ERROR for issue in issues):
        return "error"
    if any(issue.severity == SEVERITY_WARNING for issue in issues):
        return "warning"
    return "valid"


class TradeValidationService:
    """Validates a batch of trade candidates for one user."""

    @staticmethod
    def _existing_transactions(
        db: Session, user_id: str, candidates: list[TradeCandidate]
    ) -> list[tuple[str | None, date, Decimal]]:
        """(ticker, date, |amount|) of the user's transactions over the batch date span.

        Loaded once per batch.
        """
        dates = [c.trade_date for c in candidates if c.trade_date is not None]
        if not dates:
            return []
        rows = (
            db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.transaction_date >= min(dates),
                Transaction.transaction_date <= max(dates),
            )
            .all()
        )
        return [
            (resolve_metadata(txn).ticker, txn.transaction_date, abs(Decimal(txn.amount)))
            for txn in rows
        ]

    @staticmethod
    def is_duplicate(
        candidate: TradeCandidate, existing: list[tuple[str | None, date, Decimal]]
    ) -> bool:
        """Same ticker, same date and amounts within a cent of an existing transaction."""
        if not candidate.symbol or candidate.trade_date is None or candidate.amount is None:
            return False
        symbol = candidate.symbol.upper()
        amount = abs(candidate.amount)
        return any(
            ticker == symbol
            and txn_date == candidate.trade_date
            and abs(txn_amount - amount) <= DUPLICATE_TOLERANCE
            for ticker, txn_date, txn_amount in existing
        )

    @staticmethod
    def validate_trades(
        db: Session,
        user_id: str,
        candidates: list[TradeCandidate],
        today: date | None = None,
    ) -> tuple[list[ValidatedTrade], ValidationSummary]:
        """Attach issues and a status to every candidate.

        Duplicates are flagged as warnings, never dropped.
        """
        today = today or date.today()
        existing = TradeValidationService._existing_transactions(db, user_id, candidates)

        validated = []
        summary = ValidationSummary(total_trades=len(candidates))
        for candidate in candidates:
            issues: list[ValidationIssue] = []
            _check_required(candidate, issues)
            _check_symbol(candidate, issues)
            _check_amounts(candidate, issues)
            _check_date(candidate, issues, today)

            duplicate = TradeValidationService.is_duplicate(candidate, existing)
            if duplicate:
                summary.duplicate_count += 1
                issues.append(ValidationIssue(
                    "trade", SEVERITY_WARNING, DUPLICATE_MESSAGE,
                    "Review existing transactions for this symbol and date",
                ))

            status = _status_for(issues)
            if status == "error":
                summary.error_count += 1
            elif status == "warning":
                summary.warning_count += 1
            else:
                summary.valid_count += 1

            summary.issues.extend(issues)
            validated.append(ValidatedTrade(candidate, status, issues, duplicate))

        if summary.duplicate_count:
            logger.info(
                "Flagged %d potential duplicates among %d trades for user %s",
                summary.duplicate_count,
                len(candidates),
                user_id,
            )
        return validated, summary
