"""Line-oriented extraction of candidate trades from broker statement text.

Pure functions, no I/O. Each non-empty line yields at most one candidate:
buy patterns are tried first, then sell, then dividend, and the first
match wins.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class BrokerType(str, Enum):
    FIDELITY = "Fidelity"
    ROBINHOOD = "Robinhood"
    ETRADE = "E*TRADE"
    SCHWAB = "Charles Schwab"
    TD_AMERITRADE = "TD Ameritrade"
    VANGUARD = "Vanguard"
    INTERACTIVE_BROKERS = "Interactive Brokers"
    WEBULL = "Webull"
    UNKNOWN = "Unknown"


# Checked in order; first match wins
_BROKER_PATTERNS = [
    (BrokerType.FIDELITY, re.compile(r"fidelity", re.IGNORECASE)),
    (BrokerType.ROBINHOOD, re.compile(r"robinhood", re.IGNORECASE)),
    (BrokerType.ETRADE, re.compile(r"e\*trade", re.IGNORECASE)),
    (BrokerType.SCHWAB, re.compile(r"charles schwab|schwab", re.IGNORECASE)),
    (BrokerType.TD_AMERITRADE, re.compile(r"td ameritrade|ameritrade", re.IGNORECASE)),
    (BrokerType.VANGUARD, re.compile(r"vanguard", re.IGNORECASE)),
    (BrokerType.INTERACTIVE_BROKERS, re.compile(r"interactive brokers|\bibkr\b", re.IGNORECASE)),
    (BrokerType.WEBULL, re.compile(r"webull", re.IGNORECASE)),
]

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_SLASH_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_NAMED_MONTH_DATE = re.compile(
    r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+(\d{1,2}),?\s+(\d{4})",
    re.IGNORECASE,
)

_NUM = r"\d+(?:\.\d+)?"
_SYM = r"[A-Z]{1,5}"

_BUY_PATTERNS = [
    re.compile(
        rf"(?:bought|buy|purchased)\s+(?P<shares>{_NUM})\s+(?:shares?\s+of\s+)?"
        rf"(?P<symbol>{_SYM})\s+(?:at|@|for)\s+\$?(?P<price>{_NUM})",
        re.IGNORECASE,
    ),
    re.compile(
        rf"(?P<symbol>{_SYM})\s+buy\s+(?P<shares>{_NUM})\s+\$?(?P<price>{_NUM})",
        re.IGNORECASE,
    ),
]

_SELL_PATTERNS = [
    re.compile(
        rf"(?:sold|sell)\s+(?P<shares>{_NUM})\s+(?:shares?\s+of\s+)?"
        rf"(?P<symbol>{_SYM})\s+(?:at|@|for)\s+\$?(?P<price>{_NUM})",
        re.IGNORECASE,
    ),
    re.compile(
        rf"(?P<symbol>{_SYM})\s+sell\s+(?P<shares>{_NUM})\s+\$?(?P<price>{_NUM})",
        re.IGNORECASE,
    ),
]

_DIVIDEND_PATTERNS = [
    re.compile(
        rf"dividend\s+(?:payment\s+)?(?:for\s+)?(?P<symbol>{_SYM})\s+\$?(?P<amount>{_NUM})",
        re.IGNORECASE,
    ),
    re.compile(
        rf"(?P<symbol>{_SYM})\s+dividend\s+\$?(?P<amount>{_NUM})",
        re.IGNORECASE,
    ),
]

TRADE_CONFIDENCE = Decimal("0.8")
DIVIDEND_CONFIDENCE = Decimal("0.75")


@dataclass
class TradeCandidate:
    """A trade read from one statement line, not yet validated."""

    symbol: str
    action: str  # BUY / SELL / DIVIDEND
    amount: Decimal | None
    trade_date: date | None
    confidence_score: Decimal
    raw_text_snippet: str
    shares: Decimal | None = None
    price: Decimal | None = None
    account_name: str | None = None


def detect_broker(text: str) -> BrokerType:
    """Name the broker a statement comes from, or UNKNOWN."""
    for broker, pattern in _BROKER_PATTERNS:
        if pattern.search(text):
            return broker
    return BrokerType.UNKNOWN


def extract_date(text: str) -> date | None:
    """First recognizable date in ``text``.

    Formats are tried in order: M/D/YYYY, YYYY-MM-DD, then "Mon D, YYYY".
    A match that is not a real calendar date falls through to the next
    format.
    """
    match = _SLASH_DATE.search(text)
    if match:
        try:
            return date(int(match.group(3)), int(match.group(1)), int(match.group(2)))
        except ValueError:
            pass

    match = _ISO_DATE.search(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            pass

    match = _NAMED_MONTH_DATE.search(text)
    if match:
        try:
            return date(
                int(match.group(3)), _MONTHS[match.group(1).lower()], int(match.group(2))
            )
        except ValueError:
            pass

    return None


def _match_trade(line: str, patterns, action: str, trade_date: date) -> TradeCandidate | None:
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            shares = Decimal(match.group("shares"))
            price = Decimal(match.group("price"))
            return TradeCandidate(
                symbol=match.group("symbol").upper(),
                action=action,
                shares=shares,
                price=price,
                amount=abs(shares * price),
                trade_date=trade_date,
                confidence_score=TRADE_CONFIDENCE,
                raw_text_snippet=line,
            )
    return None


def _match_dividend(line: str, trade_date: date) -> TradeCandidate | None:
    for pattern in _DIVIDEND_PATTERNS:
        match = pattern.search(line)
        if match:
            return TradeCandidate(
                symbol=match.group("symbol").upper(),
                action="DIVIDEND",
                amount=abs(Decimal(match.group("amount"))),
                trade_date=trade_date,
                confidence_score=DIVIDEND_CONFIDENCE,
                raw_text_snippet=line,
            )
    return None


def extract_trades(text: str, default_date: date | None = None) -> list[TradeCandidate]:
    """Candidate trades from statement text, one per matching line at most.

    Args:
        text: Full statement text.
        default_date: Date for lines that carry none (defaults to today).
    """
    default_date = default_date or date.today()
    candidates = []

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        trade_date = extract_date(line) or default_date

        candidate = (
            _match_trade(line, _BUY_PATTERNS, "BUY", trade_date)
            or _match_trade(line, _SELL_PATTERNS, "SELL", trade_date)
            or _match_dividend(line, trade_date)
        )
        if candidate is not None:
            candidates.append(candidate)

    return candidates
