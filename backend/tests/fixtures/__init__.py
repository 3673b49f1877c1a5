"""Test fixtures and sample data."""
import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.market_data_protocol import StaticPriceSource
from integrations.storage_protocol import LocalStatementStorage
from models import Account, AssetClass, Transaction

USER_ID = "user-0001"
OTHER_USER_ID = "user-0002"
INVESTMENT_CATEGORY = "Investment Accounts"


def make_transaction(
    db: Session,
    account: Account | None,
    transaction_type: str,
    amount,
    transaction_date: date = date(2025, 1, 15),
    metadata: dict | None = None,
    user_id: str = USER_ID,
    ledger_applied: bool = False,
    account_id: str | None = None,
) -> Transaction:
    """Insert a raw transaction row without touching balances or holdings.

    Args:
        db: Database session
        account: Account the transaction posts to (None for an orphan)
        transaction_type: Ledger type, e.g. "deposit" or "buy"
        amount: Unsigned amount
        transaction_date: Date of the transaction
        metadata: Optional ticker/quantity/price block
        user_id: Owner of the transaction
        ledger_applied: Value of the applied marker
        account_id: Explicit account id, overrides ``account``

    Returns:
        The flushed Transaction
    """
    txn = Transaction(
        user_id=user_id,
        account_id=account_id if account_id is not None else (account.id if account else None),
        transaction_type=transaction_type,
        amount=Decimal(str(amount)),
        transaction_date=transaction_date,
        transaction_metadata=metadata,
        ledger_applied=ledger_applied,
    )
    db.add(txn)
    db.flush()
    return txn


def trade_metadata(ticker: str, quantity, price) -> dict:
    """Metadata block for a buy/sell transaction."""
    return {"ticker": ticker, "quantity": str(quantity), "price": str(price)}


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def asset_class(db: Session) -> AssetClass:
    """Create an asset class."""
    ac = AssetClass(user_id=USER_ID, name="Cash & Equivalents", color="#10B981")
    db.add(ac)
    db.commit()
    db.refresh(ac)
    return ac


@pytest.fixture
def bank_account(db: Session, asset_class: AssetClass) -> Account:
    """Create a checking account with a zero balance."""
    account = Account(
        user_id=USER_ID,
        name="Everyday Checking",
        account_type="asset",
        category="Checking",
        current_balance=Decimal("0"),
        asset_class_id=asset_class.id,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def investment_account(db: Session) -> Account:
    """Create an investment-category brokerage account."""
    account = Account(
        user_id=USER_ID,
        name="Brokerage",
        account_type="asset",
        category=INVESTMENT_CATEGORY,
        current_balance=Decimal("0"),
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def credit_card(db: Session) -> Account:
    """Create a liability account."""
    account = Account(
        user_id=USER_ID,
        name="Rewards Card",
        account_type="liability",
        category="Credit Cards",
        current_balance=Decimal("0"),
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def other_user_account(db: Session) -> Account:
    """Create an account belonging to a different user."""
    account = Account(
        user_id=OTHER_USER_ID,
        name="Someone Else's Savings",
        account_type="asset",
        category="Savings",
        current_balance=Decimal("1000"),
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def price_source() -> StaticPriceSource:
    """Price source with no known prices."""
    return StaticPriceSource()


@pytest.fixture
def statement_storage(tmp_path) -> LocalStatementStorage:
    """Statement storage rooted in a temporary directory."""
    return LocalStatementStorage(root=tmp_path / "uploads")
