"""Tests for shared API helpers."""

from decimal import Decimal

import pytest
from fastapi import HTTPException

from api.helpers import (
    get_current_user_id,
    get_or_404,
    get_user_account_or_404,
    http_error_for,
)
from integrations.exceptions import StorageError
from models import Account, Transaction
from services.balance_service import LedgerResult
from services.exceptions import (
    AccountNotFoundError,
    ConsistencyError,
    ImportStateError,
    InsufficientLotsError,
    LedgerOperationError,
)
from tests.fixtures import USER_ID


class TestGetOr404:
    """Tests for get_or_404."""

    def test_returns_entity(self, db, bank_account):
        """Returns the entity when it exists."""
        result = get_or_404(db, Account, bank_account.id, "Account not found")
        assert result.id == bank_account.id
        assert result.name == "Everyday Checking"

    def test_raises_404_when_missing(self, db):
        """Raises HTTPException 404 when the entity doesn't exist."""
        with pytest.raises(HTTPException) as exc_info:
            get_or_404(db, Account, "nonexistent-id", "Account not found")
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Account not found"

    def test_works_with_different_models(self, db):
        with pytest.raises(HTTPException) as exc_info:
            get_or_404(db, Transaction, "missing", "Transaction not found")
        assert exc_info.value.detail == "Transaction not found"


class TestGetUserAccountOr404:
    def test_own_account(self, db, bank_account):
        assert get_user_account_or_404(db, USER_ID, bank_account.id).id == bank_account.id

    def test_other_users_account_hidden(self, db, other_user_account):
        with pytest.raises(HTTPException) as exc_info:
            get_user_account_or_404(db, USER_ID, other_user_account.id)
        assert exc_info.value.status_code == 404


class TestGetCurrentUserId:
    def test_strips_whitespace(self):
        assert get_current_user_id("  user-1 ") == "user-1"

    def test_blank_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user_id("   ")
        assert exc_info.value.status_code == 400


class TestHttpErrorFor:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (AccountNotFoundError("Account x not found", "x"), 404),
            (ImportStateError("already completed"), 409),
            (LedgerOperationError(LedgerResult.failed("gone", "not_found")), 404),
            (LedgerOperationError(LedgerResult.failed("bad qty", "validation")), 400),
            (InsufficientLotsError("XYZ", Decimal("5"), Decimal("1")), 400),
            (ConsistencyError("drift"), 400),
            (StorageError("disk full"), 502),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_status_mapping(self, exc, status):
        assert http_error_for(exc).status_code == status

    def test_internal_errors_not_leaked(self):
        assert http_error_for(RuntimeError("secret")).detail == "Internal server error"
