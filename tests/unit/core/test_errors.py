"""
Unit tests for the error taxonomy and SessionHistory.
"""

import pytest

from cipherhunt.core.errors import (
    ChainError,
    CipherHuntError,
    ConnectionRequired,
    ContractReverted,
    CreationFailed,
    InitializationFailed,
    LoadFailed,
    SessionNotReady,
    TransactionRejected,
    TriggerFailed,
    TriggerFailureCause,
    is_user_rejection,
)
from cipherhunt.core.history import SessionHistory


class WalletError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class TestStatusMessages:

    @pytest.mark.parametrize("error_class, message", [
        (ConnectionRequired, "Connect wallet first"),
        (SessionNotReady, "FHE system not ready"),
        (InitializationFailed, "FHEVM initialization failed"),
        (LoadFailed, "Failed to load events"),
        (TriggerFailed, "Trigger failed"),
    ])
    def test_status_message(self, error_class, message):
        error = error_class()

        assert error.status_message == message
        assert str(error) == message
        assert isinstance(error, CipherHuntError)

    def test_creation_failed_distinguishes_rejection(self):
        assert CreationFailed("boom").status_message == "Creation failed"
        assert CreationFailed("denied", user_rejected=True).status_message == "Transaction rejected"

    def test_trigger_failed_keeps_cause(self):
        error = TriggerFailed("reverted", cause=TriggerFailureCause.PROOF_REJECTED)

        assert error.cause is TriggerFailureCause.PROOF_REJECTED
        assert error.status_message == "Trigger failed"
        assert TriggerFailed().cause is TriggerFailureCause.UNKNOWN

    def test_chain_errors_hierarchy(self):
        assert issubclass(TransactionRejected, ChainError)
        assert issubclass(ContractReverted, ChainError)


class TestUserRejection:

    def test_transaction_rejected(self):
        assert is_user_rejection(TransactionRejected()) is True

    @pytest.mark.parametrize("code", ["ACTION_REJECTED", 4001])
    def test_wallet_codes(self, code):
        assert is_user_rejection(WalletError("denied", code)) is True

    def test_message_text(self):
        assert is_user_rejection(RuntimeError("User Rejected the request.")) is True

    def test_other_errors(self):
        assert is_user_rejection(ContractReverted("execution reverted")) is False
        assert is_user_rejection(WalletError("nonce too low", "NONCE_EXPIRED")) is False


class TestSessionHistory:

    def test_records_in_order(self):
        history = SessionHistory()

        history.record("Moved to: 51.5012, -0.0934")
        history.record("Created event: Park Meetup")

        assert history.entries == ["Moved to: 51.5012, -0.0934", "Created event: Park Meetup"]
        assert len(history) == 2

    def test_drops_oldest_when_full(self):
        history = SessionHistory(max_entries=2)

        for i in range(3):
            history.record(f"entry {i}")

        assert history.entries == ["entry 1", "entry 2"]

    def test_clear(self):
        history = SessionHistory()
        history.record("entry")

        history.clear()

        assert history.entries == []

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            SessionHistory(max_entries=0)
