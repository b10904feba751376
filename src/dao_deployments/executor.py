"""Submit-and-confirm for single state-changing calls."""

import logging

from .confirmation import ConfirmationTracker
from .exceptions import ConfirmationTimeoutError, TransactionRevertedError
from .types import ContractCall, NetworkProfile, TxOutcome, TxRecord

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """
    Runs one call at a time: fee estimate, submit, wait for confirmation.

    The next call is never submitted before the previous one is confirmed,
    so a single signing identity never races on its nonce.
    """

    def __init__(
        self,
        ledger,
        tracker: ConfirmationTracker,
        profile: NetworkProfile,
    ):
        self.ledger = ledger
        self.tracker = tracker
        self.profile = profile
        self.history = []  # Confirmed TxRecords, in order

    def submit(self, call: ContractCall) -> TxRecord:
        """Estimate the fee and submit without waiting."""
        gas_price = self.ledger.current_fee_estimate()
        return self.ledger.submit(call, gas_price)

    def confirm(self, record: TxRecord) -> TxRecord:
        """
        Wait for a submitted transaction and insist on success.

        Raises:
            TransactionRevertedError: If the transaction reverted
            ConfirmationTimeoutError: If the confirmation timeout elapsed
        """
        result = self.tracker.await_confirmation(record, self.profile)

        if result.outcome is TxOutcome.REVERTED:
            raise TransactionRevertedError(
                f"{result.description or 'Transaction'} reverted: {result.hash}",
                tx_hash=result.hash,
            )
        if result.outcome is TxOutcome.TIMED_OUT:
            raise ConfirmationTimeoutError(
                f"{result.description or 'Transaction'} not confirmed within "
                f"{self.profile.timeout_ms // 1000}s: {result.hash}. It may still be "
                "included; inspect it before re-running.",
                tx_hash=result.hash,
            )

        logger.info("Confirmed %s: %s", result.description or "transaction", result.hash)
        self.history.append(result)
        return result

    def execute(self, call: ContractCall) -> TxRecord:
        """Submit a call and wait for it to be confirmed."""
        return self.confirm(self.submit(call))
