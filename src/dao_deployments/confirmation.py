"""Transaction confirmation tracking."""

import logging
import time
from dataclasses import replace
from typing import Callable

from .constants import CODE_VISIBILITY_ATTEMPTS, CODE_VISIBILITY_WAIT_SECONDS
from .exceptions import CodeNotObservedError
from .types import NetworkProfile, TxOutcome, TxRecord

logger = logging.getLogger(__name__)


class ConfirmationTracker:
    """
    Blocks until submitted transactions are final enough, or gives up.

    Polling is a plain sleep loop; the clock and sleep functions are
    injectable so tests can drive time explicitly.
    """

    def __init__(
        self,
        ledger,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        code_attempts: int = CODE_VISIBILITY_ATTEMPTS,
        code_wait_seconds: float = CODE_VISIBILITY_WAIT_SECONDS,
    ):
        self.ledger = ledger
        self.clock = clock
        self.sleep = sleep
        self.code_attempts = code_attempts
        self.code_wait_seconds = code_wait_seconds

    def await_confirmation(self, record: TxRecord, profile: NetworkProfile) -> TxRecord:
        """
        Wait for a transaction to reach the profile's confirmation depth.

        A transaction is confirmed once included and the chain head is at
        least ``required_confirmations - 1`` blocks past the inclusion block.
        The timeout is measured by this client only: a TIMED_OUT transaction
        may still be included later.

        Args:
            record: Record returned by LedgerClient.submit
            profile: Network profile with poll interval, timeout and depth

        Returns:
            Copy of the record with outcome CONFIRMED, REVERTED or TIMED_OUT
        """
        timeout_s = profile.timeout_ms / 1000
        deadline = self.clock() + timeout_s
        poll_s = profile.poll_interval_ms / 1000
        polls = 0
        confirmations = 0
        block_number = None

        while True:
            now = self.clock()
            if now >= deadline:
                logger.error(
                    "Transaction %s not confirmed after %.0fs (%d/%d confirmation(s))",
                    record.hash,
                    timeout_s,
                    confirmations,
                    profile.required_confirmations,
                )
                return replace(
                    record,
                    attempt=polls,
                    block_number=block_number,
                    confirmations=confirmations,
                    outcome=TxOutcome.TIMED_OUT,
                )

            polls += 1
            receipt = self.ledger.get_receipt(record.hash)

            if receipt is not None:
                block_number = receipt["block_number"]
                if receipt["status"] == 0:
                    logger.error("Transaction %s reverted in block %d", record.hash, block_number)
                    return replace(
                        record,
                        attempt=polls,
                        block_number=block_number,
                        confirmations=0,
                        outcome=TxOutcome.REVERTED,
                    )

                confirmations = max(0, self.ledger.block_number() - block_number + 1)
                # A slow receipt read can cross the deadline
                if confirmations >= profile.required_confirmations and self.clock() < deadline:
                    logger.debug(
                        "Transaction %s confirmed (%d confirmation(s))", record.hash, confirmations
                    )
                    return replace(
                        record,
                        attempt=polls,
                        block_number=block_number,
                        confirmations=confirmations,
                        contract_address=receipt.get("contract_address") or record.contract_address,
                        outcome=TxOutcome.CONFIRMED,
                    )

            # Never sleep past the deadline
            self.sleep(max(0.0, min(poll_s, deadline - self.clock())))

    def await_bytecode_presence(self, address: str) -> bytes:
        """
        Wait until runtime bytecode is visible at a freshly deployed address.

        Some nodes expose the code later than the receipt, so each miss waits
        ``attempt * code_wait_seconds`` before trying again.

        Args:
            address: Contract address

        Returns:
            The observed bytecode

        Raises:
            CodeNotObservedError: If no code is seen within the attempt budget
        """
        for attempt in range(1, self.code_attempts + 1):
            code = self.ledger.read_bytecode(address)
            if code:
                logger.info("Code verified at %s (%d bytes)", address, len(code))
                return code

            if attempt < self.code_attempts:
                wait = attempt * self.code_wait_seconds
                logger.info(
                    "Attempt %d: no code at %s yet, waiting %.0fs", attempt, address, wait
                )
                self.sleep(wait)

        raise CodeNotObservedError(
            f"No code found at {address} after {self.code_attempts} attempts"
        )
