"""Ledger client facade: the only component that talks to the chain."""

import logging
import time
from typing import Any, Dict, Optional

from eth_account import Account
from eth_utils import to_bytes, to_checksum_address, to_int

from .constants import DEFAULT_PRIORITY_FEE_WEI
from .exceptions import (
    FeeUnavailableError,
    InsufficientFundsError,
    RpcConnectionError,
    RpcError,
    TransactionRejectedError,
)
from .hashing import to_hex
from .rpc import JsonRpcClient
from .types import ContractCall, TxOutcome, TxRecord

logger = logging.getLogger(__name__)


def _hex_to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return to_int(hexstr=value)


def _hex_to_bytes(value: Optional[str]) -> bytes:
    if not value or value in ("0x", "0x0"):
        return b""
    return to_bytes(hexstr=value)


class LedgerClient:
    """
    Reads chain state and submits signed transactions for one signing identity.

    One instance is shared by the whole run. Submissions are never retried
    here: node errors are surfaced so that callers can tell a rejection from
    a revert.
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        private_key: str,
        gas_premium_percent: int = 20,
    ):
        """
        Initialize the ledger client.

        Args:
            rpc: JSON-RPC transport
            private_key: Hex private key of the signing identity
            gas_premium_percent: Premium added to the fee estimate
        """
        self.rpc = rpc
        self.account = Account.from_key(private_key)
        self.gas_premium_percent = gas_premium_percent
        self._chain_id: Optional[int] = None

    @property
    def address(self) -> str:
        """Checksummed address of the signing identity."""
        return self.account.address

    def chain_id(self) -> int:
        """
        Chain id of the connected network, fetched once and cached.

        Returns:
            EIP-155 chain id used when signing
        """
        if self._chain_id is None:
            self._chain_id = _hex_to_int(self.rpc.request("eth_chainId"))
        return self._chain_id

    def block_number(self) -> int:
        """
        Current head of the chain.

        Returns:
            Number of the latest block
        """
        return _hex_to_int(self.rpc.request("eth_blockNumber"))

    def get_balance(self, address: str) -> int:
        """
        Native balance of an account at the latest block.

        Args:
            address: Account address

        Returns:
            Balance in wei
        """
        return _hex_to_int(self.rpc.request("eth_getBalance", [address, "latest"]))

    def get_transaction_count(self, address: str) -> int:
        """
        Next nonce for an account, counting pending transactions.

        Args:
            address: Account address

        Returns:
            Transaction count from the pending block
        """
        return _hex_to_int(self.rpc.request("eth_getTransactionCount", [address, "pending"]))

    def read_bytecode(self, address: str) -> bytes:
        """
        Read deployed bytecode.

        Returns:
            Runtime bytecode; empty bytes means nothing observed at the address yet
        """
        return _hex_to_bytes(self.rpc.request("eth_getCode", [address, "latest"]))

    def get_storage_at(self, address: str, slot: str) -> bytes:
        """Read one 32-byte storage slot."""
        return _hex_to_bytes(self.rpc.request("eth_getStorageAt", [address, slot, "latest"]))

    def call(self, to: str, data: bytes) -> bytes:
        """
        Execute a read-only call against the latest block.

        Args:
            to: Contract address
            data: Calldata

        Returns:
            Raw return data
        """
        result = self.rpc.request(
            "eth_call", [{"from": self.address, "to": to, "data": to_hex(data)}, "latest"]
        )
        return _hex_to_bytes(result)

    def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a transaction receipt.

        Returns:
            None while the transaction is not included, otherwise a dict with
            block_number, status (1 success, 0 revert), gas_used and
            contract_address (None unless it was a creation)
        """
        receipt = self.rpc.request("eth_getTransactionReceipt", [tx_hash])
        if receipt is None or receipt.get("blockNumber") is None:
            return None

        contract_address = receipt.get("contractAddress")
        return {
            "block_number": _hex_to_int(receipt["blockNumber"]),
            "status": _hex_to_int(receipt.get("status", "0x1")),
            "gas_used": _hex_to_int(receipt.get("gasUsed")),
            "contract_address": to_checksum_address(contract_address) if contract_address else None,
        }

    def current_fee_estimate(self) -> int:
        """
        Gas price to bid, in wei.

        Takes the higher of the legacy gas price and the EIP-1559 max fee
        (twice the latest base fee plus the default priority fee) and adds
        the configured premium.

        Raises:
            FeeUnavailableError: If fee data cannot be read
        """
        try:
            gas_price = _hex_to_int(self.rpc.request("eth_gasPrice")) or 0
            block = self.rpc.request("eth_getBlockByNumber", ["latest", False]) or {}
        except (RpcError, RpcConnectionError) as e:
            raise FeeUnavailableError(f"Could not read fee data: {e}") from e

        max_fee = 0
        base_fee = _hex_to_int(block.get("baseFeePerGas"))
        if base_fee is not None:
            max_fee = base_fee * 2 + DEFAULT_PRIORITY_FEE_WEI

        base = max(gas_price, max_fee)
        if base == 0:
            raise FeeUnavailableError("Node reported neither a gas price nor a base fee")

        estimate = base * (100 + self.gas_premium_percent) // 100
        logger.debug(
            "Fee estimate: %s wei (%d%% premium over %s wei)",
            estimate,
            self.gas_premium_percent,
            base,
        )
        return estimate

    def ensure_funds(self, cost: int) -> None:
        """
        Check the signing account can pay ``cost`` wei.

        Raises:
            InsufficientFundsError: Naming the address to fund
        """
        balance = self.get_balance(self.address)
        if balance < cost:
            raise InsufficientFundsError(
                f"Insufficient funds: {self.address} holds {balance} wei but the next "
                f"transaction may cost up to {cost} wei. Fund {self.address} and re-run.",
                address=self.address,
                balance=balance,
                required=cost,
            )

    def submit(self, call: ContractCall, gas_price: int) -> TxRecord:
        """
        Sign and send a state-changing call with explicit gas price and limit.

        Args:
            call: Call to submit (``to=None`` deploys a contract)
            gas_price: Gas price in wei

        Returns:
            TxRecord in PENDING state

        Raises:
            InsufficientFundsError: If the worst-case cost exceeds the balance
            TransactionRejectedError: If the node refuses the transaction
            RpcConnectionError: If the node cannot be reached
        """
        self.ensure_funds(gas_price * call.gas_limit + call.value)

        tx: Dict[str, Any] = {
            "nonce": self.get_transaction_count(self.address),
            "gasPrice": gas_price,
            "gas": call.gas_limit,
            "value": call.value,
            "data": to_hex(call.data),
            "chainId": self.chain_id(),
        }
        if call.to is not None:
            tx["to"] = call.to

        signed = self.account.sign_transaction(tx)
        try:
            tx_hash = self.rpc.request("eth_sendRawTransaction", [to_hex(bytes(signed.raw_transaction))])
        except RpcError as e:
            raise TransactionRejectedError(str(e), code=e.code, data=e.data) from e

        if not tx_hash:
            tx_hash = to_hex(bytes(signed.hash))

        logger.info("Submitted %s: %s (nonce %d)", call.description or "transaction", tx_hash, tx["nonce"])
        return TxRecord(
            hash=tx_hash,
            submitted_at=time.time(),
            outcome=TxOutcome.PENDING,
            description=call.description,
        )
