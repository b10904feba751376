"""Read helpers and call builders for the deployed components."""

from typing import Any, Dict, Sequence, Tuple

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from .abi import decode_result, encode_call
from .constants import (
    ALLOWLIST_GAS_LIMIT,
    GOV_PARAM_GAS_LIMIT,
    ROLE_GAS_LIMIT,
    THREAT_LEVEL_GAS_LIMIT,
    ZERO_ADDRESS,
    ZERO_SELECTOR,
)
from .exceptions import VerificationError
from .hashing import to_hex
from .types import ContractCall, Discrepancy, GovParam, ThreatTier

# Access control
HAS_ROLE = "hasRole(bytes32,address)"
GRANT_ROLE = "grantRole(bytes32,address)"
REVOKE_ROLE = "revokeRole(bytes32,address)"
GRANT_CONTRACT_ROLE = "grantContractRole(bytes32,address)"
REVOKE_CONTRACT_ROLE = "revokeContractRole(bytes32,address)"

# Timelock threat levels
FUNCTION_THREAT_LEVEL = "functionThreatLevels(bytes4)"
ADDRESS_THREAT_LEVEL = "addressThreatLevels(address)"
SET_FUNCTION_THREAT_LEVEL = "setFunctionThreatLevel(bytes4,uint8)"
SET_ADDRESS_THREAT_LEVEL = "setAddressThreatLevel(address,uint8)"
GET_TRANSACTION = "getTransaction(bytes32)"

# Governance allowlist
ALLOWED_TARGETS = "allowedTargets(address)"
ALLOWED_SELECTORS = "allowedFunctionSelectors(bytes4)"
UPDATE_SECURITY = "updateSecurity(bytes4,bool,address,bool)"

# Governance parameters
GOV_PARAMS = "govParams()"
UPDATE_GOV_PARAM = "updateGovParam(uint8,uint256)"


class ComponentClient:
    """
    One deployed component seen through the ledger client.

    Reads go through eth_call; writes are returned as ContractCall values for
    the executor to submit, so nothing here touches the signing identity.
    """

    def __init__(self, ledger, name: str, address: str):
        self.ledger = ledger
        self.name = name
        self.address = address

    def __repr__(self) -> str:
        return f"ComponentClient({self.name!r}, {self.address})"

    def read(self, signature: str, args: Sequence[Any] = (), returns: Sequence[str] = ("bool",)) -> Tuple[Any, ...]:
        """
        Call a view function.

        Args:
            signature: Canonical function signature
            args: Arguments in declaration order
            returns: Output types to decode

        Returns:
            Decoded return values

        Raises:
            VerificationError: If the return data does not decode as ``returns``
        """
        data = self.ledger.call(self.address, encode_call(signature, args))
        try:
            return decode_result(returns, data)
        except DecodingError as e:
            raise VerificationError(
                f"{self.name} at {self.address} returned undecodable data for {signature}"
            ) from e

    def read_address(self, getter: str) -> str:
        """Read an address-valued getter, checksummed."""
        (value,) = self.read(getter, returns=("address",))
        return to_checksum_address(value)

    def transaction(self, signature: str, args: Sequence[Any], gas_limit: int, description: str = "") -> ContractCall:
        """Build a state-changing call against this component."""
        return ContractCall(
            to=self.address,
            data=encode_call(signature, args),
            gas_limit=gas_limit,
            description=description or f"{self.name}.{signature.split('(')[0]}",
        )

    # Access control

    def has_role(self, role_id: bytes, account: str) -> bool:
        (value,) = self.read(HAS_ROLE, [role_id, account])
        return bool(value)

    def role_call(self, signature: str, role_id: bytes, account: str, description: str = "") -> ContractCall:
        return self.transaction(signature, [role_id, account], ROLE_GAS_LIMIT, description)

    # Timelock threat levels

    def _threat_tier(self, subject: str, value: int) -> ThreatTier:
        try:
            return ThreatTier(value)
        except ValueError as e:
            discrepancy = Discrepancy("threat-level", self.name, subject, "a known tier", value)
            raise VerificationError(
                f"{self.name} reports unknown threat level {value} for {subject}",
                discrepancies=[discrepancy],
            ) from e

    def function_threat_level(self, selector: bytes) -> ThreatTier:
        (value,) = self.read(FUNCTION_THREAT_LEVEL, [selector], returns=("uint8",))
        return self._threat_tier(to_hex(selector), value)

    def address_threat_level(self, target: str) -> ThreatTier:
        (value,) = self.read(ADDRESS_THREAT_LEVEL, [target], returns=("uint8",))
        return self._threat_tier(target, value)

    def set_function_threat_level(self, selector: bytes, tier: ThreatTier, description: str = "") -> ContractCall:
        return self.transaction(
            SET_FUNCTION_THREAT_LEVEL, [selector, int(tier)], THREAT_LEVEL_GAS_LIMIT, description
        )

    def set_address_threat_level(self, target: str, tier: ThreatTier, description: str = "") -> ContractCall:
        return self.transaction(
            SET_ADDRESS_THREAT_LEVEL, [target, int(tier)], THREAT_LEVEL_GAS_LIMIT, description
        )

    def timelock_transaction(self, tx_id: bytes) -> dict:
        """
        Look up a queued timelock transaction.

        Args:
            tx_id: 32-byte transaction id

        Returns:
            Dict with target, value, data, eta and executed
        """
        target, value, data, eta, executed = self.read(
            GET_TRANSACTION, [tx_id], returns=("address", "uint256", "bytes", "uint256", "bool")
        )
        return {
            "target": to_checksum_address(target),
            "value": value,
            "data": to_hex(data),
            "eta": eta,
            "executed": executed,
        }

    # Governance allowlist

    def target_allowed(self, target: str) -> bool:
        (value,) = self.read(ALLOWED_TARGETS, [target])
        return bool(value)

    def selector_allowed(self, selector: bytes) -> bool:
        (value,) = self.read(ALLOWED_SELECTORS, [selector])
        return bool(value)

    def update_target(self, target: str, allowed: bool, description: str = "") -> ContractCall:
        return self.transaction(
            UPDATE_SECURITY, [ZERO_SELECTOR, False, target, allowed], ALLOWLIST_GAS_LIMIT, description
        )

    def update_selector(self, selector: bytes, allowed: bool, description: str = "") -> ContractCall:
        return self.transaction(
            UPDATE_SECURITY, [selector, allowed, ZERO_ADDRESS, False], ALLOWLIST_GAS_LIMIT, description
        )

    # Governance parameters

    def governance_params(self) -> Dict[GovParam, int]:
        """Current govParams() values keyed by parameter."""
        values = self.read(GOV_PARAMS, returns=("uint256",) * len(GovParam))
        return dict(zip(GovParam, values))

    def update_gov_param(self, param: GovParam, value: int, description: str = "") -> ContractCall:
        return self.transaction(UPDATE_GOV_PARAM, [int(param), value], GOV_PARAM_GAS_LIMIT, description)
