"""Timelock threat-level classification."""

import logging
from typing import Dict, List, Sequence, Tuple

from .components import ComponentClient
from .exceptions import MissingDependencyError, VerificationError
from .hashing import function_selector, to_hex
from .types import DeployedComponent, Discrepancy, ReconciliationReport, ThreatTier

logger = logging.getLogger(__name__)

# Upgrade targets, pause switches, global caps, governance parameters
CRITICAL_FUNCTIONS = [
    "upgradeTo(address)",
    "upgradeToAndCall(address,bytes)",
    "setTimelock(address)",
    "pause()",
    "unpause()",
    "setPaused(bool)",
    "setMaxTokenSupply(uint256)",
    "updateGovParam(uint8,uint256)",
    "updateSecurity(bytes4,bool,address,bool)",
]

# Role changes, movement of governance-controlled funds, delegation
HIGH_FUNCTIONS = [
    "grantContractRole(bytes32,address)",
    "revokeContractRole(bytes32,address)",
    "governanceMint(address,uint256)",
    "governanceBurn(address,uint256)",
    "governanceTransfer(address,address,uint256)",
    "delegate(address)",
    "resetDelegation()",
    "addGuardian(address)",
    "removeGuardian(address)",
    "updateGuardian(address,bool)",
    "updateContractAddresses(address,address,address)",
]

# Snapshots, asset rescue, delay and threat-level configuration
MEDIUM_FUNCTIONS = [
    "createSnapshot()",
    "rescueETH()",
    "rescueERC20(address)",
    "updateDelays(uint256,uint256,uint256)",
    "updateThreatLevelDelays(uint256,uint256,uint256,uint256)",
    "setFunctionThreatLevel(bytes4,uint8)",
    "setBatchFunctionThreatLevels(bytes4[],uint8[])",
    "setAddressThreatLevel(address,uint8)",
    "setBatchAddressThreatLevels(address[],uint8[])",
]


def function_tier_table() -> List[Tuple[str, ThreatTier]]:
    """Declared (signature, tier) pairs; anything unlisted stays NONE."""
    table = []
    for tier, signatures in (
        (ThreatTier.CRITICAL, CRITICAL_FUNCTIONS),
        (ThreatTier.HIGH, HIGH_FUNCTIONS),
        (ThreatTier.MEDIUM, MEDIUM_FUNCTIONS),
    ):
        table.extend((signature, tier) for signature in signatures)
    return table


class ThreatLevelClassifier:
    """Sets function and address threat tiers on the timelock, skipping correct ones."""

    def __init__(self, ledger, executor, components: Dict[str, DeployedComponent], timelock_name: str):
        self.ledger = ledger
        self.executor = executor
        self.components = components
        if timelock_name not in components:
            raise MissingDependencyError(f"Component '{timelock_name}' has not been deployed or attached")
        self.timelock = ComponentClient(ledger, timelock_name, components[timelock_name].proxy_address)

    def _address_of(self, name: str) -> str:
        if name not in self.components:
            raise MissingDependencyError(f"Component '{name}' has not been deployed or attached")
        return self.components[name].proxy_address

    def verify(
        self,
        function_tiers: Sequence[Tuple[str, ThreatTier]],
        address_tiers: Sequence[Tuple[str, ThreatTier]],
    ) -> List[Discrepancy]:
        """Re-read every declared tier and collect all mismatches."""
        discrepancies = []
        for signature, tier in function_tiers:
            actual = self.timelock.function_threat_level(function_selector(signature))
            if actual != tier:
                discrepancies.append(
                    Discrepancy("threat-level", self.timelock.name, signature, tier.name, actual.name)
                )
        for name, tier in address_tiers:
            actual = self.timelock.address_threat_level(self._address_of(name))
            if actual != tier:
                discrepancies.append(
                    Discrepancy("threat-level", self.timelock.name, f"address of {name}", tier.name, actual.name)
                )
        for discrepancy in discrepancies:
            logger.error("%s", discrepancy)
        return discrepancies

    def classify(
        self,
        function_tiers: Sequence[Tuple[str, ThreatTier]],
        address_tiers: Sequence[Tuple[str, ThreatTier]],
    ) -> ReconciliationReport:
        """
        Reconcile declared tiers with the timelock.

        Args:
            function_tiers: (canonical signature, tier) pairs
            address_tiers: (component name, tier) pairs

        Returns:
            ReconciliationReport

        Raises:
            VerificationError: If any tier is still wrong afterwards
        """
        report = ReconciliationReport()

        for signature, tier in function_tiers:
            selector = function_selector(signature)
            current = self.timelock.function_threat_level(selector)
            if current == tier:
                report.skipped += 1
                continue

            logger.info(
                "Setting %s threat level for %s (%s), was %s",
                tier.name,
                signature,
                to_hex(selector),
                current.name,
            )
            report.transactions.append(
                self.executor.execute(
                    self.timelock.set_function_threat_level(
                        selector, tier, description=f"threat level {tier.name} for {signature}"
                    )
                )
            )

        for name, tier in address_tiers:
            address = self._address_of(name)
            current = self.timelock.address_threat_level(address)
            if current == tier:
                report.skipped += 1
                continue

            logger.info("Setting %s threat level for %s (%s), was %s", tier.name, name, address, current.name)
            report.transactions.append(
                self.executor.execute(
                    self.timelock.set_address_threat_level(
                        address, tier, description=f"threat level {tier.name} for {name}"
                    )
                )
            )

        report.discrepancies = self.verify(function_tiers, address_tiers)
        if report.discrepancies:
            raise VerificationError(
                f"{len(report.discrepancies)} threat level(s) did not converge",
                discrepancies=report.discrepancies,
            )

        logger.info(
            "Threat levels reconciled: %d changed, %d already correct", report.changed, report.skipped
        )
        return report
