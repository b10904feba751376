"""Read-only final pass over the converged configuration."""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .allowlist import AllowlistReconciler
from .components import ComponentClient
from .constants import GOVERNANCE, TIMELOCK
from .govparams import GovernanceParameterReconciler
from .hashing import DEFAULT_ADMIN_ROLE_NAME, role_id
from .permissions import PermissionReconciler
from .threats import ThreatLevelClassifier
from .types import (
    AllowlistEntry,
    DeployedComponent,
    Discrepancy,
    GovParam,
    RoleAssignment,
    ThreatTier,
    WiringRule,
)
from .wiring import ReferenceWiring

logger = logging.getLogger(__name__)


class FinalVerifier:
    """
    Re-reads every declared value and reports all differences at once.

    Submits nothing. Each check runs regardless of earlier failures so the
    operator sees the full picture in one pass.
    """

    def __init__(self, ledger, components: Dict[str, DeployedComponent]):
        self.ledger = ledger
        self.components = components

    def check_bytecode(self) -> List[Discrepancy]:
        found = []
        for name, component in self.components.items():
            if not self.ledger.read_bytecode(component.proxy_address):
                found.append(
                    Discrepancy("bytecode", name, component.proxy_address, "non-empty", "empty")
                )
        for discrepancy in found:
            logger.error("%s", discrepancy)
        return found

    def check_references(self, rules: Sequence[WiringRule]) -> List[Discrepancy]:
        wiring = ReferenceWiring(self.ledger, None, self.components)
        found = []
        for rule in rules:
            found.extend(wiring.check(rule))
        for discrepancy in found:
            logger.error("%s", discrepancy)
        return found

    def check_roles(self, assignments: Sequence[RoleAssignment]) -> List[Discrepancy]:
        return PermissionReconciler(self.ledger, None, self.components).verify(assignments)

    def check_threat_levels(
        self,
        function_tiers: Sequence[Tuple[str, ThreatTier]],
        address_tiers: Sequence[Tuple[str, ThreatTier]],
    ) -> List[Discrepancy]:
        classifier = ThreatLevelClassifier(self.ledger, None, self.components, TIMELOCK)
        return classifier.verify(function_tiers, address_tiers)

    def check_allowlist(self, entries: Sequence[AllowlistEntry]) -> List[Discrepancy]:
        return AllowlistReconciler(self.ledger, None, self.components, GOVERNANCE).verify(entries)

    def check_governance_params(self, desired: Mapping[GovParam, int]) -> List[Discrepancy]:
        return GovernanceParameterReconciler(self.ledger, None, self.components, GOVERNANCE).verify(desired)

    def deployer_admin_leftovers(self, deployer: str) -> List[str]:
        """Components on which the deployer still holds DEFAULT_ADMIN_ROLE."""
        admin_role = role_id(DEFAULT_ADMIN_ROLE_NAME)
        leftovers = []
        for name, component in self.components.items():
            client = ComponentClient(self.ledger, name, component.proxy_address)
            if client.has_role(admin_role, deployer):
                logger.warning(
                    "Deployer %s still holds %s on %s; revoke it once the DAO is in control",
                    deployer,
                    DEFAULT_ADMIN_ROLE_NAME,
                    name,
                )
                leftovers.append(name)
        return leftovers

    def verify(
        self,
        rules: Sequence[WiringRule],
        assignments: Sequence[RoleAssignment],
        function_tiers: Sequence[Tuple[str, ThreatTier]],
        address_tiers: Sequence[Tuple[str, ThreatTier]],
        allowlist: Sequence[AllowlistEntry],
        deployer: str,
        governance_params: Optional[Mapping[GovParam, int]] = None,
    ) -> List[Discrepancy]:
        """
        Check bytecode, references, roles, threat tiers, the allowlist and govParams().

        Args:
            rules: Wiring rules
            assignments: Desired role table
            function_tiers: (signature, tier) pairs
            address_tiers: (component name, tier) pairs
            allowlist: Governance allowlist entries
            deployer: Signing identity, checked for leftover admin rights
            governance_params: Target govParams() values; skipped when None

        Returns:
            Every Discrepancy found; empty when the configuration holds
        """
        discrepancies: List[Discrepancy] = []
        discrepancies.extend(self.check_bytecode())
        discrepancies.extend(self.check_references(rules))
        discrepancies.extend(self.check_roles(assignments))
        discrepancies.extend(self.check_threat_levels(function_tiers, address_tiers))
        discrepancies.extend(self.check_allowlist(allowlist))
        if governance_params is not None:
            discrepancies.extend(self.check_governance_params(governance_params))
        self.deployer_admin_leftovers(deployer)

        if discrepancies:
            logger.error("Verification found %d discrepancies", len(discrepancies))
        else:
            logger.info("Verification passed: all %d components configured", len(self.components))
        return discrepancies
