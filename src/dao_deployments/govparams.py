"""Governance parameter reconciliation through updateGovParam."""

import logging
from typing import Dict, List, Mapping

from .components import ComponentClient
from .exceptions import MissingDependencyError, VerificationError
from .types import DeployedComponent, Discrepancy, GovParam, ReconciliationReport

logger = logging.getLogger(__name__)


class GovernanceParameterReconciler:
    """Converges governance's govParams() slots towards the configured values."""

    def __init__(self, ledger, executor, components: Dict[str, DeployedComponent], governance_name: str):
        self.ledger = ledger
        self.executor = executor
        if governance_name not in components:
            raise MissingDependencyError(f"Component '{governance_name}' has not been deployed or attached")
        self.governance = ComponentClient(ledger, governance_name, components[governance_name].proxy_address)

    def verify(self, desired: Mapping[GovParam, int]) -> List[Discrepancy]:
        current = self.governance.governance_params()
        discrepancies = []
        for param, value in desired.items():
            if current[param] != value:
                discrepancy = Discrepancy(
                    "governance-parameter", self.governance.name, param.name, value, current[param]
                )
                logger.error("%s", discrepancy)
                discrepancies.append(discrepancy)
        return discrepancies

    def reconcile(self, desired: Mapping[GovParam, int]) -> ReconciliationReport:
        """
        Issue updateGovParam only for parameters that differ.

        Args:
            desired: Target value per parameter; parameters not listed are left alone

        Returns:
            ReconciliationReport

        Raises:
            VerificationError: If any parameter still differs afterwards
        """
        report = ReconciliationReport()
        current = self.governance.governance_params()

        for param, value in desired.items():
            if current[param] == value:
                report.skipped += 1
                continue

            logger.info("Setting %s from %d to %d", param.name, current[param], value)
            call = self.governance.update_gov_param(param, value, description=f"set {param.name} to {value}")
            report.transactions.append(self.executor.execute(call))

        report.discrepancies = self.verify(desired)
        if report.discrepancies:
            raise VerificationError(
                f"{len(report.discrepancies)} governance parameter(s) did not converge",
                discrepancies=report.discrepancies,
            )

        logger.info(
            "Governance parameters reconciled: %d changed, %d already correct", report.changed, report.skipped
        )
        return report
