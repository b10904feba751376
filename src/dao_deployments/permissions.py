"""
Permission reconciliation.

Given a declarative table of role assignments, read actual membership and
issue only the grants and revokes needed to converge. Re-running against a
converged chain submits nothing, so the reconciler is safe to re-invoke after
a partial failure.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .components import GRANT_ROLE, REVOKE_ROLE, ComponentClient
from .exceptions import MissingDependencyError, VerificationError
from .hashing import to_hex
from .types import DeployedComponent, Discrepancy, ReconciliationReport, RoleAssignment

logger = logging.getLogger(__name__)


def describe(assignment: RoleAssignment) -> str:
    role = assignment.role_name or to_hex(assignment.role_id)
    return f"{role} for {assignment.account} on {assignment.component_name}"


def order_assignments(assignments: Sequence[RoleAssignment]) -> List[RoleAssignment]:
    """Stable sort by phase: authority grants, then peer grants, then handoff."""
    return sorted(assignments, key=lambda a: a.phase)


class PermissionReconciler:
    """Converges on-chain role membership to a desired table."""

    def __init__(
        self,
        ledger,
        executor,
        components: Dict[str, DeployedComponent],
        role_interfaces: Optional[Dict[str, Tuple[str, str]]] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            ledger: Ledger client used for reads
            executor: Transaction executor used for writes
            components: Deployed components by name
            role_interfaces: Component name -> (grant signature, revoke signature);
                components not listed use grantRole/revokeRole
        """
        self.ledger = ledger
        self.executor = executor
        self.components = components
        self.role_interfaces = role_interfaces or {}

    def _client(self, name: str) -> ComponentClient:
        if name not in self.components:
            raise MissingDependencyError(f"Component '{name}' has not been deployed or attached")
        return ComponentClient(self.ledger, name, self.components[name].proxy_address)

    def plan(self, assignments: Sequence[RoleAssignment]) -> List[RoleAssignment]:
        """
        Entries whose on-chain membership differs from the desired state.

        Read-only; useful for dry runs.
        """
        return [
            a
            for a in order_assignments(assignments)
            if self._client(a.component_name).has_role(a.role_id, a.account) != a.desired_present
        ]

    def verify(self, assignments: Sequence[RoleAssignment]) -> List[Discrepancy]:
        """
        Re-read every entry and collect all mismatches.

        A mismatch on one entry never stops the others from being checked.
        """
        discrepancies = []
        for a in order_assignments(assignments):
            actual = self._client(a.component_name).has_role(a.role_id, a.account)
            if actual != a.desired_present:
                discrepancy = Discrepancy(
                    check="role",
                    component_name=a.component_name,
                    subject=f"{a.role_name or to_hex(a.role_id)} @ {a.account}",
                    expected=a.desired_present,
                    actual=actual,
                )
                logger.error("%s", discrepancy)
                discrepancies.append(discrepancy)
        return discrepancies

    def reconcile(self, assignments: Sequence[RoleAssignment]) -> ReconciliationReport:
        """
        Apply the minimal set of grants and revokes, one confirmed transaction at a time.

        Args:
            assignments: Desired role table

        Returns:
            ReconciliationReport with the transactions issued and the number skipped

        Raises:
            DeploymentError: If a grant or revoke fails to submit or confirm
            VerificationError: If any entry is still wrong after the batch;
                carries every discrepancy found
        """
        report = ReconciliationReport()
        ordered = order_assignments(assignments)

        for index, a in enumerate(ordered, start=1):
            client = self._client(a.component_name)
            actual = client.has_role(a.role_id, a.account)

            if actual == a.desired_present:
                logger.info(
                    "%d/%d: %s already %s",
                    index,
                    len(ordered),
                    describe(a),
                    "granted" if actual else "absent",
                )
                report.skipped += 1
                continue

            grant, revoke = self.role_interfaces.get(a.component_name, (GRANT_ROLE, REVOKE_ROLE))
            signature = grant if a.desired_present else revoke
            action = "Granting" if a.desired_present else "Revoking"
            logger.info("%d/%d: %s %s", index, len(ordered), action, describe(a))

            record = self.executor.execute(
                client.role_call(signature, a.role_id, a.account, description=f"{action.lower()} {describe(a)}")
            )
            report.transactions.append(record)

        report.discrepancies = self.verify(ordered)
        if report.discrepancies:
            raise VerificationError(
                f"{len(report.discrepancies)} role assignment(s) did not converge",
                discrepancies=report.discrepancies,
            )

        logger.info(
            "Roles reconciled: %d changed, %d already correct", report.changed, report.skipped
        )
        return report
