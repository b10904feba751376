"""Governance proposal allowlist reconciliation (targets and function selectors)."""

import logging
from typing import Dict, List, Sequence

from .components import ComponentClient
from .exceptions import MissingDependencyError, VerificationError
from .hashing import to_hex
from .types import AllowlistEntry, AllowlistKind, DeployedComponent, Discrepancy, ReconciliationReport

logger = logging.getLogger(__name__)


def _label(entry: AllowlistEntry) -> str:
    key = to_hex(entry.key) if isinstance(entry.key, bytes) else entry.key
    return f"{entry.kind.value} {entry.label or key}"


class AllowlistReconciler:
    """Converges governance's allowed targets and selectors via updateSecurity."""

    def __init__(self, ledger, executor, components: Dict[str, DeployedComponent], governance_name: str):
        self.ledger = ledger
        self.executor = executor
        if governance_name not in components:
            raise MissingDependencyError(f"Component '{governance_name}' has not been deployed or attached")
        self.governance = ComponentClient(ledger, governance_name, components[governance_name].proxy_address)

    def current(self, entry: AllowlistEntry) -> bool:
        if entry.kind is AllowlistKind.TARGET:
            return self.governance.target_allowed(entry.key)
        return self.governance.selector_allowed(entry.key)

    def verify(self, entries: Sequence[AllowlistEntry]) -> List[Discrepancy]:
        discrepancies = []
        for entry in entries:
            actual = self.current(entry)
            if actual != entry.allowed:
                discrepancy = Discrepancy("allowlist", self.governance.name, _label(entry), entry.allowed, actual)
                logger.error("%s", discrepancy)
                discrepancies.append(discrepancy)
        return discrepancies

    def reconcile(self, entries: Sequence[AllowlistEntry]) -> ReconciliationReport:
        """
        Issue updateSecurity only for entries that differ.

        Raises:
            VerificationError: If any entry is still wrong afterwards
        """
        report = ReconciliationReport()

        for entry in entries:
            if self.current(entry) == entry.allowed:
                report.skipped += 1
                continue

            verb = "Allowing" if entry.allowed else "Disallowing"
            logger.info("%s %s", verb, _label(entry))
            if entry.kind is AllowlistKind.TARGET:
                call = self.governance.update_target(entry.key, entry.allowed, description=f"{verb.lower()} {_label(entry)}")
            else:
                call = self.governance.update_selector(entry.key, entry.allowed, description=f"{verb.lower()} {_label(entry)}")
            report.transactions.append(self.executor.execute(call))

        report.discrepancies = self.verify(entries)
        if report.discrepancies:
            raise VerificationError(
                f"{len(report.discrepancies)} allowlist entries did not converge",
                discrepancies=report.discrepancies,
            )

        logger.info("Allowlist reconciled: %d changed, %d already correct", report.changed, report.skipped)
        return report
