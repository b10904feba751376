"""Cross-reference wiring between deployed components."""

import logging
from typing import Dict, List, Sequence

from .components import ComponentClient
from .constants import WIRING_GAS_LIMIT
from .exceptions import MissingDependencyError, WiringMismatchError
from .hashing import same_address
from .types import DeployedComponent, Discrepancy, TxRecord, WiringRule

logger = logging.getLogger(__name__)


class ReferenceWiring:
    """Injects dependency addresses into components and proves they stuck."""

    def __init__(self, ledger, executor, components: Dict[str, DeployedComponent]):
        self.ledger = ledger
        self.executor = executor
        self.components = components

    def _client(self, name: str) -> ComponentClient:
        if name not in self.components:
            raise MissingDependencyError(f"Component '{name}' has not been deployed or attached")
        return ComponentClient(self.ledger, name, self.components[name].proxy_address)

    def check(self, rule: WiringRule) -> List[Discrepancy]:
        """
        Compare every getter of a rule with the recorded dependency address.

        Returns:
            One Discrepancy per getter that disagrees
        """
        client = self._client(rule.component_name)
        found = []
        for getter, dependency in rule.references:
            expected = self._client(dependency).address
            actual = client.read_address(getter)
            if not same_address(actual, expected):
                found.append(
                    Discrepancy(
                        check="reference",
                        component_name=rule.component_name,
                        subject=getter,
                        expected=expected,
                        actual=actual,
                    )
                )
        return found

    def apply(self, rule: WiringRule) -> List[TxRecord]:
        """
        Bring one rule into line: skip if correct, else set and re-read.

        Returns:
            Transactions issued (empty when already wired)

        Raises:
            WiringMismatchError: If the references are wrong after the setter,
                or wrong on a rule that has no setter
        """
        mismatches = self.check(rule)
        if not mismatches:
            logger.info("%s references already set", rule.component_name)
            return []

        if rule.setter is None:
            raise WiringMismatchError(
                f"{rule.component_name} has fixed references that do not match: "
                + "; ".join(str(m) for m in mismatches)
            )

        client = self._client(rule.component_name)
        args = [self._client(dependency).address for _, dependency in rule.references]
        logger.info("Setting references in %s via %s", rule.component_name, rule.setter)
        record = self.executor.execute(
            client.transaction(rule.setter, args, WIRING_GAS_LIMIT)
        )

        remaining = self.check(rule)
        if remaining:
            raise WiringMismatchError(
                f"{rule.component_name} references still wrong after {record.hash}: "
                + "; ".join(str(m) for m in remaining)
            )
        return [record]

    def wire(self, rules: Sequence[WiringRule]) -> List[TxRecord]:
        """Apply every rule in order, stopping at the first mismatch."""
        records: List[TxRecord] = []
        for rule in rules:
            records.extend(self.apply(rule))
        return records
