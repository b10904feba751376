"""
End-to-end driver.

Runs the ordering-dependent steps (deploy or attach, wire, roles, allowlist,
threat tiers, governance parameters, handoff) fail-fast, then a read-only
verification pass that aggregates every discrepancy.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .allowlist import AllowlistReconciler
from .config import OrchestratorConfig
from .confirmation import ConfirmationTracker
from .constants import COMPONENT_ORDER, GOVERNANCE, POST_DEPLOY_SETTLE_SECONDS, TIMELOCK
from .deployer import DeploymentOrchestrator
from .exceptions import ConfigurationError
from .executor import TransactionExecutor
from .govparams import GovernanceParameterReconciler
from .ledger import LedgerClient
from .networks import resolve_network_profile
from .permissions import PermissionReconciler
from .plan import (
    ADDRESS_TIERS,
    ROLE_INTERFACES,
    WIRING_RULES,
    build_allowlist,
    build_deployment_plan,
    build_governance_params,
    build_role_table,
)
from .results import Err, StepResult, run_step
from .rpc import JsonRpcClient
from .threats import ThreatLevelClassifier, function_tier_table
from .types import DeployedComponent, Discrepancy, RolePhase
from .verification import FinalVerifier
from .wiring import ReferenceWiring

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """What a run did and what it found."""

    steps: List[StepResult] = field(default_factory=list)
    components: Dict[str, DeployedComponent] = field(default_factory=dict)
    transactions: list = field(default_factory=list)  # Confirmed TxRecords, in order
    discrepancies: List[Discrepancy] = field(default_factory=list)

    @property
    def failed_step(self) -> Optional[Err]:
        for result in self.steps:
            if not result.ok:
                return result
        return None

    @property
    def ok(self) -> bool:
        return self.failed_step is None and not self.discrepancies


class DeploymentPipeline:
    """Wires the reconcilers together for one signing identity and network."""

    def __init__(
        self,
        config: OrchestratorConfig,
        ledger=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        settle_seconds: float = POST_DEPLOY_SETTLE_SECONDS,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Run configuration
            ledger: Ledger client; built from config.rpc_url/private_key when omitted
            clock: Monotonic clock used for confirmation timeouts
            sleep: Blocking sleep used by every wait
            settle_seconds: Delay after each verified deployment
        """
        self.config = config
        self.profile = resolve_network_profile(config.network)
        if ledger is None:
            ledger = LedgerClient(
                JsonRpcClient(config.rpc_url),
                config.private_key,
                gas_premium_percent=self.profile.gas_premium_percent,
            )
        self.ledger = ledger
        self.tracker = ConfirmationTracker(ledger, clock=clock, sleep=sleep)
        self.executor = TransactionExecutor(ledger, self.tracker, self.profile)
        self.orchestrator = DeploymentOrchestrator(
            ledger,
            self.executor,
            self.tracker,
            artifacts_root=config.artifacts_dir,
            settle_seconds=settle_seconds,
            sleep=sleep,
        )

    @property
    def components(self) -> Dict[str, DeployedComponent]:
        return self.orchestrator.components

    @property
    def deployer(self) -> str:
        return self.ledger.address

    def role_table(self):
        return build_role_table(
            self.components,
            self.deployer,
            multisig=self.config.multisig_address,
            revoke_deployer_admin=self.config.revoke_deployer_admin,
        )

    # Steps

    def deploy(self) -> Dict[str, DeployedComponent]:
        """Attach whatever is configured, then deploy the rest of the plan."""
        if self.config.attach_addresses:
            self.orchestrator.attach(self.config.attach_addresses)
        plan = build_deployment_plan(self.config, self.deployer)
        return self.orchestrator.deploy_plan(plan)

    def attach(self) -> Dict[str, DeployedComponent]:
        """
        Attach to a complete, already-deployed DAO.

        Raises:
            ConfigurationError: If any component address is not configured
        """
        missing = [name for name in COMPONENT_ORDER if name not in self.config.attach_addresses]
        if missing:
            raise ConfigurationError(
                f"Addresses of {missing} are required to reconcile an existing deployment"
            )
        return self.orchestrator.attach(
            {name: self.config.attach_addresses[name] for name in COMPONENT_ORDER}
        )

    def wire(self):
        return ReferenceWiring(self.ledger, self.executor, self.components).wire(WIRING_RULES)

    def grant_roles(self):
        table = [a for a in self.role_table() if a.phase is not RolePhase.HANDOFF]
        reconciler = PermissionReconciler(self.ledger, self.executor, self.components, ROLE_INTERFACES)
        return reconciler.reconcile(table)

    def allow_governance_calls(self):
        reconciler = AllowlistReconciler(self.ledger, self.executor, self.components, GOVERNANCE)
        return reconciler.reconcile(build_allowlist(self.components))

    def classify_threats(self):
        classifier = ThreatLevelClassifier(self.ledger, self.executor, self.components, TIMELOCK)
        return classifier.classify(function_tier_table(), ADDRESS_TIERS)

    def update_governance_params(self):
        reconciler = GovernanceParameterReconciler(self.ledger, self.executor, self.components, GOVERNANCE)
        return reconciler.reconcile(build_governance_params(self.config))

    def hand_off(self):
        table = [a for a in self.role_table() if a.phase is RolePhase.HANDOFF]
        reconciler = PermissionReconciler(self.ledger, self.executor, self.components, ROLE_INTERFACES)
        return reconciler.reconcile(table)

    def verify(self) -> List[Discrepancy]:
        verifier = FinalVerifier(self.ledger, self.components)
        return verifier.verify(
            WIRING_RULES,
            self.role_table(),
            function_tier_table(),
            ADDRESS_TIERS,
            build_allowlist(self.components),
            self.deployer,
            governance_params=build_governance_params(self.config),
        )

    # Drivers

    def _run(self, steps, verify: bool = True) -> RunReport:
        report = RunReport()
        for name, fn in steps:
            result = run_step(name, fn)
            report.steps.append(result)
            if not result.ok:
                break

        if verify and report.failed_step is None:
            result = run_step("verify", self.verify)
            report.steps.append(result)
            if result.ok:
                report.discrepancies = result.value

        report.components = dict(self.components)
        report.transactions = list(self.executor.history)
        logger.info(
            "Run %s: %d transaction(s), %d discrepancy(ies)",
            "succeeded" if report.ok else "FAILED",
            len(report.transactions),
            len(report.discrepancies),
        )
        return report

    def _configure_steps(self):
        steps = [
            ("wire references", self.wire),
            ("grant roles", self.grant_roles),
            ("allowlist governance calls", self.allow_governance_calls),
            ("classify threat levels", self.classify_threats),
            ("update governance parameters", self.update_governance_params),
        ]
        if self.config.revoke_deployer_admin:
            steps.append(("hand off deployer admin", self.hand_off))
        return steps

    def run_deploy(self) -> RunReport:
        """Deploy (resuming from any attached components) and fully configure."""
        return self._run([("deploy", self.deploy)] + self._configure_steps())

    def run_reconcile(self) -> RunReport:
        """Converge an existing deployment without deploying anything."""
        return self._run([("attach", self.attach)] + self._configure_steps())

    def run_verify(self) -> RunReport:
        """Read-only check of an existing deployment."""
        return self._run([("attach", self.attach)])
