"""Ordered deployment of upgradeable components behind ERC-1967 proxies."""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from eth_abi.exceptions import EncodingError
from eth_utils import to_checksum_address

from .artifacts import load_artifact
from .constants import (
    DEPLOY_GAS_LIMIT,
    EIP1967_ADMIN_SLOT,
    EIP1967_IMPLEMENTATION_SLOT,
    POST_DEPLOY_SETTLE_SECONDS,
    PROXY_CONTRACT_NAME,
)
from .exceptions import CodeNotObservedError, DeploymentError, MissingDependencyError
from .hashing import normalize_address
from .types import ComponentRef, ContractCall, DeployedComponent, DeploymentStep

logger = logging.getLogger(__name__)


class StepState(Enum):
    """Lifecycle of one deployment step."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    AWAITING_CODE_VISIBLE = "awaiting-code-visible"
    VERIFIED = "verified"
    FAILED = "failed"


def validate_plan(plan: Sequence[DeploymentStep]) -> None:
    """
    Check a plan is in dependency order before anything is submitted.

    Every name in ``depends_on`` and every ComponentRef in the initializer
    arguments must belong to an earlier step.

    Raises:
        MissingDependencyError: On unknown, duplicate or out-of-order names
    """
    seen = set()
    for step in plan:
        if step.component_name in seen:
            raise MissingDependencyError(f"Component '{step.component_name}' appears twice in plan")

        needed = set(step.depends_on) | _referenced_names(step.initializer_args)
        missing = sorted(needed - seen)
        if missing:
            raise MissingDependencyError(
                f"Step '{step.component_name}' depends on {missing}, "
                "which no earlier step deploys"
            )
        seen.add(step.component_name)


def _referenced_names(value: Any) -> set:
    if isinstance(value, ComponentRef):
        return {value.name}
    if isinstance(value, (list, tuple)):
        names = set()
        for item in value:
            names |= _referenced_names(item)
        return names
    return set()


def _slot_address(raw: bytes) -> Optional[str]:
    """Address stored in the low 20 bytes of a storage slot; None when zero."""
    if not raw or not any(raw):
        return None
    return to_checksum_address(raw[-20:].rjust(20, b"\x00"))


class DeploymentOrchestrator:
    """
    Deploys a plan one component at a time.

    Each step walks PENDING -> SUBMITTED -> AWAITING_CONFIRMATION ->
    AWAITING_CODE_VISIBLE -> VERIFIED, or ends in FAILED. The first failure
    halts the plan because later initializers need earlier addresses.
    """

    def __init__(
        self,
        ledger,
        executor,
        tracker,
        artifacts_root: Optional[Union[Path, str]] = None,
        settle_seconds: float = POST_DEPLOY_SETTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ledger = ledger
        self.executor = executor
        self.tracker = tracker
        self.artifacts_root = artifacts_root
        self.settle_seconds = settle_seconds
        self.sleep = sleep
        self.components: Dict[str, DeployedComponent] = {}
        self.states: Dict[str, StepState] = {}
        self.transitions: List[tuple] = []  # (component_name, StepState), in order

    def _set_state(self, name: str, state: StepState) -> None:
        self.states[name] = state
        self.transitions.append((name, state))
        logger.debug("%s -> %s", name, state.value)

    def resolve_args(self, value: Any) -> Any:
        """
        Replace ComponentRef placeholders with recorded proxy addresses.

        Raises:
            MissingDependencyError: If a referenced component has no address yet
        """
        if isinstance(value, ComponentRef):
            component = self.components.get(value.name)
            if component is None:
                raise MissingDependencyError(
                    f"Address of '{value.name}' is not known yet"
                )
            return component.proxy_address
        if isinstance(value, list):
            return [self.resolve_args(v) for v in value]
        if isinstance(value, tuple):
            return tuple(self.resolve_args(v) for v in value)
        return value

    def read_proxy_slots(self, proxy_address: str) -> tuple:
        """Implementation and admin addresses from the EIP-1967 slots."""
        implementation = _slot_address(
            self.ledger.get_storage_at(proxy_address, EIP1967_IMPLEMENTATION_SLOT)
        )
        admin = _slot_address(self.ledger.get_storage_at(proxy_address, EIP1967_ADMIN_SLOT))
        return implementation, admin

    def deploy_step(self, step: DeploymentStep) -> DeployedComponent:
        """
        Deploy one component: implementation, then proxy with initializer.

        Args:
            step: Deployment step

        Returns:
            The recorded DeployedComponent

        Raises:
            MissingDependencyError: If a dependency has no recorded address
                (raised before any transaction is submitted)
            DeploymentError: On any submission, confirmation or visibility failure
        """
        name = step.component_name
        self._set_state(name, StepState.PENDING)

        try:
            missing = sorted(n for n in step.depends_on if n not in self.components)
            if missing:
                raise MissingDependencyError(
                    f"Cannot deploy '{name}': addresses of {missing} are not known"
                )
            init_args = self.resolve_args(list(step.initializer_args))

            implementation_artifact = load_artifact(step.contract_name, self.artifacts_root)
            proxy_artifact = load_artifact(PROXY_CONTRACT_NAME, self.artifacts_root)
            init_data = implementation_artifact.initializer_calldata(init_args)

            logger.info("Deploying %s (%s)...", name, step.contract_name)
            implementation_record = self.executor.execute(
                ContractCall(
                    to=None,
                    data=implementation_artifact.creation_code(step.constructor_args),
                    gas_limit=DEPLOY_GAS_LIMIT,
                    description=f"{step.contract_name} implementation",
                )
            )
            if implementation_record.contract_address is None:
                raise DeploymentError(
                    f"No contract address in receipt of {implementation_record.hash}"
                )

            proxy_record = self.executor.submit(
                ContractCall(
                    to=None,
                    data=proxy_artifact.creation_code(
                        [implementation_record.contract_address, init_data]
                    ),
                    gas_limit=DEPLOY_GAS_LIMIT,
                    description=f"{step.contract_name} proxy",
                )
            )
            self._set_state(name, StepState.SUBMITTED)

            self._set_state(name, StepState.AWAITING_CONFIRMATION)
            proxy_record = self.executor.confirm(proxy_record)
            if proxy_record.contract_address is None:
                raise DeploymentError(f"No contract address in receipt of {proxy_record.hash}")
            proxy_address = normalize_address(proxy_record.contract_address)

            self._set_state(name, StepState.AWAITING_CODE_VISIBLE)
            self.tracker.await_bytecode_presence(proxy_address)

            implementation, admin = self.read_proxy_slots(proxy_address)
            component = DeployedComponent(
                name=name,
                proxy_address=proxy_address,
                implementation_address=implementation or implementation_record.contract_address,
                admin_address=admin,
            )
        except DeploymentError:
            self._set_state(name, StepState.FAILED)
            logger.error("Deployment of %s failed", name)
            raise
        except (ValueError, EncodingError) as e:
            # Argument/ABI mismatch between the plan and the compiled artifact
            self._set_state(name, StepState.FAILED)
            raise DeploymentError(f"Cannot build deployment of '{name}': {e}") from e

        self.components[name] = component
        self._set_state(name, StepState.VERIFIED)
        logger.info(
            "%s deployed to %s (implementation %s)",
            name,
            component.proxy_address,
            component.implementation_address,
        )

        if self.settle_seconds:
            logger.info("Waiting %.0fs for the deployment to settle...", self.settle_seconds)
            self.sleep(self.settle_seconds)

        return component

    def deploy_plan(self, plan: Sequence[DeploymentStep]) -> Dict[str, DeployedComponent]:
        """
        Deploy every step in order, stopping at the first failure.

        Steps whose component is already recorded (attached) are skipped, so a
        run that failed part-way can resume from the first missing component.

        Returns:
            Mapping of component name to DeployedComponent
        """
        validate_plan(plan)
        for step in plan:
            if step.component_name in self.components:
                logger.info(
                    "%s already at %s, not redeploying",
                    step.component_name,
                    self.components[step.component_name].proxy_address,
                )
                continue
            self.deploy_step(step)
        return dict(self.components)

    def attach(self, addresses: Dict[str, str]) -> Dict[str, DeployedComponent]:
        """
        Record already-deployed proxies instead of deploying.

        Args:
            addresses: Component name -> proxy address

        Raises:
            CodeNotObservedError: If any address has no bytecode
        """
        for name, address in addresses.items():
            proxy_address = normalize_address(address)
            if not self.ledger.read_bytecode(proxy_address):
                raise CodeNotObservedError(f"No code found at {proxy_address} for '{name}'")

            implementation, admin = self.read_proxy_slots(proxy_address)
            self.components[name] = DeployedComponent(
                name=name,
                proxy_address=proxy_address,
                implementation_address=implementation,
                admin_address=admin,
            )
            self._set_state(name, StepState.VERIFIED)
            logger.info("Attached %s at %s", name, proxy_address)

        return dict(self.components)
