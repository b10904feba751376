"""
The DAO's target configuration.

Everything the reconcilers converge towards is declared here: the ordered
deployment plan, the cross-references each component must hold, the role
table, the timelock threat tiers and the governance allowlist. Nothing in
this module touches the chain.
"""

from typing import Dict, List, Optional, Tuple

from .components import GRANT_CONTRACT_ROLE, REVOKE_CONTRACT_ROLE
from .config import OrchestratorConfig
from .constants import (
    ANALYTICS_HELPER,
    CONTRACT_NAMES,
    DAO_HELPER,
    GOVERNANCE,
    TIMELOCK,
    TOKEN,
)
from .exceptions import MissingDependencyError
from .hashing import DEFAULT_ADMIN_ROLE_NAME, function_selector, role_id
from .types import (
    AllowlistEntry,
    AllowlistKind,
    ComponentRef,
    DeployedComponent,
    DeploymentStep,
    GovParam,
    RoleAssignment,
    RolePhase,
    ThreatTier,
    WiringRule,
)

HELPERS = (DAO_HELPER, ANALYTICS_HELPER)

# Token and timelock gate role changes behind their own entry points
ROLE_INTERFACES: Dict[str, Tuple[str, str]] = {
    TOKEN: (GRANT_CONTRACT_ROLE, REVOKE_CONTRACT_ROLE),
    TIMELOCK: (GRANT_CONTRACT_ROLE, REVOKE_CONTRACT_ROLE),
}

WIRING_RULES: List[WiringRule] = [
    WiringRule(TOKEN, (("timelock()", TIMELOCK),), setter="setTimelock(address)"),
    WiringRule(TIMELOCK, (("justToken()", TOKEN),), setter="setJustToken(address)"),
    WiringRule(
        DAO_HELPER,
        (("justToken()", TOKEN), ("justGovernance()", GOVERNANCE), ("justTimelock()", TIMELOCK)),
        setter="updateContractAddresses(address,address,address)",
    ),
    WiringRule(
        ANALYTICS_HELPER,
        (("justToken()", TOKEN), ("justGovernance()", GOVERNANCE), ("justTimelock()", TIMELOCK)),
        setter="updateContractAddresses(address,address,address)",
    ),
    # Fixed by the governance initializer
    WiringRule(GOVERNANCE, (("justToken()", TOKEN), ("timelock()", TIMELOCK))),
]

ADDRESS_TIERS: List[Tuple[str, ThreatTier]] = [
    (TIMELOCK, ThreatTier.CRITICAL),
    (TOKEN, ThreatTier.HIGH),
    (GOVERNANCE, ThreatTier.HIGH),
    (DAO_HELPER, ThreatTier.MEDIUM),
    (ANALYTICS_HELPER, ThreatTier.MEDIUM),
]

# Functions governance proposals may call, grouped by the component exposing them
TOKEN_FUNCTIONS = [
    "delegate(address)",
    "resetDelegation()",
    "getDelegate(address)",
    "createSnapshot()",
    "getEffectiveVotingPower(address,uint256)",
    "governanceTransfer(address,address,uint256)",
    "governanceMint(address,uint256)",
    "governanceBurn(address,uint256)",
    "setMaxTokenSupply(uint256)",
    "setTimelock(address)",
    "addGuardian(address)",
    "removeGuardian(address)",
    "grantContractRole(bytes32,address)",
    "revokeContractRole(bytes32,address)",
]

GOVERNANCE_FUNCTIONS = [
    "createProposal(string,uint8,address,bytes,uint256,address,address,uint256,uint256,uint256,uint256)",
    "castVote(uint256,uint8)",
    "queueProposal(uint256)",
    "executeProposal(uint256)",
    "cancelProposal(uint256)",
    "claimPartialStakeRefund(uint256)",
    "updateGovParam(uint8,uint256)",
    "updateSecurity(bytes4,bool,address,bool)",
    "pause()",
    "unpause()",
    "rescueETH()",
    "rescueERC20(address)",
    "updateGuardian(address,bool)",
]

TIMELOCK_FUNCTIONS = [
    "queueTransactionWithThreatLevel(address,uint256,bytes)",
    "queueTransaction(address,uint256,bytes,uint256)",
    "executeTransaction(bytes32)",
    "cancelTransaction(bytes32)",
    "getTransaction(bytes32)",
    "updateDelays(uint256,uint256,uint256)",
    "updateThreatLevelDelays(uint256,uint256,uint256,uint256)",
    "setFunctionThreatLevel(bytes4,uint8)",
    "setBatchFunctionThreatLevels(bytes4[],uint8[])",
    "setAddressThreatLevel(address,uint8)",
    "setBatchAddressThreatLevels(address[],uint8[])",
    "setPaused(bool)",
    "setJustToken(address)",
]

DAO_HELPER_FUNCTIONS = [
    "updateContractAddresses(address,address,address)",
    "setPaused(bool)",
    "recordDelegation(address,address)",
    "checkAndWarnDelegationDepth(address,address)",
]


def allowlist_signatures() -> List[str]:
    """Every allowlisted signature once, in declaration order."""
    signatures: List[str] = []
    for group in (TOKEN_FUNCTIONS, GOVERNANCE_FUNCTIONS, TIMELOCK_FUNCTIONS, DAO_HELPER_FUNCTIONS):
        for signature in group:
            if signature not in signatures:
                signatures.append(signature)
    return signatures


def selector_table() -> List[Tuple[str, str]]:
    """(signature, 0x selector) for every allowlisted function."""
    return [(s, "0x" + function_selector(s).hex()) for s in allowlist_signatures()]


def build_deployment_plan(config: OrchestratorConfig, admin: str) -> List[DeploymentStep]:
    """
    Ordered deployment steps with the configured initializer parameters.

    Args:
        config: Run configuration
        admin: Address that receives the bootstrap admin roles (the deployer)

    Returns:
        Steps in dependency order: timelock, token, governance, helpers
    """
    token = ComponentRef(TOKEN)
    governance = ComponentRef(GOVERNANCE)
    timelock = ComponentRef(TIMELOCK)

    return [
        DeploymentStep(
            component_name=TIMELOCK,
            contract_name=CONTRACT_NAMES[TIMELOCK],
            # min delay, proposers, executors, admin
            initializer_args=(config.timelock_min_delay, [admin], [admin], admin),
        ),
        DeploymentStep(
            component_name=TOKEN,
            contract_name=CONTRACT_NAMES[TOKEN],
            initializer_args=(
                config.token_name,
                config.token_symbol,
                admin,
                config.min_lock_duration,
                config.max_lock_duration,
            ),
        ),
        DeploymentStep(
            component_name=GOVERNANCE,
            contract_name=CONTRACT_NAMES[GOVERNANCE],
            initializer_args=(
                config.governance_name,
                token,
                timelock,
                admin,
                config.proposal_threshold,
                config.voting_delay,
                config.voting_period,
                config.quorum_numerator,
                config.successful_refund,
                config.cancelled_refund,
                config.defeated_refund,
                config.expired_refund,
            ),
            depends_on=frozenset({TOKEN, TIMELOCK}),
        ),
        DeploymentStep(
            component_name=DAO_HELPER,
            contract_name=CONTRACT_NAMES[DAO_HELPER],
            initializer_args=(token, governance, timelock, admin),
            depends_on=frozenset({TOKEN, GOVERNANCE, TIMELOCK}),
        ),
        DeploymentStep(
            component_name=ANALYTICS_HELPER,
            contract_name=CONTRACT_NAMES[ANALYTICS_HELPER],
            initializer_args=(token, governance, timelock, admin),
            depends_on=frozenset({TOKEN, GOVERNANCE, TIMELOCK}),
        ),
    ]


def _address(components: Dict[str, DeployedComponent], name: str) -> str:
    if name not in components:
        raise MissingDependencyError(f"Component '{name}' has not been deployed or attached")
    return components[name].proxy_address


def _grant(component: str, role: str, account: str, phase: RolePhase) -> RoleAssignment:
    return RoleAssignment(
        component_name=component,
        role_id=role_id(role),
        account=account,
        desired_present=True,
        role_name=role,
        phase=phase,
    )


def build_role_table(
    components: Dict[str, DeployedComponent],
    deployer: str,
    multisig: Optional[str] = None,
    revoke_deployer_admin: bool = False,
) -> List[RoleAssignment]:
    """
    Desired role memberships for the whole DAO.

    Args:
        components: Deployed components by name
        deployer: Signing identity running the reconciliation
        multisig: Guardian/admin multisig; defaults to the deployer
        revoke_deployer_admin: Append the handoff phase that drops the
            deployer's DEFAULT_ADMIN_ROLE everywhere

    Returns:
        RoleAssignment list in declaration order
    """
    multisig = multisig or deployer
    timelock = _address(components, TIMELOCK)
    governance = _address(components, GOVERNANCE)

    authority = RolePhase.AUTHORITY
    peer = RolePhase.PEER

    table = [
        _grant(TOKEN, DEFAULT_ADMIN_ROLE_NAME, timelock, authority),
        _grant(TOKEN, "ADMIN_ROLE", timelock, authority),
        _grant(TOKEN, "GUARDIAN_ROLE", multisig, authority),
        _grant(TIMELOCK, "GUARDIAN_ROLE", multisig, authority),
        _grant(TIMELOCK, "TIMELOCK_ADMIN_ROLE", timelock, authority),
        _grant(TIMELOCK, "TIMELOCK_ADMIN_ROLE", multisig, authority),
        _grant(GOVERNANCE, "GUARDIAN_ROLE", multisig, authority),
    ]
    for helper in HELPERS:
        table.append(_grant(helper, "ADMIN_ROLE", multisig, authority))
        table.append(_grant(helper, "ANALYTICS_ROLE", multisig, authority))

    table.extend(
        [
            _grant(TOKEN, "GOVERNANCE_ROLE", governance, peer),
            _grant(TOKEN, "GOVERNANCE_ROLE", timelock, peer),
            _grant(TOKEN, "MINTER_ROLE", governance, peer),
            _grant(TOKEN, "MINTER_ROLE", timelock, peer),
            _grant(TOKEN, "GUARDIAN_ROLE", governance, peer),
            _grant(TIMELOCK, "PROPOSER_ROLE", governance, peer),
            _grant(TIMELOCK, "EXECUTOR_ROLE", governance, peer),
            _grant(TIMELOCK, "CANCELLER_ROLE", governance, peer),
            _grant(TIMELOCK, "GUARDIAN_ROLE", governance, peer),
        ]
    )
    for helper in HELPERS:
        table.append(_grant(helper, "ANALYTICS_ROLE", governance, peer))

    if revoke_deployer_admin:
        for name in components:
            table.append(
                RoleAssignment(
                    component_name=name,
                    role_id=role_id(DEFAULT_ADMIN_ROLE_NAME),
                    account=deployer,
                    desired_present=False,
                    role_name=DEFAULT_ADMIN_ROLE_NAME,
                    phase=RolePhase.HANDOFF,
                )
            )

    return table


def build_allowlist(components: Dict[str, DeployedComponent]) -> List[AllowlistEntry]:
    """Governance allowlist: every component as a target, then every selector."""
    entries = [
        AllowlistEntry(AllowlistKind.TARGET, component.proxy_address, True, label=name)
        for name, component in components.items()
    ]
    entries.extend(
        AllowlistEntry(AllowlistKind.SELECTOR, function_selector(signature), True, label=signature)
        for signature in allowlist_signatures()
    )
    return entries


def build_governance_params(config: OrchestratorConfig) -> Dict[GovParam, int]:
    """
    Target govParams() values.

    The initializer values that land in govParams() are carried over, then
    config.governance_params overrides or adds any slot. Quorum is only set
    through an override: govParams() holds it as a token amount while the
    initializer takes a percentage.
    """
    params = {
        GovParam.VOTING_DURATION: config.voting_period,
        GovParam.PROPOSAL_THRESHOLD: config.proposal_threshold,
        GovParam.DEFEATED_REFUND_PERCENTAGE: config.defeated_refund,
        GovParam.CANCELED_REFUND_PERCENTAGE: config.cancelled_refund,
        GovParam.EXPIRED_REFUND_PERCENTAGE: config.expired_refund,
    }
    for name, value in config.governance_params.items():
        params[GovParam[name.upper()]] = value
    return dict(sorted(params.items()))
