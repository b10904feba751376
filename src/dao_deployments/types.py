"""Data types and dataclasses for dao-deployments library."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class NetworkProfile:
    """Polling and fee behaviour for one target network."""

    poll_interval_ms: int
    timeout_ms: int
    required_confirmations: int
    gas_premium_percent: int


@dataclass(frozen=True)
class ComponentRef:
    """Placeholder for the proxy address of an earlier deployment step."""

    name: str


@dataclass(frozen=True)
class DeploymentStep:
    """One upgradeable component to deploy."""

    component_name: str  # Join key, e.g. "token"
    contract_name: str  # Artifact name, e.g. "JustTokenUpgradeable"
    initializer_args: Tuple[Any, ...] = ()  # May contain ComponentRef placeholders
    constructor_args: Tuple[Any, ...] = ()  # Implementation constructor, usually empty
    depends_on: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class DeployedComponent:
    """Addresses of a deployed (or attached) upgradeable component."""

    name: str
    proxy_address: str  # Checksummed
    implementation_address: Optional[str] = None
    admin_address: Optional[str] = None


class RolePhase(IntEnum):
    """
    Ordering groups for role reconciliation.

    - AUTHORITY: grants made directly by the initiating authority
    - PEER: grants between components
    - HANDOFF: removal of the initiating authority's bootstrap roles
    """

    AUTHORITY = 1
    PEER = 2
    HANDOFF = 3


@dataclass(frozen=True)
class RoleAssignment:
    """Desired membership of one account in one role on one component."""

    component_name: str
    role_id: bytes  # 32-byte role identifier
    account: str  # Checksummed
    desired_present: bool = True
    role_name: str = ""  # For diagnostics only
    phase: RolePhase = RolePhase.AUTHORITY


class ThreatTier(IntEnum):
    """Risk tier controlling the timelock delay of a guarded call."""

    NONE = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


class GovParam(IntEnum):
    """Slot of a governance parameter in govParams() and updateGovParam(uint8,uint256)."""

    VOTING_DURATION = 0
    QUORUM = 1
    TIMELOCK_DELAY = 2
    PROPOSAL_THRESHOLD = 3
    PROPOSAL_STAKE = 4
    DEFEATED_REFUND_PERCENTAGE = 5
    CANCELED_REFUND_PERCENTAGE = 6
    EXPIRED_REFUND_PERCENTAGE = 7


class TxOutcome(Enum):
    """Client-observed state of a submitted transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed-out"
    REVERTED = "reverted"


@dataclass(frozen=True)
class TxRecord:
    """A submitted transaction and what has been observed about it."""

    hash: str
    submitted_at: float  # Unix timestamp
    attempt: int = 0  # Receipt polls made so far
    confirmations: int = 0
    outcome: TxOutcome = TxOutcome.PENDING
    description: str = ""
    block_number: Optional[int] = None
    contract_address: Optional[str] = None  # Set for contract creations


@dataclass(frozen=True)
class ContractCall:
    """A state-changing call; ``to=None`` means contract creation."""

    to: Optional[str]
    data: bytes
    gas_limit: int
    value: int = 0
    description: str = ""


@dataclass(frozen=True)
class WiringRule:
    """
    Cross-references held by one component.

    ``references`` pairs each getter signature with the component whose
    address it must return. When ``setter`` is given it is called with the
    dependency addresses in the same order; when it is None the references are
    fixed at initialization and only verified.
    """

    component_name: str
    references: Tuple[Tuple[str, str], ...]
    setter: Optional[str] = None


class AllowlistKind(Enum):
    """Governance allowlist dimension."""

    TARGET = "target"
    SELECTOR = "selector"


@dataclass(frozen=True)
class AllowlistEntry:
    """Desired allowlist state for a proposal target address or function selector."""

    kind: AllowlistKind
    key: Any  # Checksummed address for TARGET, 4-byte selector for SELECTOR
    allowed: bool = True
    label: str = ""


@dataclass(frozen=True)
class Discrepancy:
    """A single on-chain value that differs from the declared value."""

    check: str  # "bytecode", "reference", "role", "threat-level", "allowlist", "governance-parameter"
    component_name: str
    subject: str
    expected: Any
    actual: Any

    def __str__(self) -> str:
        return (
            f"[{self.check}] {self.component_name}: {self.subject} "
            f"expected {self.expected!r}, found {self.actual!r}"
        )


@dataclass
class ReconciliationReport:
    """Outcome of one reconciliation pass."""

    transactions: list = field(default_factory=list)  # TxRecord, in submission order
    skipped: int = 0  # Entries already correct
    discrepancies: list = field(default_factory=list)  # Discrepancy after re-read

    @property
    def changed(self) -> int:
        return len(self.transactions)

    @property
    def ok(self) -> bool:
        return not self.discrepancies
