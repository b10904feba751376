"""
dao-deployments: declarative deployment and reconciliation of an upgradeable DAO
"""

from importlib.metadata import PackageNotFoundError, version

from .config import OrchestratorConfig, load_config
from .exceptions import (
    CodeNotObservedError,
    ConfigurationError,
    ConfirmationTimeoutError,
    DeploymentError,
    InsufficientFundsError,
    MissingDependencyError,
    TransactionRejectedError,
    TransactionRevertedError,
    VerificationError,
    WiringMismatchError,
)
from .networks import resolve_network_profile
from .pipeline import DeploymentPipeline, RunReport
from .types import (
    DeployedComponent,
    DeploymentStep,
    GovParam,
    NetworkProfile,
    RoleAssignment,
    ThreatTier,
    TxOutcome,
    TxRecord,
)

try:
    __version__ = version("dao-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentPipeline",
    "RunReport",
    "OrchestratorConfig",
    "load_config",
    "resolve_network_profile",
    "NetworkProfile",
    "DeploymentStep",
    "DeployedComponent",
    "GovParam",
    "RoleAssignment",
    "ThreatTier",
    "TxOutcome",
    "TxRecord",
    "DeploymentError",
    "ConfigurationError",
    "MissingDependencyError",
    "TransactionRejectedError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
    "CodeNotObservedError",
    "WiringMismatchError",
    "InsufficientFundsError",
    "VerificationError",
]
