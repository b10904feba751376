"""Custom exception classes for dao-deployments library."""

from typing import Any, List, Optional


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class ConfigurationError(DeploymentError, ValueError):
    """Raised when required configuration is missing or malformed."""

    pass


class ArtifactNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a compiled contract artifact cannot be located."""

    pass


class DefectiveArtifactError(DeploymentError, ValueError):
    """Raised when a compiled artifact is missing its ABI or creation bytecode."""

    pass


class RpcConnectionError(DeploymentError, RuntimeError):
    """Raised when the RPC endpoint cannot be reached or answers with a non-200 status."""

    pass


class RpcError(DeploymentError, ValueError):
    """Raised when the node answers a JSON-RPC request with an error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class FeeUnavailableError(DeploymentError):
    """Raised when current fee data cannot be read from the node."""

    pass


class TransactionRejectedError(DeploymentError):
    """Raised when the node refuses a signed transaction before inclusion."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class TransactionRevertedError(DeploymentError):
    """Raised when a transaction was included but reverted on execution."""

    def __init__(self, message: str, tx_hash: str, receipt: Optional[dict] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt


class ConfirmationTimeoutError(DeploymentError, TimeoutError):
    """Raised when a transaction did not reach the required depth in time."""

    def __init__(self, message: str, tx_hash: str):
        super().__init__(message)
        self.tx_hash = tx_hash


class CodeNotObservedError(DeploymentError):
    """Raised when no bytecode appears at a freshly deployed address."""

    pass


class MissingDependencyError(DeploymentError, ValueError):
    """Raised when a deployment step refers to a component not yet deployed."""

    pass


class WiringMismatchError(DeploymentError):
    """Raised when a cross-reference getter disagrees with the recorded address."""

    pass


class InsufficientFundsError(DeploymentError):
    """Raised when the signing account cannot cover the worst-case transaction cost."""

    def __init__(self, message: str, address: str, balance: int, required: int):
        super().__init__(message)
        self.address = address
        self.balance = balance
        self.required = required


class VerificationError(DeploymentError):
    """Raised after a verification pass that found one or more discrepancies."""

    def __init__(self, message: str, discrepancies: Optional[List[Any]] = None):
        super().__init__(message)
        self.discrepancies = list(discrepancies or [])
