"""Shared pytest fixtures for dao-deployments tests."""

import itertools
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from eth_abi import decode, encode
from eth_utils import keccak, to_checksum_address

from dao_deployments.abi import function_signature, split_signature
from dao_deployments.artifacts import load_artifact
from dao_deployments.config import OrchestratorConfig
from dao_deployments.confirmation import ConfirmationTracker
from dao_deployments.constants import (
    CONTRACT_NAMES,
    EIP1967_ADMIN_SLOT,
    EIP1967_IMPLEMENTATION_SLOT,
    PROXY_CONTRACT_NAME,
    ZERO_ADDRESS,
)
from dao_deployments.deployer import DeploymentOrchestrator
from dao_deployments.executor import TransactionExecutor
from dao_deployments.hashing import function_selector, role_id
from dao_deployments.plan import build_deployment_plan
from dao_deployments.types import ContractCall, DeployedComponent, NetworkProfile, TxRecord

# Well-known local development key (hardhat/anvil account #0)
DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
MULTISIG = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

DEFAULT_ADMIN = role_id("DEFAULT_ADMIN_ROLE")

REFERENCE_GETTERS = ["timelock()", "justToken()", "justGovernance()", "justTimelock()"]

# Initializer input name -> getter that returns it afterwards
INITIALIZER_REFERENCES = {
    "JustGovernanceUpgradeable": {"tokenAddress": "justToken()", "timelockAddress": "timelock()"},
    "JustDAOHelperUpgradeable": {
        "tokenAddress": "justToken()",
        "governanceAddress": "justGovernance()",
        "timelockAddress": "justTimelock()",
    },
    "JustAnalyticsHelperUpgradeable": {
        "tokenAddress": "justToken()",
        "governanceAddress": "justGovernance()",
        "timelockAddress": "justTimelock()",
    },
}

# Governance initializer input name -> govParams() slot
INITIALIZER_GOV_PARAMS = {
    "votingPeriod": 0,
    "proposalThreshold": 3,
    "defeatedRefund": 5,
    "cancelledRefund": 6,
    "expiredRefund": 7,
}

SETTERS = {
    "setTimelock(address)": ["timelock()"],
    "setJustToken(address)": ["justToken()"],
    "updateContractAddresses(address,address,address)": [
        "justToken()",
        "justGovernance()",
        "justTimelock()",
    ],
}

# Token and timelock only expose the contract-role entry points
CONTRACT_ROLE_CONTRACTS = {CONTRACT_NAMES["token"], CONTRACT_NAMES["timelock"]}

VIEWS = {
    "hasRole(bytes32,address)": ("bool",),
    "functionThreatLevels(bytes4)": ("uint8",),
    "addressThreatLevels(address)": ("uint8",),
    "allowedTargets(address)": ("bool",),
    "allowedFunctionSelectors(bytes4)": ("bool",),
    "getTransaction(bytes32)": ("address", "uint256", "bytes", "uint256", "bool"),
    "govParams()": ("uint256",) * 8,
}
VIEWS.update({getter: ("address",) for getter in REFERENCE_GETTERS})

WRITES = [
    "grantRole(bytes32,address)",
    "revokeRole(bytes32,address)",
    "grantContractRole(bytes32,address)",
    "revokeContractRole(bytes32,address)",
    "setFunctionThreatLevel(bytes4,uint8)",
    "setAddressThreatLevel(address,uint8)",
    "updateSecurity(bytes4,bool,address,bool)",
    "updateGovParam(uint8,uint256)",
] + list(SETTERS)

SIGNATURES = {function_selector(s): s for s in list(VIEWS) + WRITES}


class FakeRevert(Exception):
    """Execution failure inside the fake chain."""


class FakeContract:
    """State of one deployed proxy (or bare implementation)."""

    def __init__(self, address: str, contract_name: str, runtime_code: bytes):
        self.address = address
        self.contract_name = contract_name
        self.runtime_code = runtime_code
        self.storage: Dict[str, bytes] = {}
        self.roles = set()  # (role_id, lowercase account)
        self.refs: Dict[str, str] = {}
        self.function_levels: Dict[bytes, int] = {}
        self.address_levels: Dict[str, int] = {}
        self.allowed_targets = set()
        self.allowed_selectors = set()
        self.queued: Dict[bytes, Tuple[Any, ...]] = {}
        self.gov_params: Dict[int, int] = {}
        self.setters_stick = True

    def has_role(self, role: bytes, account: str) -> bool:
        return (role, account.lower()) in self.roles

    def grant(self, role: bytes, account: str) -> None:
        self.roles.add((role, account.lower()))

    def revoke(self, role: bytes, account: str) -> None:
        self.roles.discard((role, account.lower()))

    def view(self, signature: str, args: Tuple[Any, ...]) -> Tuple[Any, ...]:
        if signature == "hasRole(bytes32,address)":
            return (self.has_role(args[0], args[1]),)
        if signature in REFERENCE_GETTERS:
            return (self.refs.get(signature, ZERO_ADDRESS),)
        if signature == "functionThreatLevels(bytes4)":
            return (self.function_levels.get(args[0], 0),)
        if signature == "addressThreatLevels(address)":
            return (self.address_levels.get(args[0].lower(), 0),)
        if signature == "allowedTargets(address)":
            return (args[0].lower() in self.allowed_targets,)
        if signature == "allowedFunctionSelectors(bytes4)":
            return (args[0] in self.allowed_selectors,)
        if signature == "govParams()":
            return tuple(self.gov_params.get(slot, 0) for slot in range(8))
        if signature == "getTransaction(bytes32)":
            if args[0] not in self.queued:
                return (ZERO_ADDRESS, 0, b"", 0, False)
            return self.queued[args[0]]
        raise FakeRevert(f"{self.contract_name} has no view {signature}")

    def execute(self, signature: str, args: Tuple[Any, ...]) -> None:
        uses_contract_roles = self.contract_name in CONTRACT_ROLE_CONTRACTS
        if signature in ("grantRole(bytes32,address)", "revokeRole(bytes32,address)"):
            if uses_contract_roles:
                raise FakeRevert(f"{self.contract_name} does not expose {signature}")
        elif signature in ("grantContractRole(bytes32,address)", "revokeContractRole(bytes32,address)"):
            if not uses_contract_roles:
                raise FakeRevert(f"{self.contract_name} does not expose {signature}")

        if signature.startswith("grant"):
            self.grant(args[0], args[1])
        elif signature.startswith("revoke"):
            self.revoke(args[0], args[1])
        elif signature == "setFunctionThreatLevel(bytes4,uint8)":
            self.function_levels[args[0]] = args[1]
        elif signature == "setAddressThreatLevel(address,uint8)":
            self.address_levels[args[0].lower()] = args[1]
        elif signature == "updateSecurity(bytes4,bool,address,bool)":
            selector, selector_allowed, target, target_allowed = args
            if selector != b"\x00\x00\x00\x00":
                if selector_allowed:
                    self.allowed_selectors.add(selector)
                else:
                    self.allowed_selectors.discard(selector)
            if target.lower() != ZERO_ADDRESS:
                if target_allowed:
                    self.allowed_targets.add(target.lower())
                else:
                    self.allowed_targets.discard(target.lower())
        elif signature == "updateGovParam(uint8,uint256)":
            if self.setters_stick:
                self.gov_params[args[0]] = args[1]
        elif signature in SETTERS:
            if self.setters_stick:
                for getter, value in zip(SETTERS[signature], args):
                    self.refs[getter] = to_checksum_address(value)
        else:
            raise FakeRevert(f"{self.contract_name} has no function {signature}")


class FakeLedger:
    """
    In-memory chain with the LedgerClient interface.

    Every submitted transaction is mined immediately in its own block. Calls
    are decoded by selector, so the code under test exercises its real ABI
    encoding.
    """

    def __init__(self, artifacts_root: Path, address: str = DEPLOYER):
        self.address = address
        self.head = 100
        self.contracts: Dict[str, FakeContract] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.sent: List[ContractCall] = []
        self.fee = 1_000_000_000
        self.revert_when: Optional[Callable[[ContractCall], bool]] = None
        self.code_hidden_reads = 0  # Empty getCode answers per new address
        self._hidden: Dict[str, int] = {}
        self._counter = itertools.count(1)

        self.proxy_artifact = load_artifact(PROXY_CONTRACT_NAME, artifacts_root)
        self.implementations = {}
        for contract_name in CONTRACT_NAMES.values():
            artifact = load_artifact(contract_name, artifacts_root)
            self.implementations[artifact.bytecode] = artifact

    # Test helpers

    def at(self, address: str) -> FakeContract:
        return self.contracts[address.lower()]

    def calls_to(self, address: str) -> List[ContractCall]:
        return [c for c in self.sent if c.to is not None and c.to.lower() == address.lower()]

    def place(self, contract_name: str, runtime_code: bytes = b"\x60\x80") -> FakeContract:
        """Put a contract on chain without a transaction."""
        address = self._new_address()
        contract = FakeContract(address, contract_name, runtime_code)
        self.contracts[address.lower()] = contract
        return contract

    def _new_address(self) -> str:
        return to_checksum_address(keccak(b"fake-contract-%d" % next(self._counter))[-20:])

    # LedgerClient interface

    def current_fee_estimate(self) -> int:
        return self.fee

    def block_number(self) -> int:
        return self.head

    def read_bytecode(self, address: str) -> bytes:
        key = address.lower()
        if self._hidden.get(key, 0) > 0:
            self._hidden[key] -= 1
            return b""
        contract = self.contracts.get(key)
        return contract.runtime_code if contract else b""

    def get_storage_at(self, address: str, slot: str) -> bytes:
        contract = self.contracts.get(address.lower())
        if contract is None:
            return b"\x00" * 32
        return contract.storage.get(slot, b"\x00" * 32)

    def call(self, to: str, data: bytes) -> bytes:
        contract = self.contracts.get(to.lower())
        if contract is None:
            return b""
        signature = SIGNATURES[data[:4]]
        _, types = split_signature(signature)
        args = decode(types, data[4:])
        return encode(list(VIEWS[signature]), list(contract.view(signature, args)))

    def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)

    def submit(self, call: ContractCall, gas_price: int) -> TxRecord:
        self.sent.append(call)
        self.head += 1
        tx_hash = "0x" + keccak(b"fake-tx-%d" % len(self.sent)).hex()

        status = 1
        contract_address = None
        try:
            if self.revert_when is not None and self.revert_when(call):
                raise FakeRevert("forced revert")
            if call.to is None:
                contract_address = self._create(call.data)
            else:
                self._transact(call.to, call.data)
        except FakeRevert:
            status = 0
            contract_address = None

        self.receipts[tx_hash] = {
            "block_number": self.head,
            "status": status,
            "gas_used": 21000,
            "contract_address": contract_address,
        }
        return TxRecord(hash=tx_hash, submitted_at=0.0, description=call.description)

    def _create(self, data: bytes) -> str:
        if data in self.implementations:
            artifact = self.implementations[data]
            contract = self.place(artifact.contract_name, b"\x60\x80" + data[-2:])
            return contract.address

        proxy_code = self.proxy_artifact.bytecode
        if not data.startswith(proxy_code):
            raise FakeRevert("unknown creation code")

        implementation, init_data = decode(["address", "bytes"], data[len(proxy_code):])
        target = self.contracts.get(implementation.lower())
        if target is None:
            raise FakeRevert("proxy implementation has no code")

        proxy = self.place(target.contract_name, self.proxy_artifact.bytecode[-4:])
        proxy.storage[EIP1967_IMPLEMENTATION_SLOT] = bytes(12) + bytes.fromhex(implementation[2:])
        proxy.storage[EIP1967_ADMIN_SLOT] = b"\x00" * 32
        self._initialize(proxy, init_data)
        self._hidden[proxy.address.lower()] = self.code_hidden_reads
        return proxy.address

    def _initialize(self, proxy: FakeContract, init_data: bytes) -> None:
        artifact = next(
            a for a in self.implementations.values() if a.contract_name == proxy.contract_name
        )
        initializer = next(
            item for item in artifact.abi if item.get("name") == "initialize"
        )
        signature = function_signature(artifact.abi, "initialize")
        if init_data[:4] != function_selector(signature):
            raise FakeRevert("initializer selector mismatch")

        _, types = split_signature(signature)
        values = decode(types, init_data[4:])
        references = INITIALIZER_REFERENCES.get(proxy.contract_name, {})
        for abi_input, value in zip(initializer["inputs"], values):
            if abi_input["name"] == "admin":
                proxy.grant(DEFAULT_ADMIN, value)
            elif abi_input["name"] in references:
                proxy.refs[references[abi_input["name"]]] = to_checksum_address(value)
            elif proxy.contract_name == CONTRACT_NAMES["governance"] and abi_input["name"] in INITIALIZER_GOV_PARAMS:
                proxy.gov_params[INITIALIZER_GOV_PARAMS[abi_input["name"]]] = value

    def _transact(self, to: str, data: bytes) -> None:
        contract = self.contracts.get(to.lower())
        if contract is None or data[:4] not in SIGNATURES:
            raise FakeRevert("no such function")
        signature = SIGNATURES[data[:4]]
        _, types = split_signature(signature)
        contract.execute(signature, decode(types, data[4:]))


class FakeClock:
    """Deterministic clock whose sleep advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    """Return the compiled-artifacts fixture directory."""
    return fixtures_dir / "artifacts"


@pytest.fixture
def fake_ledger(artifacts_dir: Path) -> FakeLedger:
    """Create an empty in-memory chain."""
    return FakeLedger(artifacts_dir)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a deterministic clock."""
    return FakeClock()


@pytest.fixture
def local_profile() -> NetworkProfile:
    """Single-confirmation profile with a short timeout."""
    return NetworkProfile(
        poll_interval_ms=1000,
        timeout_ms=10_000,
        required_confirmations=1,
        gas_premium_percent=20,
    )


@pytest.fixture
def orchestrator_config(artifacts_dir: Path) -> OrchestratorConfig:
    """Configuration for a local run against the fixture artifacts."""
    return OrchestratorConfig(
        rpc_url="http://localhost:8545",
        private_key=DEPLOYER_KEY,
        network="localhost",
        multisig_address=MULTISIG,
        artifacts_dir=str(artifacts_dir),
    )



@pytest.fixture
def executor(fake_ledger: FakeLedger, fake_clock: FakeClock, local_profile: NetworkProfile) -> TransactionExecutor:
    """Submit-and-confirm executor over the fake chain."""
    tracker = ConfirmationTracker(fake_ledger, clock=fake_clock, sleep=fake_clock.sleep)
    return TransactionExecutor(fake_ledger, tracker, local_profile)


@pytest.fixture
def deployed(
    fake_ledger: FakeLedger,
    executor: TransactionExecutor,
    orchestrator_config: OrchestratorConfig,
) -> Dict[str, DeployedComponent]:
    """All five components deployed but not yet wired or permissioned."""
    orchestrator = DeploymentOrchestrator(
        fake_ledger,
        executor,
        executor.tracker,
        artifacts_root=orchestrator_config.artifacts_dir,
        settle_seconds=0,
    )
    components = orchestrator.deploy_plan(
        build_deployment_plan(orchestrator_config, fake_ledger.address)
    )
    fake_ledger.sent.clear()
    return components
