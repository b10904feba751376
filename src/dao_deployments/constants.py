"""Configuration constants for dao-deployments library."""

# Polling/confirmation settings per network, tuned for slow public networks
# Unknown networks fall back to DEFAULT_NETWORK_PROFILE
NETWORK_PROFILES = {
    "mainnet": {
        "poll_interval_ms": 10_000,
        "timeout_ms": 3_600_000,  # 60 minutes
        "required_confirmations": 2,
        "gas_premium_percent": 20,
    },
    "goerli": {
        "poll_interval_ms": 5_000,
        "timeout_ms": 1_800_000,  # 30 minutes
        "required_confirmations": 2,
        "gas_premium_percent": 20,
    },
    "sepolia": {
        "poll_interval_ms": 5_000,
        "timeout_ms": 1_800_000,
        "required_confirmations": 2,
        "gas_premium_percent": 20,
    },
}

# Local nodes and fast testnets
DEFAULT_NETWORK_PROFILE = {
    "poll_interval_ms": 2_000,
    "timeout_ms": 600_000,  # 10 minutes
    "required_confirmations": 1,
    "gas_premium_percent": 20,
}

# Gas ceilings (fixed, not estimated)
DEPLOY_GAS_LIMIT = 8_000_000
WIRING_GAS_LIMIT = 300_000
ROLE_GAS_LIMIT = 200_000
THREAT_LEVEL_GAS_LIMIT = 200_000
ALLOWLIST_GAS_LIMIT = 200_000
GOV_PARAM_GAS_LIMIT = 200_000

# Priority fee assumed when deriving maxFeePerGas from the base fee
DEFAULT_PRIORITY_FEE_WEI = 1_000_000_000

# Bytecode visibility retries for freshly deployed proxies
CODE_VISIBILITY_ATTEMPTS = 3
CODE_VISIBILITY_WAIT_SECONDS = 15.0

# Eventual-consistency allowance after each verified deployment
POST_DEPLOY_SETTLE_SECONDS = 30.0

# EIP-1967 storage slots: bytes32(uint256(keccak256('eip1967.proxy.<name>')) - 1)
EIP1967_IMPLEMENTATION_SLOT = "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"
EIP1967_ADMIN_SLOT = "0xb53127684a568b3173ae13b9f8a6016e243e63b6e8ee1178d6a717850b5d6103"

PROXY_CONTRACT_NAME = "ERC1967Proxy"
INITIALIZER_NAME = "initialize"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_SELECTOR = b"\x00\x00\x00\x00"

# Component names used as join keys throughout the plan
TIMELOCK = "timelock"
TOKEN = "token"
GOVERNANCE = "governance"
DAO_HELPER = "dao_helper"
ANALYTICS_HELPER = "analytics_helper"

COMPONENT_ORDER = [TIMELOCK, TOKEN, GOVERNANCE, DAO_HELPER, ANALYTICS_HELPER]

# Solidity contract names for each component
CONTRACT_NAMES = {
    TIMELOCK: "JustTimelockUpgradeable",
    TOKEN: "JustTokenUpgradeable",
    GOVERNANCE: "JustGovernanceUpgradeable",
    DAO_HELPER: "JustDAOHelperUpgradeable",
    ANALYTICS_HELPER: "JustAnalyticsHelperUpgradeable",
}

# Environment variables holding addresses of already-deployed proxies (attach mode)
ADDRESS_ENV_VARS = {
    TIMELOCK: "TIMELOCK_ADDRESS",
    TOKEN: "TOKEN_ADDRESS",
    GOVERNANCE: "GOVERNANCE_ADDRESS",
    DAO_HELPER: "DAO_HELPER_ADDRESS",
    ANALYTICS_HELPER: "ANALYTICS_HELPER_ADDRESS",
}
