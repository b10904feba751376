"""Run configuration: environment variables, optional JSON file, defaults."""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv

from .constants import ADDRESS_ENV_VARS
from .exceptions import ConfigurationError
from .types import GovParam
from .hashing import normalize_address

_TRUE_VALUES = {"1", "true", "yes", "on"}

# Initializer parameters encoded as uint256
_UINT_FIELDS = (
    "timelock_min_delay",
    "min_lock_duration",
    "max_lock_duration",
    "proposal_threshold",
    "voting_delay",
    "voting_period",
    "quorum_numerator",
    "successful_refund",
    "cancelled_refund",
    "defeated_refund",
    "expired_refund",
)
_TEXT_FIELDS = ("rpc_url", "private_key", "network", "token_name", "token_symbol", "governance_name")


@dataclass(frozen=True)
class OrchestratorConfig:
    """Everything a run needs, fixed at start-up and passed explicitly."""

    rpc_url: str
    private_key: str
    network: str = "localhost"
    multisig_address: Optional[str] = None  # Defaults to the deployer
    artifacts_dir: Optional[str] = None  # Defaults to ./artifacts
    attach_addresses: Dict[str, str] = field(default_factory=dict)
    revoke_deployer_admin: bool = False

    # Timelock initializer
    timelock_min_delay: int = 86400  # 1 day

    # Token initializer
    token_name: str = "Justice Token"
    token_symbol: str = "JST"
    min_lock_duration: int = 3600  # 1 hour
    max_lock_duration: int = 31536000  # 1 year

    # Governance initializer
    governance_name: str = "Justice Governance"
    proposal_threshold: int = 1000 * 10**18
    voting_delay: int = 86400
    voting_period: int = 604800
    quorum_numerator: int = 4
    successful_refund: int = 100
    cancelled_refund: int = 50
    defeated_refund: int = 25
    expired_refund: int = 25

    # govParams() overrides by parameter name, e.g. {"quorum": 10**24}
    governance_params: Dict[str, int] = field(default_factory=dict)

    def __repr__(self) -> str:
        # Never print the signing key
        return (
            f"OrchestratorConfig(network={self.network!r}, rpc_url={self.rpc_url!r}, "
            f"attach={sorted(self.attach_addresses)})"
        )


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _is_uint256(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 2**256


def _check_types(values: Dict[str, Any]) -> None:
    for key in _TEXT_FIELDS:
        if key in values and not isinstance(values[key], str):
            raise ConfigurationError(f"'{key}' must be a string, got {values[key]!r}")

    for key in _UINT_FIELDS:
        if key not in values:
            continue
        value = values[key]
        if not _is_uint256(value):
            raise ConfigurationError(f"'{key}' must be an unsigned 256-bit integer, got {value!r}")

    if not isinstance(values.get("attach_addresses", {}), dict):
        raise ConfigurationError("'attach_addresses' must map component names to addresses")

    overrides = values.get("governance_params", {})
    if not isinstance(overrides, dict):
        raise ConfigurationError("'governance_params' must map parameter names to values")
    checked = {}
    for name, value in overrides.items():
        if str(name).upper() not in GovParam.__members__:
            raise ConfigurationError(
                f"Unknown governance parameter {name!r}; expected one of {list(GovParam.__members__)}"
            )
        if not _is_uint256(value):
            raise ConfigurationError(
                f"Governance parameter {name!r} must be an unsigned 256-bit integer, got {value!r}"
            )
        checked[str(name).lower()] = value
    if "governance_params" in values:
        values["governance_params"] = checked


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    simple = {
        "NETWORK": "network",
        "RPC_URL": "rpc_url",
        "PRIVATE_KEY": "private_key",
        "MULTISIG_ADDRESS": "multisig_address",
        "ARTIFACTS_DIR": "artifacts_dir",
    }
    for env_name, key in simple.items():
        if environ.get(env_name):
            values[key] = environ[env_name]

    if environ.get("REVOKE_DEPLOYER_ADMIN"):
        values["revoke_deployer_admin"] = _parse_bool(environ["REVOKE_DEPLOYER_ADMIN"])

    attach = {
        name: environ[env_name]
        for name, env_name in ADDRESS_ENV_VARS.items()
        if environ.get(env_name)
    }
    if attach:
        values["attach_addresses"] = attach

    return values


def load_config(
    config_path: Optional[Union[Path, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[Union[Path, str]] = None,
) -> OrchestratorConfig:
    """
    Build the run configuration.

    Values come from the environment (after loading a .env file) and are
    overridden by the JSON config file when one is given.

    Args:
        config_path: Optional JSON file whose keys are OrchestratorConfig field names
        environ: Environment mapping (defaults to os.environ after load_dotenv)
        env_file: Explicit .env file (defaults to dotenv's search)

    Returns:
        OrchestratorConfig

    Raises:
        ConfigurationError: On missing required values, unknown keys or bad addresses
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ

    values = _from_environment(environ)

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                file_values = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(file_values, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        values.update(file_values)

    known = {f.name for f in fields(OrchestratorConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {unknown}")

    missing = [key for key in ("rpc_url", "private_key") if not values.get(key)]
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {missing} "
            "(set RPC_URL and PRIVATE_KEY in the environment or config file)"
        )

    _check_types(values)

    try:
        if values.get("multisig_address"):
            values["multisig_address"] = normalize_address(values["multisig_address"])
        values["attach_addresses"] = {
            name: normalize_address(address)
            for name, address in values.get("attach_addresses", {}).items()
        }
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    unknown_components = sorted(set(values["attach_addresses"]) - set(ADDRESS_ENV_VARS))
    if unknown_components:
        raise ConfigurationError(f"Unknown components in attach_addresses: {unknown_components}")

    if "revoke_deployer_admin" in values:
        values["revoke_deployer_admin"] = _parse_bool(values["revoke_deployer_admin"])

    return OrchestratorConfig(**values)
