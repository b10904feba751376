"""Compiled contract artifact parsing for dao-deployments library."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from eth_abi import encode
from eth_utils import to_bytes

from .abi import constructor_types, encode_call, function_signature
from .constants import INITIALIZER_NAME
from .exceptions import DefectiveArtifactError
from .paths import find_artifact_path


@dataclass(frozen=True)
class ContractArtifact:
    """ABI and creation bytecode of a compiled contract."""

    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: bytes

    def creation_code(self, args: Sequence[Any] = ()) -> bytes:
        """
        Creation bytecode followed by ABI-encoded constructor arguments.

        Raises:
            ValueError: If the argument count does not match the constructor
        """
        types = constructor_types(self.abi)
        if len(types) != len(args):
            raise ValueError(
                f"{self.contract_name} constructor takes {len(types)} argument(s), got {len(args)}"
            )
        if not types:
            return self.bytecode
        return self.bytecode + encode(types, list(args))

    def initializer_calldata(self, args: Sequence[Any], name: str = INITIALIZER_NAME) -> bytes:
        """Calldata for the proxy initializer call."""
        return encode_call(function_signature(self.abi, name), args)


def parse_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a compiled contract artifact.

    Supports the hardhat format ("bytecode": "0x...") and the foundry
    format ("bytecode": {"object": "0x..."}).

    Args:
        file_path: Path to artifact JSON file

    Returns:
        ContractArtifact

    Raises:
        DefectiveArtifactError: If the ABI or creation bytecode is missing,
            e.g. for interfaces and abstract contracts
    """
    with open(file_path) as f:
        data = json.load(f)

    contract_name = data.get("contractName") or Path(file_path).stem

    if "abi" not in data:
        raise DefectiveArtifactError(f"Missing ABI in artifact: {file_path}")

    bytecode = data.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")

    if not bytecode or bytecode in ("0x", "0x0"):
        raise DefectiveArtifactError(f"Missing creation bytecode in artifact: {file_path}")

    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    # Unlinked library placeholders are not valid hex
    try:
        code = to_bytes(hexstr=bytecode)
    except ValueError as e:
        raise DefectiveArtifactError(
            f"Creation bytecode in {file_path} is not valid hex (unlinked libraries?)"
        ) from e

    return ContractArtifact(contract_name=contract_name, abi=data["abi"], bytecode=code)


def load_artifact(
    contract_name: str, artifacts_root: Optional[Union[Path, str]] = None
) -> ContractArtifact:
    """Find and parse the artifact of a contract by name."""
    return parse_artifact(find_artifact_path(contract_name, artifacts_root))
