"""Path management utilities for dao-deployments library."""

from pathlib import Path
from typing import Optional, Union

from .exceptions import ArtifactNotFoundError


def get_default_artifacts_dir() -> Path:
    """
    Get default compiled-artifacts directory (hardhat layout).

    Returns:
        Path to ./artifacts
    """
    return Path.cwd() / "artifacts"


def find_artifact_path(
    contract_name: str, artifacts_root: Optional[Union[Path, str]] = None
) -> Path:
    """
    Locate the compiled artifact of a contract.

    Accepts either a bare contract name ("JustTokenUpgradeable") or a fully
    qualified one ("contracts/JustTokenUpgradeable.sol:JustTokenUpgradeable").

    Args:
        contract_name: Contract name, bare or fully qualified
        artifacts_root: Custom artifacts directory (defaults to ./artifacts)

    Returns:
        Path to the artifact JSON file

    Raises:
        ArtifactNotFoundError: If no matching artifact exists
    """
    if artifacts_root is None:
        artifacts_root = get_default_artifacts_dir()
    else:
        artifacts_root = Path(artifacts_root).absolute()

    # Fully qualified: <source path>:<name> maps to <root>/<source path>/<name>.json
    if ":" in contract_name:
        source, name = contract_name.rsplit(":", 1)
        candidate = artifacts_root / source / f"{name}.json"
        if candidate.exists():
            return candidate
        raise ArtifactNotFoundError(f"Artifact for {contract_name} not found at {candidate}")

    # Bare name: debug files are named <name>.dbg.json, so the exact match skips them
    matches = sorted(artifacts_root.rglob(f"{contract_name}.json"))
    if not matches:
        raise ArtifactNotFoundError(
            f"Artifact for {contract_name} not found under {artifacts_root}. "
            "Compile the contracts or set ARTIFACTS_DIR."
        )
    return matches[0]
