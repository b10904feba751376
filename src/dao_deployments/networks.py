"""Network profile resolution for dao-deployments library."""

from .constants import DEFAULT_NETWORK_PROFILE, NETWORK_PROFILES
from .types import NetworkProfile


def resolve_network_profile(network: str) -> NetworkProfile:
    """
    Map a network name to its polling and fee profile.

    Args:
        network: Network name (e.g., "mainnet", "sepolia", "localhost")

    Returns:
        NetworkProfile for the network; unknown or empty names get the
        fast/local profile
    """
    settings = NETWORK_PROFILES.get((network or "").strip().lower(), DEFAULT_NETWORK_PROFILE)
    return NetworkProfile(**settings)
