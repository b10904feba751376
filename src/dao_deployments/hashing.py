"""Role identifiers, function selectors and address helpers."""

from eth_utils import is_address, keccak, to_checksum_address

DEFAULT_ADMIN_ROLE_NAME = "DEFAULT_ADMIN_ROLE"


def role_id(name: str) -> bytes:
    """
    Derive the 32-byte identifier of an access-control role.

    Args:
        name: Role name, e.g. "GOVERNANCE_ROLE"

    Returns:
        keccak256 of the UTF-8 name, or 32 zero bytes for DEFAULT_ADMIN_ROLE
    """
    if name == DEFAULT_ADMIN_ROLE_NAME:
        return b"\x00" * 32
    return keccak(text=name)


def function_selector(signature: str) -> bytes:
    """
    Compute the 4-byte selector of a canonical function signature.

    Args:
        signature: Canonical signature without spaces, e.g. "pause()"

    Returns:
        First four bytes of keccak256 of the UTF-8 signature
    """
    return keccak(text=signature)[:4]


def to_hex(value: bytes) -> str:
    """Render bytes as a 0x-prefixed lowercase hex string."""
    return "0x" + value.hex()


def normalize_address(address: str) -> str:
    """
    Validate and checksum an address.

    Raises:
        ValueError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return a.lower() == b.lower()
