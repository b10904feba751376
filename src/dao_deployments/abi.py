"""Minimal ABI helpers built on eth_abi and eth_utils: signatures in, calldata out."""

from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import ParseError
from eth_abi.grammar import TupleType, parse
from eth_utils.abi import abi_to_signature, collapse_if_tuple

from .exceptions import DefectiveArtifactError
from .hashing import function_selector


def split_signature(signature: str) -> Tuple[str, List[str]]:
    """
    Split a canonical function signature into its name and argument types.

    Args:
        signature: e.g. "updateSecurity(bytes4,bool,address,bool)"

    Returns:
        Tuple of (name, [type, ...]); tuple types are kept intact

    Raises:
        ValueError: If the signature is not of the form name(types)
    """
    name, paren, arguments = signature.partition("(")
    if not name or not paren:
        raise ValueError(f"Malformed function signature: {signature!r}")

    try:
        argument_tuple = parse(paren + arguments)
    except ParseError as e:
        raise ValueError(f"Malformed function signature: {signature!r}") from e
    if not isinstance(argument_tuple, TupleType) or argument_tuple.is_array:
        raise ValueError(f"Malformed function signature: {signature!r}")

    return name, [component.to_type_str() for component in argument_tuple.components]


def encode_call(signature: str, args: Sequence[Any] = ()) -> bytes:
    """
    Build calldata for a function call.

    Args:
        signature: Canonical function signature
        args: Argument values in declaration order

    Returns:
        4-byte selector followed by the ABI-encoded arguments

    Raises:
        ValueError: On a malformed signature or a wrong argument count
        eth_abi.exceptions.EncodingError: If a value does not fit its type
    """
    _, types = split_signature(signature)
    if len(types) != len(args):
        raise ValueError(
            f"{signature} takes {len(types)} argument(s), got {len(args)}"
        )
    return function_selector(signature) + encode(types, list(args))


def decode_result(output_types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    """Decode eth_call return data."""
    return decode(list(output_types), data)


def function_signature(abi: List[Dict[str, Any]], name: str) -> str:
    """
    Find a function in a contract ABI and return its canonical signature.

    Args:
        abi: Contract ABI
        name: Function name, e.g. "initialize"

    Returns:
        Canonical signature string, tuple inputs expanded

    Raises:
        DefectiveArtifactError: If the ABI has no such function, or has overloads
    """
    matches = [
        item for item in abi if item.get("type") == "function" and item.get("name") == name
    ]
    if not matches:
        raise DefectiveArtifactError(f"Function '{name}' not found in ABI")
    if len(matches) > 1:
        raise DefectiveArtifactError(f"Function '{name}' is overloaded in ABI")

    return abi_to_signature(matches[0])


def constructor_types(abi: List[Dict[str, Any]]) -> List[str]:
    """Argument types of the contract constructor (empty if none declared)."""
    for item in abi:
        if item.get("type") == "constructor":
            return [collapse_if_tuple(i) for i in item.get("inputs", [])]
    return []
