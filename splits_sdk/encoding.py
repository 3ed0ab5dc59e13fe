"""
Call data encoding for split contract calls.

Every call the operator makes through a smart account is wrapped as
``execute(target, 0, innerCall)`` on the delegated account.
"""
from typing import Any, List, Sequence, Tuple, Union

from eth_abi import decode, encode
from web3 import Web3

from .contracts import CREATE_SPLIT_SIGNATURE, DISTRIBUTE_SIGNATURE, EXECUTE_SIGNATURE
from .utils import hex_to_bytes, hex_to_bytes32, to_checksum

SplitParams = Tuple[List[str], List[int], int, int]


def function_selector(signature: str) -> bytes:
    """Return the 4-byte selector for a canonical function signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def parse_argument_types(signature: str) -> List[str]:
    """
    Split a canonical signature into its top-level argument types.

    >>> parse_argument_types("f((address[],uint256),address,bytes32)")
    ['(address[],uint256)', 'address', 'bytes32']
    """
    start = signature.index("(")
    if not signature.endswith(")"):
        raise ValueError(f"Malformed function signature: {signature}")
    body = signature[start + 1:-1]

    types: List[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            types.append(current)
            current = ""
        else:
            current += char
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in signature: {signature}")
    if current:
        types.append(current)
    return types


def encode_call(signature: str, args: Sequence[Any]) -> bytes:
    """
    Encode a contract call as selector + ABI-encoded arguments.

    Args:
        signature: Canonical signature, e.g. ``execute(address,uint256,bytes)``
        args: Positional argument values in declared order

    Returns:
        Encoded call bytes
    """
    types = parse_argument_types(signature)
    if len(types) != len(args):
        raise ValueError(f"{signature} expects {len(types)} arguments, got {len(args)}")
    return function_selector(signature) + encode(types, list(args))


def encode_execute(target: str, inner_call: Union[bytes, str]) -> bytes:
    """Wrap ``inner_call`` as ``execute(target, 0, inner_call)``."""
    return encode_call(EXECUTE_SIGNATURE, [to_checksum(target), 0, hex_to_bytes(inner_call)])


def decode_execute(call_data: Union[bytes, str]) -> Tuple[str, int, bytes]:
    """
    Decode ``execute(address,uint256,bytes)`` call data.

    Returns:
        Tuple of (checksummed target, value, inner call bytes)

    Raises:
        ValueError: If the selector does not match ``execute``
    """
    raw = hex_to_bytes(call_data)
    if raw[:4] != function_selector(EXECUTE_SIGNATURE):
        raise ValueError("Call data is not an execute() call")
    target, value, inner = decode(["address", "uint256", "bytes"], raw[4:])
    return to_checksum(target), value, bytes(inner)


def normalize_split_params(split_params: Sequence[Any]) -> SplitParams:
    """Checksum recipient addresses and coerce allocation values to ints."""
    recipients, allocations, total_allocation, distribution_incentive = split_params
    return (
        [to_checksum(address) for address in recipients],
        [int(allocation) for allocation in allocations],
        int(total_allocation),
        int(distribution_incentive),
    )


def encode_create_split_call(
    factory: str,
    split_params: Sequence[Any],
    owner: str,
    creator: str,
    salt: Union[str, bytes],
) -> bytes:
    """Encode ``createSplitDeterministic`` on the factory, wrapped in ``execute``."""
    inner = encode_call(
        CREATE_SPLIT_SIGNATURE,
        [normalize_split_params(split_params), to_checksum(owner), to_checksum(creator), hex_to_bytes32(salt)],
    )
    return encode_execute(factory, inner)


def encode_distribute_call(
    split_address: str,
    split_params: Sequence[Any],
    token: str,
    distributor: str,
) -> bytes:
    """Encode ``distribute`` on a push split, wrapped in ``execute``."""
    inner = encode_call(
        DISTRIBUTE_SIGNATURE,
        [normalize_split_params(split_params), to_checksum(token), to_checksum(distributor)],
    )
    return encode_execute(split_address, inner)
