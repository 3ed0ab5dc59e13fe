"""
Utility functions for the Splits SDK.
"""
from typing import Any, Union

from hexbytes import HexBytes
from web3 import Web3

from .exceptions import InvalidAddressError


def to_int(value: Union[int, str, bytes, None]) -> int:
    """
    Parse an integer from an RPC quantity.

    Accepts ints, 0x-prefixed hex strings, decimal strings and raw bytes.
    ``None`` and empty values parse as 0.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer quantity, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    if isinstance(value, str):
        text = value.strip()
        if text in ("", "0x"):
            return 0
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"Expected an integer quantity, got {type(value).__name__}")


def to_hex_quantity(value: int) -> str:
    """Encode an integer as an RPC quantity (minimal 0x hex)."""
    return hex(max(0, int(value)))


def hex_to_bytes(value: Union[str, bytes, None]) -> bytes:
    """Convert a 0x-prefixed hex string (or bytes) to bytes."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes(HexBytes(value))


def to_hex(value: Union[str, bytes]) -> str:
    """Render bytes as a 0x-prefixed lowercase hex string."""
    return "0x" + hex_to_bytes(value).hex()


def hex_to_bytes32(value: Union[str, bytes]) -> bytes:
    """
    Convert a hex string to a left-padded 32-byte word.

    Raises:
        ValueError: If the value is longer than 32 bytes or not hex
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = value[2:] if value.startswith(("0x", "0X")) else value
        raw = bytes.fromhex(text.rjust(64, "0"))
    if len(raw) > 32:
        raise ValueError(f"Value does not fit in bytes32: {len(raw)} bytes")
    return raw.rjust(32, b"\x00")


def to_checksum(address: Any) -> str:
    """
    Validate an address and return its checksummed form.

    Raises:
        InvalidAddressError: If the address is not 20 bytes of hex
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise InvalidAddressError(f"Invalid address length: {len(address)} bytes")
        return Web3.to_checksum_address(bytes(address))
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError(f"Invalid address: {address!r}")
    text = address.strip()
    body = text[2:] if text.lower().startswith("0x") else text
    if len(body) != 40:
        raise InvalidAddressError(f"Invalid address length: {address}")
    try:
        int(body, 16)
    except ValueError:
        raise InvalidAddressError(f"Invalid address format: {address}")
    return Web3.to_checksum_address("0x" + body.lower())
