"""
Decoding of ERC-20 Transfer events from distribution receipts.
"""
from typing import Any, Dict, Iterable, List

from eth_abi import decode
from web3 import Web3

from .contracts import TRANSFER_EVENT_SIGNATURE
from .models import TransferEvent
from .utils import hex_to_bytes, to_checksum

TRANSFER_TOPIC = bytes(Web3.keccak(text=TRANSFER_EVENT_SIGNATURE))
DEFAULT_TOKEN_DECIMALS = 6


def format_token_amount(value: int, decimals: int = DEFAULT_TOKEN_DECIMALS) -> float:
    return round(value / (10 ** decimals), decimals)


def decode_transfer_events(
    logs: Iterable[Dict[str, Any]],
    token_address: str,
    decimals: int = DEFAULT_TOKEN_DECIMALS,
) -> List[TransferEvent]:
    """
    Extract the Transfer events emitted by ``token_address``.

    Args:
        logs: Receipt logs (hex strings or bytes)
        token_address: The distributed token
        decimals: Token decimals used for ``value_formatted``

    Returns:
        Decoded transfers in log order
    """
    token = to_checksum(token_address)
    transfers = []
    for log in logs:
        topics = [hex_to_bytes(topic) for topic in log.get("topics") or []]
        if len(topics) != 3 or topics[0] != TRANSFER_TOPIC:
            continue
        address = log.get("address")
        if not address or to_checksum(address) != token:
            continue
        (value,) = decode(["uint256"], hex_to_bytes(log.get("data")))
        transfers.append(TransferEvent(
            from_address=to_checksum(topics[1][-20:]),
            to_address=to_checksum(topics[2][-20:]),
            value=value,
            value_formatted=format_token_amount(value, decimals),
        ))
    return transfers
