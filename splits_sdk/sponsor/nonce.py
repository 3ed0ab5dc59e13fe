"""
UserOperation nonce lookup against the entry point.
"""
import logging
from typing import Optional

from web3 import Web3

from ..contracts import ENTRY_POINT_ABI
from ..utils import to_checksum

logger = logging.getLogger(__name__)

NONCE_KEY = 0


def resolve_user_operation_nonce(
    w3: Web3,
    entry_point: str,
    sender: str,
    log: Optional[logging.Logger] = None,
) -> int:
    """
    Read ``EntryPoint.getNonce(sender, 0)``.

    Any failure degrades to nonce 0, which the entry point accepts for a
    sender that never submitted an operation.

    Args:
        w3: Web3 connected to the target chain
        entry_point: Entry point contract address
        sender: Operation sender

    Returns:
        The sender's next operation nonce, or 0 if the read failed
    """
    log = log or logger
    try:
        contract = w3.eth.contract(address=to_checksum(entry_point), abi=ENTRY_POINT_ABI)
        nonce = contract.functions.getNonce(to_checksum(sender), NONCE_KEY).call()
        return int(nonce)
    except Exception as e:
        log.warning(f"Failed to get nonce from EntryPoint {entry_point}, using 0: {e}")
        return 0
