"""
Direct (operator-paid) transaction submission.
"""
import logging
import math
from typing import Any, Dict, Optional, Tuple

import requests
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.types import TxReceipt as Web3TxReceipt

from .exceptions import SplitsError
from .models import TxReceipt

logger = logging.getLogger(__name__)

PRIORITY_FEE = Web3.to_wei(30, "gwei")
MAX_FEE = Web3.to_wei(50, "gwei")
POLYGON_CHAIN_ID = 137
POLYGON_GAS_STATION_URL = "https://gasstation.polygon.technology/v2"
RECEIPT_TIMEOUT = 120


def default_fees(
    chain_id: int,
    session: Optional[requests.Session] = None,
    timeout: int = 10,
    log: Optional[logging.Logger] = None,
) -> Tuple[int, int]:
    """
    Choose EIP-1559 fees for a direct transaction.

    Polygon uses the gas station's ``fast`` tier; every other chain and any
    gas station failure fall back to fixed fees.

    Returns:
        Tuple of (max_fee_per_gas, max_priority_fee_per_gas) in wei
    """
    log = log or logger
    if chain_id != POLYGON_CHAIN_ID:
        return MAX_FEE, PRIORITY_FEE

    try:
        response = (session or requests).get(POLYGON_GAS_STATION_URL, timeout=timeout)
        response.raise_for_status()
        fast = response.json().get("fast") or {}
        max_fee_gwei = math.ceil(float(fast.get("maxFee") or 80))
        priority_fee_gwei = math.ceil(float(fast.get("maxPriorityFee") or 40))
        return Web3.to_wei(max_fee_gwei, "gwei"), Web3.to_wei(priority_fee_gwei, "gwei")
    except (requests.RequestException, ValueError, TypeError, AttributeError) as e:
        log.warning(f"Could not fetch Polygon gas prices, using defaults: {e}")
        return MAX_FEE, PRIORITY_FEE


def convert_receipt(web3_receipt: Web3TxReceipt) -> TxReceipt:
    """
    Convert a Web3 receipt to our TxReceipt model
    """
    receipt_dict: Dict[str, Any] = dict(web3_receipt)

    for key, value in list(receipt_dict.items()):
        if isinstance(value, bytes):
            receipt_dict[key] = "0x" + value.hex()

    receipt_dict["logs"] = [_log_to_dict(log) for log in receipt_dict.get("logs") or []]
    return TxReceipt.model_validate(receipt_dict)


def _log_to_dict(log: Any) -> Dict[str, Any]:
    result = {}
    for key, value in dict(log).items():
        if isinstance(value, bytes):
            value = "0x" + value.hex()
        elif isinstance(value, (list, tuple)):
            value = ["0x" + v.hex() if isinstance(v, bytes) else v for v in value]
        result[key] = value
    return result


def send_contract_transaction(
    w3: Web3,
    account: LocalAccount,
    contract_function: Any,
    chain_id: int,
    gas_limit: int,
    fees: Tuple[int, int],
    receipt_timeout: int = RECEIPT_TIMEOUT,
    poll_interval: float = 0.1,
    log: Optional[logging.Logger] = None,
) -> TxReceipt:
    """
    Build, sign and send a contract call, then wait for its receipt.

    Args:
        w3: Web3 connected to ``chain_id``
        account: Signing account
        contract_function: Bound web3 contract function
        chain_id: Target chain id
        gas_limit: Gas limit for the transaction
        fees: (max_fee_per_gas, max_priority_fee_per_gas)

    Returns:
        The mined receipt

    Raises:
        SplitsError: If signing, sending or the transaction itself fails
    """
    log = log or logger
    max_fee, priority_fee = fees
    tx = contract_function.build_transaction({
        "from": account.address,
        "nonce": w3.eth.get_transaction_count(account.address),
        "gas": gas_limit,
        "value": 0,
        "chainId": chain_id,
        "maxFeePerGas": max_fee,
        "maxPriorityFeePerGas": priority_fee,
    })

    try:
        signed_tx = account.sign_transaction(tx)
    except Exception as e:
        log.error(f"Transaction signing failed: {e}")
        raise SplitsError(f"Failed to sign transaction: {e}") from e

    tx_hash = w3.eth.send_raw_transaction(signed_tx.raw_transaction)
    tx_hash_hex = Web3.to_hex(tx_hash)
    log.info(f"Transaction sent: {tx_hash_hex}")

    receipt = convert_receipt(w3.eth.wait_for_transaction_receipt(
        tx_hash,
        timeout=receipt_timeout,
        poll_latency=poll_interval,
    ))
    if receipt.status != 1:
        raise SplitsError(f"TX failed: {tx_hash_hex}")
    return receipt
