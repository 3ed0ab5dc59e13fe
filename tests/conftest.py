"""
Pytest fixtures for the Splits SDK tests.
"""
import os
import time
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from splits_sdk.config import ENV_PREFIX, reset_settings
from splits_sdk.contracts import DISTRIBUTE_SIGNATURE, PREDICT_ADDRESS_SIGNATURE
from tests.test_helpers import (
    BUNDLER_URL,
    TEST_PAYMASTER,
    TEST_PRIV_KEY,
    TEST_SPLIT,
    TEST_TX_HASH,
    TEST_USER_OP_HASH,
    BundlerStub,
)


# Make time.sleep instantaneous so receipt polling doesn't slow the suite down
@pytest.fixture(autouse=True)
def sleep_calls(monkeypatch):
    """Record every time.sleep call instead of sleeping"""
    calls = []
    monkeypatch.setattr(time, "sleep", lambda seconds, *_a, **_kw: calls.append(seconds))
    return calls


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    Works for all tests because it is autouse.
    """
    def _dummy(self, method, params=None, _=None):
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x2105"}  # Base
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Isolate tests from global configuration and SPLITS_* environment variables"""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def operator_account():
    """Create a deterministic operator account"""
    return Account.from_key(TEST_PRIV_KEY)


@pytest.fixture
def mock_w3():
    """
    Mock Web3 with the calls the sponsored pipeline makes:
    the EOA transaction count and EntryPoint.getNonce.
    """
    mock = MagicMock(spec=Web3)
    mock.eth = MagicMock()
    mock.eth.get_transaction_count = MagicMock(return_value=5)

    entry_point = MagicMock()
    entry_point.functions.getNonce.return_value.call.return_value = 0
    mock.eth.contract = MagicMock(return_value=entry_point)
    return mock


@pytest.fixture
def bundler(requests_mock):
    """Scripted bundler/paymaster JSON-RPC endpoint"""
    return BundlerStub(
        requests_mock,
        BUNDLER_URL,
        paymaster=TEST_PAYMASTER,
        user_op_hash=TEST_USER_OP_HASH,
        tx_hash=TEST_TX_HASH,
    )


@pytest.fixture
def chain_w3():
    """
    Mock Web3 for direct (operator-paid) transactions.

    Every ``eth.contract`` call returns the same contract mock; overloaded
    functions are looked up by signature in ``contract.by_signature``.
    """
    mock = MagicMock(spec=Web3)
    mock.eth = MagicMock()
    mock.eth.get_transaction_count = MagicMock(return_value=12)
    mock.eth.send_raw_transaction = MagicMock(return_value=bytes.fromhex(TEST_TX_HASH[2:]))
    mock.eth.wait_for_transaction_receipt = MagicMock(return_value={
        "transactionHash": bytes.fromhex(TEST_TX_HASH[2:]),
        "blockNumber": 12345,
        "blockHash": bytes.fromhex("ef" * 32),
        "status": 1,
        "gasUsed": 85000,
        "logs": [],
    })

    def build_tx(tx_params):
        return {**tx_params, "to": TEST_SPLIT, "data": "0x1234"}

    contract = MagicMock()
    contract.functions.createSplitDeterministic.return_value.build_transaction.side_effect = build_tx
    contract.functions.isDeployed.return_value.call.return_value = (TEST_SPLIT, False)
    contract.by_signature = {
        PREDICT_ADDRESS_SIGNATURE: MagicMock(),
        DISTRIBUTE_SIGNATURE: MagicMock(),
    }
    contract.by_signature[PREDICT_ADDRESS_SIGNATURE].return_value.call.return_value = TEST_SPLIT
    contract.by_signature[DISTRIBUTE_SIGNATURE].return_value.build_transaction.side_effect = build_tx
    contract.get_function_by_signature.side_effect = lambda signature: contract.by_signature[signature]

    mock.eth.contract = MagicMock(return_value=contract)
    mock.contract = contract
    return mock
