from .bundler_stub import BundlerStub, RpcError, Sequence
from .client_creator import (
    BUNDLER_URL,
    TEST_CHAIN_ID,
    TEST_PAYMASTER,
    TEST_PRIV_KEY,
    TEST_RPC_URL,
    TEST_SPLIT,
    TEST_TOKEN,
    TEST_TX_HASH,
    TEST_USER_OP_HASH,
    create_test_client,
    create_test_service,
    transfer_log,
)

__all__ = [
    "BundlerStub",
    "RpcError",
    "Sequence",
    "BUNDLER_URL",
    "TEST_CHAIN_ID",
    "TEST_PAYMASTER",
    "TEST_PRIV_KEY",
    "TEST_RPC_URL",
    "TEST_SPLIT",
    "TEST_TOKEN",
    "TEST_TX_HASH",
    "TEST_USER_OP_HASH",
    "create_test_client",
    "create_test_service",
    "transfer_log",
]
