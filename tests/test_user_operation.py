"""
Tests for the UserOperation record, builder and userOpHash.
"""
import pytest
from eth_abi import encode
from eth_account.messages import encode_typed_data
from pydantic import ValidationError
from web3 import Web3

from splits_sdk.contracts import ENTRY_POINT_V07, ENTRY_POINT_V08, SIMPLE_7702_ACCOUNT
from splits_sdk.sponsor.models import Authorization, GasEstimate, GasPrice, SponsorshipData
from splits_sdk.sponsor.user_operation import (
    DUMMY_SIGNATURE,
    EIP7702_FACTORY_MARKER,
    UserOperation,
    UserOperationBuilder,
    compute_user_operation_hash,
)
from tests.test_helpers import TEST_CHAIN_ID, TEST_PAYMASTER

SENDER = Web3.to_checksum_address("0xfcad0b19bb29d4674531d6f115237e16afce377c")
DELEGATE = Web3.to_checksum_address(SIMPLE_7702_ACCOUNT)
ENTRY_POINT_08 = Web3.to_checksum_address(ENTRY_POINT_V08)
ENTRY_POINT_07 = Web3.to_checksum_address(ENTRY_POINT_V07)
AUTH = Authorization(address=SIMPLE_7702_ACCOUNT, chain_id=TEST_CHAIN_ID, nonce=5, y_parity=1, r=12345, s=67890)


@pytest.fixture
def operation():
    """A fully populated, sponsored operation"""
    builder = UserOperationBuilder(SENDER, TEST_CHAIN_ID)
    op = builder.build(call_data="0xb61d27f6", nonce=3, authorization=AUTH)
    op = op.with_gas_price(GasPrice(max_fee_per_gas=1_000_000_000, max_priority_fee_per_gas=2_000_000))
    op = op.with_gas_estimate(GasEstimate(
        call_gas_limit=65_536,
        verification_gas_limit=131_072,
        pre_verification_gas=50_000,
    ))
    return op.with_sponsorship(SponsorshipData(
        paymaster=TEST_PAYMASTER,
        paymaster_data="0xabcdef",
        paymaster_verification_gas_limit=32_768,
        paymaster_post_op_gas_limit=1,
    ))


def test_builder_initial_operation():
    """Build leaves gas unset and marks the EIP-7702 factory"""
    op = UserOperationBuilder(SENDER.lower(), TEST_CHAIN_ID).build(call_data=b"\x01\x02", nonce=7, authorization=AUTH)

    assert op.sender == SENDER
    assert op.nonce == 7
    assert op.factory == EIP7702_FACTORY_MARKER
    assert op.call_data == "0x0102"
    assert op.call_gas_limit == 0
    assert op.max_fee_per_gas == 0
    assert op.paymaster is None
    assert op.signature == DUMMY_SIGNATURE
    assert op.eip7702_auth == AUTH


def test_builder_without_authorization_has_no_factory():
    op = UserOperationBuilder(SENDER, TEST_CHAIN_ID).build(call_data="0x", nonce=0)
    assert op.factory is None
    assert op.init_code() == b""


def test_operation_is_immutable(operation):
    """Stages produce copies instead of mutating the operation"""
    with pytest.raises(ValidationError):
        operation.nonce = 99

    repriced = operation.with_gas_price(GasPrice(max_fee_per_gas=1, max_priority_fee_per_gas=1))
    assert operation.max_fee_per_gas == 1_000_000_000
    assert repriced.max_fee_per_gas == 1


def test_sponsorship_overrides_gas_limits(operation):
    """Limits re-estimated by the paymaster replace the bundler estimate"""
    updated = operation.with_sponsorship(SponsorshipData(
        paymaster=TEST_PAYMASTER,
        call_gas_limit=70_000,
        pre_verification_gas=51_000,
    ))
    assert updated.call_gas_limit == 70_000
    assert updated.pre_verification_gas == 51_000
    assert updated.verification_gas_limit == 131_072


def test_packed_fields(operation):
    """Gas limits, fees and paymaster fields pack into 16-byte halves"""
    assert operation.account_gas_limits() == (131_072).to_bytes(16, "big") + (65_536).to_bytes(16, "big")
    assert operation.gas_fees() == (2_000_000).to_bytes(16, "big") + (1_000_000_000).to_bytes(16, "big")

    paymaster_and_data = operation.paymaster_and_data()
    assert paymaster_and_data[:20] == bytes.fromhex(TEST_PAYMASTER[2:])
    assert paymaster_and_data[20:36] == (32_768).to_bytes(16, "big")
    assert paymaster_and_data[36:52] == (1).to_bytes(16, "big")
    assert paymaster_and_data[52:] == bytes.fromhex("abcdef")


def test_init_code_uses_delegate_address(operation):
    """The EIP-7702 marker resolves to the authorized delegate"""
    assert operation.init_code() == bytes.fromhex(SIMPLE_7702_ACCOUNT[2:])


def test_to_rpc_shape(operation):
    rpc = operation.to_rpc()

    assert rpc["sender"] == SENDER
    assert rpc["nonce"] == "0x3"
    assert rpc["factory"] == "0x7702"
    assert rpc["factoryData"] == "0x"
    assert rpc["callGasLimit"] == "0x10000"
    assert rpc["maxFeePerGas"] == "0x3b9aca00"
    assert rpc["paymaster"] == Web3.to_checksum_address(TEST_PAYMASTER)
    assert rpc["paymasterData"] == "0xabcdef"
    assert rpc["eip7702Auth"] == {
        "address": DELEGATE,
        "chainId": hex(TEST_CHAIN_ID),
        "nonce": "0x5",
        "r": hex(12345),
        "s": hex(67890),
        "yParity": "0x1",
    }
    assert rpc["signature"] == DUMMY_SIGNATURE


def test_to_rpc_omits_unset_optional_fields():
    rpc = UserOperationBuilder(SENDER, TEST_CHAIN_ID).build(call_data="0x", nonce=0).to_rpc()
    for key in ("factory", "factoryData", "paymaster", "paymasterData", "eip7702Auth"):
        assert key not in rpc


def test_hash_matches_eip712_typed_data(operation):
    """The v0.8 hash equals the EIP-712 digest of PackedUserOperation"""
    signable = encode_typed_data(full_message={
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "PackedUserOperation": [
                {"name": "sender", "type": "address"},
                {"name": "nonce", "type": "uint256"},
                {"name": "initCode", "type": "bytes"},
                {"name": "callData", "type": "bytes"},
                {"name": "accountGasLimits", "type": "bytes32"},
                {"name": "preVerificationGas", "type": "uint256"},
                {"name": "gasFees", "type": "bytes32"},
                {"name": "paymasterAndData", "type": "bytes"},
            ],
        },
        "primaryType": "PackedUserOperation",
        "domain": {
            "name": "ERC4337",
            "version": "1",
            "chainId": TEST_CHAIN_ID,
            "verifyingContract": ENTRY_POINT_08,
        },
        "message": {
            "sender": operation.sender,
            "nonce": operation.nonce,
            "initCode": operation.init_code(),
            "callData": bytes.fromhex(operation.call_data[2:]),
            "accountGasLimits": operation.account_gas_limits(),
            "preVerificationGas": operation.pre_verification_gas,
            "gasFees": operation.gas_fees(),
            "paymasterAndData": operation.paymaster_and_data(),
        },
    })
    expected = bytes(Web3.keccak(b"\x19" + signable.version + signable.header + signable.body))

    assert compute_user_operation_hash(operation, TEST_CHAIN_ID) == expected


def test_v07_hash_layout(operation):
    """v0.7 hashes the packed fields with the entry point and chain id"""
    packed = encode(
        ["address", "uint256", "bytes32", "bytes32", "bytes32", "uint256", "bytes32", "bytes32"],
        [
            operation.sender,
            operation.nonce,
            bytes(Web3.keccak(operation.init_code())),
            bytes(Web3.keccak(bytes.fromhex(operation.call_data[2:]))),
            operation.account_gas_limits(),
            operation.pre_verification_gas,
            operation.gas_fees(),
            bytes(Web3.keccak(operation.paymaster_and_data())),
        ],
    )
    expected = bytes(Web3.keccak(encode(
        ["bytes32", "address", "uint256"],
        [bytes(Web3.keccak(packed)), ENTRY_POINT_07, TEST_CHAIN_ID],
    )))

    assert compute_user_operation_hash(operation, TEST_CHAIN_ID, version="0.7") == expected


def test_hash_is_deterministic_and_ignores_signature(operation):
    first = compute_user_operation_hash(operation, TEST_CHAIN_ID)
    signed = operation.with_signature("0x" + "11" * 65)

    assert len(first) == 32
    assert compute_user_operation_hash(operation, TEST_CHAIN_ID) == first
    assert compute_user_operation_hash(signed, TEST_CHAIN_ID) == first


@pytest.mark.parametrize("update", [
    {"nonce": 4},
    {"call_data": "0xb61d27f7"},
    {"call_gas_limit": 65_537},
    {"max_fee_per_gas": 1_000_000_001},
    {"paymaster_data": "0xabcdee"},
    {"pre_verification_gas": 50_001},
])
def test_hash_changes_with_any_field(operation, update):
    """Changing any hashed field produces a different hash"""
    changed = operation.model_copy(update=update)
    assert compute_user_operation_hash(changed, TEST_CHAIN_ID) != compute_user_operation_hash(operation, TEST_CHAIN_ID)


def test_hash_binds_chain_and_version(operation):
    base = compute_user_operation_hash(operation, TEST_CHAIN_ID)
    assert compute_user_operation_hash(operation, 137) != base
    assert compute_user_operation_hash(operation, TEST_CHAIN_ID, version="0.7") != base


def test_unknown_entry_point_version(operation):
    with pytest.raises(ValueError, match="Unsupported entry point version"):
        compute_user_operation_hash(operation, TEST_CHAIN_ID, version="0.6")


def test_builder_compute_hash_uses_builder_version(operation):
    builder = UserOperationBuilder(SENDER, TEST_CHAIN_ID, entry_point_version="0.7")
    assert builder.entry_point == ENTRY_POINT_V07
    assert builder.compute_hash(operation) == compute_user_operation_hash(operation, TEST_CHAIN_ID, version="0.7")


def test_operation_accepts_rpc_aliases():
    op = UserOperation(sender=SENDER, callData="0x1234", callGasLimit=10, maxFeePerGas=2)
    assert op.call_data == "0x1234"
    assert op.call_gas_limit == 10
    assert op.max_fee_per_gas == 2
