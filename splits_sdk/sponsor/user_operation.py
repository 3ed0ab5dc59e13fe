"""
ERC-4337 UserOperation record, builder and canonical hash.

The hash must match the entry point contract's own derivation byte for
byte, otherwise the bundler rejects the signature during validation.
"""
from typing import Any, Dict, Optional, Union

from eth_abi import encode
from pydantic import BaseModel, ConfigDict, Field
from web3 import Web3

from ..contracts import ENTRY_POINTS
from ..utils import hex_to_bytes, to_checksum, to_hex, to_hex_quantity
from .models import Authorization, GasEstimate, GasPrice, SponsorshipData

ENTRY_POINT_VERSION = "0.8"

# Factory marker telling the entry point the sender is an EIP-7702 delegated EOA
EIP7702_FACTORY_MARKER = "0x7702"
_EIP7702_INITCODE_MARKER = bytes.fromhex("7702").ljust(20, b"\x00")

# Well-formed ECDSA signature used while the operation is simulated
DUMMY_SIGNATURE = (
    "0xfffffffffffffffffffffffffffffff0000000000000000000000000000000007"
    "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa1c"
)

PACKED_USER_OPERATION_TYPEHASH = Web3.keccak(
    text=(
        "PackedUserOperation(address sender,uint256 nonce,bytes initCode,"
        "bytes callData,bytes32 accountGasLimits,uint256 preVerificationGas,"
        "bytes32 gasFees,bytes paymasterAndData)"
    )
)
EIP712_DOMAIN_TYPEHASH = Web3.keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
EIP712_DOMAIN_NAME = "ERC4337"
EIP712_DOMAIN_VERSION = "1"


class UserOperation(BaseModel):
    """
    An unpacked (v0.7+) UserOperation.

    Field order follows the bundler RPC schema. Instances are frozen; each
    pipeline stage produces an updated copy.
    """
    sender: str
    nonce: int = 0
    factory: Optional[str] = None
    factory_data: str = Field("0x", alias="factoryData")
    call_data: str = Field("0x", alias="callData")
    call_gas_limit: int = Field(0, alias="callGasLimit")
    verification_gas_limit: int = Field(0, alias="verificationGasLimit")
    pre_verification_gas: int = Field(0, alias="preVerificationGas")
    max_fee_per_gas: int = Field(0, alias="maxFeePerGas")
    max_priority_fee_per_gas: int = Field(0, alias="maxPriorityFeePerGas")
    paymaster: Optional[str] = None
    paymaster_verification_gas_limit: int = Field(0, alias="paymasterVerificationGasLimit")
    paymaster_post_op_gas_limit: int = Field(0, alias="paymasterPostOpGasLimit")
    paymaster_data: str = Field("0x", alias="paymasterData")
    eip7702_auth: Optional[Authorization] = Field(None, alias="eip7702Auth")
    signature: str = "0x"

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def with_gas_price(self, price: GasPrice) -> "UserOperation":
        return self.model_copy(update={
            "max_fee_per_gas": price.max_fee_per_gas,
            "max_priority_fee_per_gas": price.max_priority_fee_per_gas,
        })

    def with_gas_estimate(self, estimate: GasEstimate) -> "UserOperation":
        update = {
            "call_gas_limit": estimate.call_gas_limit,
            "verification_gas_limit": estimate.verification_gas_limit,
            "pre_verification_gas": estimate.pre_verification_gas,
        }
        if estimate.paymaster_verification_gas_limit is not None:
            update["paymaster_verification_gas_limit"] = estimate.paymaster_verification_gas_limit
        if estimate.paymaster_post_op_gas_limit is not None:
            update["paymaster_post_op_gas_limit"] = estimate.paymaster_post_op_gas_limit
        return self.model_copy(update=update)

    def with_sponsorship(self, sponsorship: SponsorshipData) -> "UserOperation":
        update: Dict[str, Any] = {
            "paymaster": sponsorship.paymaster,
            "paymaster_data": sponsorship.paymaster_data,
            "paymaster_verification_gas_limit": sponsorship.paymaster_verification_gas_limit,
            "paymaster_post_op_gas_limit": sponsorship.paymaster_post_op_gas_limit,
        }
        for field in ("call_gas_limit", "verification_gas_limit", "pre_verification_gas"):
            value = getattr(sponsorship, field)
            if value is not None:
                update[field] = value
        return self.model_copy(update=update)

    def with_signature(self, signature: Union[str, bytes]) -> "UserOperation":
        return self.model_copy(update={"signature": to_hex(signature)})

    def init_code(self) -> bytes:
        """
        Packed initCode as the entry point sees it.

        For an EIP-7702 sender the marker is replaced by the delegate address
        from the authorization.
        """
        if not self.factory:
            return b""
        factory = hex_to_bytes(self.factory)
        factory_data = hex_to_bytes(self.factory_data)
        if factory.rstrip(b"\x00") == _EIP7702_INITCODE_MARKER.rstrip(b"\x00"):
            if self.eip7702_auth is None:
                return _EIP7702_INITCODE_MARKER + factory_data
            return hex_to_bytes(self.eip7702_auth.address) + factory_data
        return factory + factory_data

    def paymaster_and_data(self) -> bytes:
        if not self.paymaster:
            return b""
        return (
            hex_to_bytes(self.paymaster)
            + self.paymaster_verification_gas_limit.to_bytes(16, "big")
            + self.paymaster_post_op_gas_limit.to_bytes(16, "big")
            + hex_to_bytes(self.paymaster_data)
        )

    def account_gas_limits(self) -> bytes:
        return self.verification_gas_limit.to_bytes(16, "big") + self.call_gas_limit.to_bytes(16, "big")

    def gas_fees(self) -> bytes:
        return self.max_priority_fee_per_gas.to_bytes(16, "big") + self.max_fee_per_gas.to_bytes(16, "big")

    def to_rpc(self) -> Dict[str, Any]:
        """Render the operation in the bundler's JSON-RPC shape."""
        rpc: Dict[str, Any] = {
            "sender": self.sender,
            "nonce": to_hex_quantity(self.nonce),
        }
        if self.factory:
            rpc["factory"] = self.factory
            rpc["factoryData"] = self.factory_data
        rpc.update({
            "callData": self.call_data,
            "callGasLimit": to_hex_quantity(self.call_gas_limit),
            "verificationGasLimit": to_hex_quantity(self.verification_gas_limit),
            "preVerificationGas": to_hex_quantity(self.pre_verification_gas),
            "maxFeePerGas": to_hex_quantity(self.max_fee_per_gas),
            "maxPriorityFeePerGas": to_hex_quantity(self.max_priority_fee_per_gas),
        })
        if self.paymaster:
            rpc.update({
                "paymaster": self.paymaster,
                "paymasterVerificationGasLimit": to_hex_quantity(self.paymaster_verification_gas_limit),
                "paymasterPostOpGasLimit": to_hex_quantity(self.paymaster_post_op_gas_limit),
                "paymasterData": self.paymaster_data,
            })
        if self.eip7702_auth is not None:
            rpc["eip7702Auth"] = self.eip7702_auth.to_rpc()
        rpc["signature"] = self.signature
        return rpc


def _pack_fields(operation: UserOperation) -> list:
    return [
        to_checksum(operation.sender),
        operation.nonce,
        bytes(Web3.keccak(operation.init_code())),
        bytes(Web3.keccak(hex_to_bytes(operation.call_data))),
        operation.account_gas_limits(),
        operation.pre_verification_gas,
        operation.gas_fees(),
        bytes(Web3.keccak(operation.paymaster_and_data())),
    ]


_PACKED_TYPES = ["address", "uint256", "bytes32", "bytes32", "bytes32", "uint256", "bytes32", "bytes32"]


def domain_separator(chain_id: int, entry_point: str) -> bytes:
    return bytes(Web3.keccak(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            bytes(EIP712_DOMAIN_TYPEHASH),
            bytes(Web3.keccak(text=EIP712_DOMAIN_NAME)),
            bytes(Web3.keccak(text=EIP712_DOMAIN_VERSION)),
            chain_id,
            to_checksum(entry_point),
        ],
    )))


def compute_user_operation_hash(
    operation: UserOperation,
    chain_id: int,
    entry_point: Optional[str] = None,
    version: str = ENTRY_POINT_VERSION,
) -> bytes:
    """
    Compute the userOpHash the entry point signs over.

    v0.8 uses an EIP-712 typed-data hash over ``PackedUserOperation``;
    v0.7 hashes the packed fields together with the entry point and chain id.
    The signature field never participates.

    Args:
        operation: The fully populated operation
        chain_id: Chain the entry point lives on
        entry_point: Entry point address (defaults to the canonical one for ``version``)
        version: ``"0.8"`` or ``"0.7"``

    Returns:
        32-byte hash
    """
    if version not in ENTRY_POINTS:
        raise ValueError(f"Unsupported entry point version: {version}")
    entry_point = entry_point or ENTRY_POINTS[version]
    fields = _pack_fields(operation)

    if version == "0.7":
        packed_hash = bytes(Web3.keccak(encode(_PACKED_TYPES, fields)))
        return bytes(Web3.keccak(encode(
            ["bytes32", "address", "uint256"],
            [packed_hash, to_checksum(entry_point), chain_id],
        )))

    struct_hash = bytes(Web3.keccak(encode(
        ["bytes32"] + _PACKED_TYPES,
        [bytes(PACKED_USER_OPERATION_TYPEHASH)] + fields,
    )))
    return bytes(Web3.keccak(b"\x19\x01" + domain_separator(chain_id, entry_point) + struct_hash))


class UserOperationBuilder:
    """Assembles the initial UserOperation for an operator account on one chain."""

    def __init__(self, sender: str, chain_id: int, entry_point_version: str = ENTRY_POINT_VERSION):
        self.sender = to_checksum(sender)
        self.chain_id = chain_id
        self.entry_point_version = entry_point_version

    @property
    def entry_point(self) -> str:
        return ENTRY_POINTS[self.entry_point_version]

    def build(
        self,
        call_data: Union[str, bytes],
        nonce: int,
        authorization: Optional[Authorization] = None,
    ) -> UserOperation:
        """
        Build the initial operation with gas, fee and paymaster fields unset.

        The signature slot carries a dummy signature until the operation is
        signed so that the bundler can simulate validation.
        """
        return UserOperation(
            sender=self.sender,
            nonce=nonce,
            factory=EIP7702_FACTORY_MARKER if authorization is not None else None,
            call_data=to_hex(call_data),
            eip7702_auth=authorization,
            signature=DUMMY_SIGNATURE,
        )

    def compute_hash(self, operation: UserOperation, entry_point_version: Optional[str] = None) -> bytes:
        version = entry_point_version or self.entry_point_version
        return compute_user_operation_hash(operation, self.chain_id, ENTRY_POINTS[version], version)
