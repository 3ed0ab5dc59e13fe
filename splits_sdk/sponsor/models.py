"""
Data models for the sponsored UserOperation pipeline.

Bundler responses are parsed into these models before they touch a
UserOperation. Keys are accepted either in the bundler's camelCase or in
snake_case; unknown keys are ignored and missing required keys are a
decoding error.
"""
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..exceptions import ResponseDecodingError
from ..utils import to_checksum, to_hex, to_hex_quantity, to_int


class _RpcModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_rpc(cls, data: Any, method: Optional[str] = None):
        """
        Parse an RPC result into this model.

        Raises:
            ResponseDecodingError: If the result does not match the schema
        """
        if not isinstance(data, dict):
            raise ResponseDecodingError(
                f"Expected an object from {method or 'bundler'}, got {type(data).__name__}",
                method=method,
                data=data,
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ResponseDecodingError(
                f"Malformed {cls.__name__} response from {method or 'bundler'}: {e}",
                method=method,
                data=data,
            ) from e


class Authorization(BaseModel):
    """
    Signed EIP-7702 delegation authorization.

    Lets the operator EOA execute as ``address`` (the delegate account
    implementation) on ``chain_id``.
    """
    address: str
    chain_id: int
    nonce: int
    y_parity: int
    r: int
    s: int

    model_config = ConfigDict(frozen=True)

    @field_validator("address", mode="before")
    @classmethod
    def _checksum(cls, value: Any) -> str:
        return to_checksum(value)

    def to_rpc(self) -> Dict[str, str]:
        """Render as the bundler's ``eip7702Auth`` object."""
        return {
            "address": self.address,
            "chainId": to_hex_quantity(self.chain_id),
            "nonce": to_hex_quantity(self.nonce),
            "r": to_hex_quantity(self.r),
            "s": to_hex_quantity(self.s),
            "yParity": to_hex_quantity(self.y_parity),
        }


class GasPrice(_RpcModel):
    """EIP-1559 fee fields for one pricing tier"""
    max_fee_per_gas: int = Field(..., alias="maxFeePerGas")
    max_priority_fee_per_gas: int = Field(..., alias="maxPriorityFeePerGas")

    @field_validator("max_fee_per_gas", "max_priority_fee_per_gas", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> int:
        return to_int(value)


class GasPriceTiers(BaseModel):
    """Named fee tiers returned by the bundler, in response order"""
    tiers: Dict[str, GasPrice]

    PREFERRED_TIER: ClassVar[str] = "standard"

    @classmethod
    def from_rpc(cls, data: Any, method: Optional[str] = None) -> "GasPriceTiers":
        if not isinstance(data, dict) or not data:
            raise ResponseDecodingError(
                f"Expected fee tiers from {method or 'bundler'}, got {data!r}",
                method=method,
                data=data,
            )
        tiers = {}
        for name, tier in data.items():
            tiers[str(name)] = GasPrice.from_rpc(tier, method=method)
        return cls(tiers=tiers)

    def select_tier(self) -> GasPrice:
        """Return the ``standard`` tier, or the first tier if it is absent."""
        if self.PREFERRED_TIER in self.tiers:
            return self.tiers[self.PREFERRED_TIER]
        return next(iter(self.tiers.values()))


class GasEstimate(_RpcModel):
    """Gas limits returned by ``eth_estimateUserOperationGas``"""
    call_gas_limit: int = Field(..., alias="callGasLimit")
    verification_gas_limit: int = Field(..., alias="verificationGasLimit")
    pre_verification_gas: int = Field(..., alias="preVerificationGas")
    paymaster_verification_gas_limit: Optional[int] = Field(None, alias="paymasterVerificationGasLimit")
    paymaster_post_op_gas_limit: Optional[int] = Field(None, alias="paymasterPostOpGasLimit")

    @field_validator(
        "call_gas_limit",
        "verification_gas_limit",
        "pre_verification_gas",
        "paymaster_verification_gas_limit",
        "paymaster_post_op_gas_limit",
        mode="before",
    )
    @classmethod
    def _parse_quantity(cls, value: Any) -> Optional[int]:
        return None if value is None else to_int(value)


class SponsorshipData(_RpcModel):
    """Paymaster fields returned by ``pm_sponsorUserOperation``"""
    paymaster: str
    paymaster_data: str = Field("0x", alias="paymasterData")
    paymaster_verification_gas_limit: int = Field(0, alias="paymasterVerificationGasLimit")
    paymaster_post_op_gas_limit: int = Field(0, alias="paymasterPostOpGasLimit")
    # Paymasters may re-estimate the account gas limits with paymaster code in the loop
    call_gas_limit: Optional[int] = Field(None, alias="callGasLimit")
    verification_gas_limit: Optional[int] = Field(None, alias="verificationGasLimit")
    pre_verification_gas: Optional[int] = Field(None, alias="preVerificationGas")

    @field_validator("paymaster", mode="before")
    @classmethod
    def _checksum(cls, value: Any) -> str:
        return to_checksum(value)

    @field_validator("paymaster_data", mode="before")
    @classmethod
    def _hex_data(cls, value: Any) -> str:
        return "0x" if value is None else to_hex(value)

    @field_validator(
        "paymaster_verification_gas_limit",
        "paymaster_post_op_gas_limit",
        mode="before",
    )
    @classmethod
    def _parse_required_quantity(cls, value: Any) -> int:
        return to_int(value)

    @field_validator("call_gas_limit", "verification_gas_limit", "pre_verification_gas", mode="before")
    @classmethod
    def _parse_optional_quantity(cls, value: Any) -> Optional[int]:
        return None if value is None else to_int(value)


class UserOperationReceipt(_RpcModel):
    """Receipt returned by ``eth_getUserOperationReceipt`` once the operation is mined"""
    user_op_hash: str = Field(..., alias="userOpHash")
    success: bool = True
    reason: Optional[str] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    logs: List[Dict[str, Any]] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flatten_inner_receipt(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        values = dict(data)
        inner = data.get("receipt") or {}
        if isinstance(inner, dict):
            values.setdefault("transaction_hash", inner.get("transactionHash"))
            values.setdefault("block_number", inner.get("blockNumber"))
            values.setdefault("block_hash", inner.get("blockHash"))
            # Top-level logs belong to this operation; the inner receipt covers the whole bundle
            if data.get("logs") is None and "logs" in inner:
                values["logs"] = inner["logs"]
        values["raw"] = data
        return values

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block(cls, value: Any) -> Optional[int]:
        return None if value is None else to_int(value)


class DeploymentResult(BaseModel):
    """
    Terminal outcome of the sponsored pipeline.

    Either success-shaped (transaction hash, no error) or error-shaped
    (error, no transaction hash). A confirmation timeout is error-shaped with
    ``timed_out`` set and the user operation hash preserved so the caller can
    check later.
    """
    success: bool
    transaction_hash: Optional[str] = None
    user_op_hash: Optional[str] = None
    block_number: Optional[int] = None
    receipt: Optional[UserOperationReceipt] = None
    error: Optional[str] = None
    timed_out: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_exclusive(self) -> "DeploymentResult":
        if self.success:
            if self.error is not None or self.timed_out:
                raise ValueError("A successful deployment cannot carry an error")
            if not self.transaction_hash or not self.user_op_hash:
                raise ValueError("A successful deployment needs transaction and user operation hashes")
        else:
            if not self.error:
                raise ValueError("A failed deployment needs an error message")
            if self.transaction_hash is not None or self.receipt is not None:
                raise ValueError("A failed deployment cannot carry a transaction hash or receipt")
        return self

    @classmethod
    def confirmed(cls, user_op_hash: str, receipt: UserOperationReceipt) -> "DeploymentResult":
        return cls(
            success=True,
            transaction_hash=receipt.transaction_hash or user_op_hash,
            user_op_hash=user_op_hash,
            block_number=receipt.block_number,
            receipt=receipt,
        )

    @classmethod
    def failed(cls, error: str, user_op_hash: Optional[str] = None) -> "DeploymentResult":
        return cls(success=False, error=error, user_op_hash=user_op_hash)

    @classmethod
    def timeout(cls, user_op_hash: str, attempts: int) -> "DeploymentResult":
        return cls(
            success=False,
            user_op_hash=user_op_hash,
            error=f"Timeout waiting for receipt after {attempts} attempts",
            timed_out=True,
        )
