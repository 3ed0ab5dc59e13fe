"""
Data models for the Splits SDK.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import to_checksum, to_int

PERCENTAGE_SCALE = 1_000_000
DISTRIBUTOR_FEE_SCALE = 10_000


class SplitRecipient(BaseModel):
    """A split recipient and its share in percent (0-100)"""
    address: str
    percent_allocation: float


class CreateSplitConfig(BaseModel):
    """Parameters for creating a split contract"""
    recipients: List[SplitRecipient]
    salt: Optional[str] = None
    distributor_fee_percent: float = 0.0

    def split_params(self):
        """
        Build the on-chain ``SplitV2Lib.Split`` tuple.

        Allocations are scaled to ``PERCENTAGE_SCALE`` and the distributor fee
        to ``DISTRIBUTOR_FEE_SCALE``.
        """
        addresses = [to_checksum(r.address) for r in self.recipients]
        allocations = [round(r.percent_allocation * PERCENTAGE_SCALE / 100) for r in self.recipients]
        incentive = round(self.distributor_fee_percent * DISTRIBUTOR_FEE_SCALE)
        return (addresses, allocations, sum(allocations), incentive)


class SplitContractData(BaseModel):
    """
    An existing split contract, as needed for a distribution.

    Recipients are always an ordered list of checksummed addresses.
    """
    chain_id: int
    contract_address: str
    recipients: List[str]
    allocations: List[int]
    distribution_incentive: int = 0

    @field_validator("contract_address")
    @classmethod
    def _checksum_contract(cls, value: str) -> str:
        return to_checksum(value)

    @field_validator("recipients")
    @classmethod
    def _checksum_recipients(cls, value: List[str]) -> List[str]:
        return [to_checksum(address) for address in value]

    def split_params(self):
        return (
            list(self.recipients),
            [int(a) for a in self.allocations],
            sum(int(a) for a in self.allocations),
            int(self.distribution_incentive or 0),
        )


class TransferEvent(BaseModel):
    """A decoded ERC-20 Transfer emitted during a distribution"""
    from_address: str = Field(..., alias="from")
    to_address: str = Field(..., alias="to")
    value: int
    value_formatted: float

    model_config = ConfigDict(populate_by_name=True)


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("block_number", "status", "gas_used", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> int:
        return to_int(value)


class CreateSplitResult(BaseModel):
    """Result of a split creation"""
    split_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    user_op_hash: Optional[str] = None
    already_existed: bool = False
    sponsored: bool = False

    @property
    def success(self) -> bool:
        return self.split_address is not None


class DistributeResult(BaseModel):
    """Result of a distribution"""
    transaction_hash: Optional[str] = None
    user_op_hash: Optional[str] = None
    block_number: Optional[int] = None
    distributions: List[TransferEvent] = Field(default_factory=list)
    sponsored: bool = False

    @property
    def success(self) -> bool:
        return self.transaction_hash is not None
