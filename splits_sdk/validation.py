"""
Validation of split creation parameters.
"""
from .exceptions import InvalidAddressError, SplitConfigError
from .models import CreateSplitConfig
from .utils import hex_to_bytes32, to_checksum

PERCENTAGE_TOLERANCE = (99.9, 100.1)
FEE_RANGE = (0.0, 10.0)


class CreationValidator:
    """Checks a CreateSplitConfig before anything is sent on-chain"""

    def __init__(self, config: CreateSplitConfig):
        self.config = config

    def validate(self) -> bool:
        """
        Validate the configuration

        Raises:
            SplitConfigError: If any check fails
        """
        self._validate_recipients()
        self._validate_salt()
        self._validate_total_allocation()
        self._validate_distributor_fee()
        return True

    def _validate_recipients(self) -> None:
        if not self.config.recipients:
            raise SplitConfigError("Recipients required")
        for recipient in self.config.recipients:
            if not recipient.address or not recipient.address.strip():
                raise SplitConfigError("Recipient address is required")
            try:
                to_checksum(recipient.address)
            except InvalidAddressError as e:
                raise SplitConfigError(f"Invalid Ethereum address format: {recipient.address} - {e}")

    def _validate_salt(self) -> None:
        if not self.config.salt:
            raise SplitConfigError("Salt required")
        try:
            hex_to_bytes32(self.config.salt)
        except ValueError as e:
            raise SplitConfigError(f"Salt must be a hex string of at most 32 bytes: {e}")

    def _validate_total_allocation(self) -> None:
        total = sum(r.percent_allocation for r in self.config.recipients)
        low, high = PERCENTAGE_TOLERANCE
        if not low <= total <= high:
            raise SplitConfigError(f"Total allocation must be ~100%, got {total}")

    def _validate_distributor_fee(self) -> None:
        fee = self.config.distributor_fee_percent or 0
        low, high = FEE_RANGE
        if not low <= fee <= high:
            raise SplitConfigError(f"Distributor fee must be 0-10%, got {fee}")
