"""
Creation of 0xSplits V2 push split contracts.
"""
import logging
from typing import Any, Optional, Tuple

import requests
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .contracts import FACTORY_ABI, PREDICT_ADDRESS_SIGNATURE, contract_address
from .encoding import encode_create_split_call
from .exceptions import CreationError, SplitsError
from .models import CreateSplitConfig, CreateSplitResult
from .sponsor.service import SponsoredDeploymentService
from .transactions import default_fees, send_contract_transaction
from .utils import hex_to_bytes32, to_checksum
from .validation import CreationValidator

CREATE_GAS_LIMIT = 300_000


class CreationService:
    """
    Creates split contracts, either paying gas directly or through a sponsor.

    The split address is deterministic (CREATE2 over params, owner and salt),
    so creating an existing split returns it without sending anything.
    """

    def __init__(
        self,
        chain_id: int,
        w3: Web3,
        account: LocalAccount,
        sponsor: Optional[SponsoredDeploymentService] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the CreationService

        Args:
            chain_id: Target chain id
            w3: Web3 connected to the target chain
            account: Operator account (split owner and creator)
            sponsor: Sponsored deployment session; when set, creation is gasless
            session: HTTP session for gas station lookups
            logger: Optional logger instance
        """
        self.chain_id = chain_id
        self.w3 = w3
        self.account = account
        self.sponsor = sponsor
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self.factory_address = contract_address("push_factory", chain_id)

    @property
    def factory(self):
        return self.w3.eth.contract(address=self.factory_address, abi=FACTORY_ABI)

    def create(self, config: CreateSplitConfig) -> CreateSplitResult:
        """
        Create a split contract

        Args:
            config: Recipients, salt and distributor fee

        Returns:
            CreateSplitResult with the split address

        Raises:
            SplitConfigError: If the configuration is invalid
            CreationError: If deployment fails
        """
        CreationValidator(config).validate()

        params = config.split_params()
        owner = self.account.address
        salt = hex_to_bytes32(config.salt)

        try:
            existing, deployed = self.is_deployed(params, owner, salt)
            if deployed:
                self.logger.info(f"Split already deployed at {existing}")
                return CreateSplitResult(split_address=existing, already_existed=True)

            split_address = self.predict_address(params, owner, salt)
            if self.sponsor is not None:
                return self._create_sponsored(params, owner, salt, split_address)
            return self._create_direct(params, owner, salt, split_address)
        except CreationError:
            raise
        except SplitsError as e:
            raise CreationError(str(e)) from e
        except Exception as e:
            self.logger.error(f"Unexpected error during split creation: {e}")
            raise CreationError(f"Split creation failed: {e}") from e

    def predict_address(self, params: Tuple[Any, ...], owner: str, salt: bytes) -> str:
        fn = self.factory.get_function_by_signature(PREDICT_ADDRESS_SIGNATURE)
        return to_checksum(fn(params, owner, salt).call())

    def is_deployed(self, params: Tuple[Any, ...], owner: str, salt: bytes) -> Tuple[str, bool]:
        address, exists = self.factory.functions.isDeployed(params, owner, salt).call()
        return to_checksum(address), bool(exists)

    def _create_direct(self, params, owner: str, salt: bytes, split_address: str) -> CreateSplitResult:
        fees = default_fees(self.chain_id, session=self.session, log=self.logger)
        receipt = send_contract_transaction(
            self.w3,
            self.account,
            self.factory.functions.createSplitDeterministic(params, owner, owner, salt),
            self.chain_id,
            CREATE_GAS_LIMIT,
            fees,
            log=self.logger,
        )
        return CreateSplitResult(
            split_address=split_address,
            transaction_hash=receipt.tx_hash,
            block_number=receipt.block_number,
        )

    def _create_sponsored(self, params, owner: str, salt: bytes, split_address: str) -> CreateSplitResult:
        call_data = encode_create_split_call(self.factory_address, params, owner, owner, salt)
        result = self.sponsor.deploy(call_data)
        if not result.success:
            message = f"Sponsored deployment failed: {result.error}"
            if result.timed_out:
                message += f" (user operation {result.user_op_hash} may still be mined)"
            raise CreationError(message)
        return CreateSplitResult(
            split_address=split_address,
            transaction_hash=result.transaction_hash,
            block_number=result.block_number,
            user_op_hash=result.user_op_hash,
            sponsored=True,
        )
