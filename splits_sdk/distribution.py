"""
Distribution of split balances to recipients.
"""
import logging
from typing import Optional

import requests
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .contracts import DISTRIBUTE_SIGNATURE, PUSH_SPLIT_ABI
from .encoding import encode_distribute_call
from .events import decode_transfer_events
from .exceptions import DistributionError, SplitsError
from .models import DistributeResult, SplitContractData
from .sponsor.service import SponsoredDeploymentService
from .transactions import default_fees, send_contract_transaction
from .utils import to_checksum

DISTRIBUTE_GAS_LIMIT = 200_000


class DistributionService:
    """Pushes a split's token balance out to its recipients"""

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        sponsor: Optional[SponsoredDeploymentService] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.w3 = w3
        self.account = account
        self.sponsor = sponsor
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def distribute(self, split_contract: SplitContractData, token_address: str) -> DistributeResult:
        """
        Distribute ``token_address`` held by the split

        Args:
            split_contract: The split's on-chain parameters
            token_address: ERC-20 token to distribute

        Returns:
            DistributeResult with the decoded Transfer events

        Raises:
            DistributionError: If the distribution fails
        """
        params = split_contract.split_params()
        distributor = self.account.address

        try:
            token = to_checksum(token_address)
            if self.sponsor is not None:
                result = self._distribute_sponsored(split_contract, params, token, distributor)
            else:
                result = self._distribute_direct(split_contract, params, token, distributor)
        except DistributionError:
            raise
        except SplitsError as e:
            raise DistributionError(str(e)) from e
        except Exception as e:
            self.logger.error(f"Unexpected error during distribution: {e}")
            raise DistributionError(f"Distribution failed: {e}") from e

        self.logger.info(f"Distribution successful: {result.transaction_hash}")
        return result

    def _distribute_direct(self, split_contract, params, token: str, distributor: str) -> DistributeResult:
        contract = self.w3.eth.contract(address=split_contract.contract_address, abi=PUSH_SPLIT_ABI)
        fn = contract.get_function_by_signature(DISTRIBUTE_SIGNATURE)
        receipt = send_contract_transaction(
            self.w3,
            self.account,
            fn(params, token, distributor),
            split_contract.chain_id,
            DISTRIBUTE_GAS_LIMIT,
            default_fees(split_contract.chain_id, session=self.session, log=self.logger),
            log=self.logger,
        )
        return DistributeResult(
            transaction_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            distributions=decode_transfer_events(receipt.logs, token),
        )

    def _distribute_sponsored(self, split_contract, params, token: str, distributor: str) -> DistributeResult:
        call_data = encode_distribute_call(split_contract.contract_address, params, token, distributor)
        result = self.sponsor.deploy(call_data)
        if not result.success:
            message = f"Sponsored distribution failed: {result.error}"
            if result.timed_out:
                message += f" (user operation {result.user_op_hash} may still be mined)"
            raise DistributionError(message)
        return DistributeResult(
            transaction_hash=result.transaction_hash,
            user_op_hash=result.user_op_hash,
            block_number=result.block_number,
            distributions=decode_transfer_events(result.receipt.logs, token),
            sponsored=True,
        )
