"""
SplitsClient - Main client for creating and distributing 0xSplits contracts.
"""
import logging
import secrets
from typing import Any, Dict, List, Optional, Union

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .config import PaymasterSettings, get_settings, validate_url
from .creation import CreationService
from .distribution import DistributionService
from .exceptions import ConfigurationError
from .graphql import GraphqlClient
from .models import CreateSplitConfig, CreateSplitResult, DistributeResult, SplitContractData, SplitRecipient
from .sponsor.service import SponsoredDeploymentService

RecipientInput = Union[SplitRecipient, Dict[str, Any]]


class SplitsClient:
    """
    Client for the 0xSplits V2 protocol.

    This client handles:
    1. Creating push split contracts
    2. Distributing split balances

    Both operations pay gas from the operator account unless a paymaster is
    configured, in which case they are sent as sponsored UserOperations.

    To use this client, you'll need:
    - An operator private key
    - An RPC URL per chain you operate on
    - Optionally, a paymaster API key (and sponsorship policy)
    - For distributions by address: a Splits GraphQL API key
    """

    def __init__(
        self,
        operator_key: Optional[str] = None,
        rpc_urls: Optional[Dict[int, str]] = None,
        paymaster: Optional[Union[PaymasterSettings, Dict[str, Any]]] = None,
        graphql_api_key: Optional[str] = None,
        timeout: int = 30,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the SplitsClient

        Any argument left out falls back to the global configuration
        (see ``splits_sdk.config``).

        Args:
            operator_key: Operator private key
            rpc_urls: RPC endpoint per chain id
            paymaster: Paymaster settings (``api_key``, ``sponsorship_policy_id``, ``bundler_url``)
            graphql_api_key: Splits GraphQL API key
            timeout: Timeout for HTTP requests in seconds
            logger: Optional logger instance

        Raises:
            ConfigurationError: If the operator key is missing or invalid, or
                an RPC URL is insecure
        """
        settings = get_settings()
        self.operator_key = operator_key or settings.operator_key
        self.rpc_urls = dict(rpc_urls) if rpc_urls else dict(settings.rpc_urls)
        if isinstance(paymaster, dict):
            paymaster = PaymasterSettings.model_validate(paymaster)
        self.paymaster = paymaster if paymaster is not None else settings.paymaster
        self.graphql_api_key = graphql_api_key or settings.graphql_api_key
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        if not self.operator_key or not str(self.operator_key).strip():
            raise ConfigurationError("Operator key must be provided")
        try:
            self.account: LocalAccount = Account.from_key(self.operator_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid operator key: {e}") from e

        for chain_id, url in self.rpc_urls.items():
            validate_url(f"rpc_url[{chain_id}]", url)

        self.session = requests.Session()
        self._web3: Dict[int, Web3] = {}
        self._sponsors: Dict[int, SponsoredDeploymentService] = {}
        self.splits = SplitsAccessor(self)

    @property
    def operator_address(self) -> str:
        """Checksummed operator address derived from the key"""
        return self.account.address

    @property
    def paymaster_enabled(self) -> bool:
        return bool(self.paymaster and self.paymaster.enabled)

    @property
    def sponsorship_policy_id(self) -> Optional[str]:
        return self.paymaster.sponsorship_policy_id if self.paymaster else None

    def rpc_url(self, chain_id: int) -> str:
        url = self.rpc_urls.get(chain_id)
        if not url:
            raise ConfigurationError(f"RPC URL for chain_id {chain_id} not configured")
        return url

    def web3(self, chain_id: int) -> Web3:
        if chain_id not in self._web3:
            self._web3[chain_id] = Web3(Web3.HTTPProvider(self.rpc_url(chain_id)))
        return self._web3[chain_id]

    def sponsor(self, chain_id: int) -> Optional[SponsoredDeploymentService]:
        """
        Get the sponsorship session for a chain, or None without a paymaster.

        One session per chain is kept so that its delegation authorization is
        reused across sequential operations.
        """
        if not self.paymaster_enabled:
            return None
        if chain_id not in self._sponsors:
            self._sponsors[chain_id] = SponsoredDeploymentService(
                operator_key=self.operator_key,
                chain_id=chain_id,
                paymaster_api_key=self.paymaster.api_key,
                sponsorship_policy_id=self.paymaster.sponsorship_policy_id,
                bundler_url=self.paymaster.bundler_url,
                w3=self.web3(chain_id),
                logger=self.logger,
            )
        return self._sponsors[chain_id]

    def graphql(self) -> GraphqlClient:
        if not self.graphql_api_key:
            raise ConfigurationError("Splits GraphQL API key must be set before use")
        return GraphqlClient(self.graphql_api_key, timeout=self.timeout, session=self.session, logger=self.logger)


class SplitsAccessor:
    """Split operations bound to a client (``client.splits``)"""

    def __init__(self, client: SplitsClient):
        self.client = client

    def create(
        self,
        chain_id: int,
        recipients: List[RecipientInput],
        salt: Optional[str] = None,
        distributor_fee_percent: float = 0,
    ) -> CreateSplitResult:
        """
        Create a push split

        Args:
            chain_id: Target chain id
            recipients: Recipients with ``address`` and ``percent_allocation``
            salt: 32-byte hex salt (random when omitted)
            distributor_fee_percent: Distributor incentive in percent (0-10)

        Returns:
            CreateSplitResult
        """
        config = CreateSplitConfig(
            recipients=[SplitRecipient.model_validate(r) if isinstance(r, dict) else r for r in recipients],
            salt=salt or "0x" + secrets.token_hex(32),
            distributor_fee_percent=distributor_fee_percent,
        )
        service = CreationService(
            chain_id,
            self.client.web3(chain_id),
            self.client.account,
            sponsor=self.client.sponsor(chain_id),
            session=self.client.session,
            logger=self.client.logger,
        )
        return service.create(config)

    def distribute(self, contract_address: str, chain_id: int, token_address: str) -> DistributeResult:
        """
        Distribute a token held by an existing split

        The split's recipients and allocations are fetched from the Splits API.

        Raises:
            ConfigurationError: If the split data could not be fetched
            DistributionError: If the distribution fails
        """
        split_contract = self.client.graphql().fetch_split_data(contract_address, chain_id)
        if split_contract is None:
            raise ConfigurationError(f"Could not fetch split data for {contract_address} on chain {chain_id}")
        return self.distribute_split(split_contract, token_address)

    def distribute_split(self, split_contract: SplitContractData, token_address: str) -> DistributeResult:
        """Distribute using already known split parameters"""
        chain_id = split_contract.chain_id
        service = DistributionService(
            self.client.web3(chain_id),
            self.client.account,
            sponsor=self.client.sponsor(chain_id),
            session=self.client.session,
            logger=self.client.logger,
        )
        return service.distribute(split_contract, token_address)
