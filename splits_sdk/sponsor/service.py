"""
Sponsored deployment through an ERC-4337 bundler and paymaster.

The operator EOA delegates to a smart account implementation via EIP-7702
and submits the contract call as a UserOperation whose gas is paid by the
paymaster. Stages run strictly in order:

    authorization -> nonce -> build -> price -> estimate -> sponsor -> sign -> submit -> poll
"""
import logging
import time
from typing import Optional, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..config import bundler_url as default_bundler_url
from ..contracts import ENTRY_POINTS, SIMPLE_7702_ACCOUNT
from ..exceptions import BundlerError, ConfigurationError, ResponseDecodingError
from .authorization import AuthorizationManager
from .bundler import BundlerClient
from .models import DeploymentResult
from .nonce import resolve_user_operation_nonce
from .signer import sign_user_operation
from .user_operation import ENTRY_POINT_VERSION, UserOperation, UserOperationBuilder

MAX_RECEIPT_ATTEMPTS = 30
RECEIPT_POLL_DELAY = 2


class SponsoredDeploymentService:
    """
    One sponsorship session: a single operator key on a single chain.

    The delegation authorization is created on the first deployment and
    reused by every later deployment made through the same instance.
    """

    def __init__(
        self,
        operator_key: str,
        chain_id: int,
        rpc_url: Optional[str] = None,
        paymaster_api_key: Optional[str] = None,
        sponsorship_policy_id: Optional[str] = None,
        bundler: Optional[BundlerClient] = None,
        bundler_url: Optional[str] = None,
        w3: Optional[Web3] = None,
        delegate_address: str = SIMPLE_7702_ACCOUNT,
        entry_point_version: str = ENTRY_POINT_VERSION,
        max_receipt_attempts: int = MAX_RECEIPT_ATTEMPTS,
        receipt_poll_delay: float = RECEIPT_POLL_DELAY,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the service

        Args:
            operator_key: Operator private key
            chain_id: Target chain id
            rpc_url: Base-chain RPC URL (required unless ``w3`` is given)
            paymaster_api_key: Bundler API key (required unless ``bundler`` or ``bundler_url`` is given)
            sponsorship_policy_id: Optional sponsorship policy to validate and sponsor under
            bundler: Pre-built bundler client
            bundler_url: Bundler endpoint override
            w3: Pre-built Web3 instance
            delegate_address: Smart account implementation the EOA delegates to
            entry_point_version: ``"0.8"`` (required for EIP-7702) or ``"0.7"``
            max_receipt_attempts: Receipt polls before giving up
            receipt_poll_delay: Seconds between receipt polls
            logger: Optional logger instance

        Raises:
            ConfigurationError: If the operator key is missing or invalid, or
                no RPC/bundler endpoint can be derived, or the entry point
                version is unknown
        """
        if not operator_key or not str(operator_key).strip():
            raise ConfigurationError("Operator key must be provided")
        try:
            self.account: LocalAccount = Account.from_key(operator_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid operator key: {e}") from e
        if entry_point_version not in ENTRY_POINTS:
            raise ConfigurationError(
                f"Unsupported entry point version {entry_point_version!r}; expected one of {sorted(ENTRY_POINTS)}"
            )

        self.logger = logger or logging.getLogger(__name__)
        self.chain_id = chain_id
        self.operator_address = self.account.address
        self.sponsorship_policy_id = sponsorship_policy_id
        self.entry_point_version = entry_point_version
        self.max_receipt_attempts = max_receipt_attempts
        self.receipt_poll_delay = receipt_poll_delay

        if w3 is None:
            if not rpc_url:
                raise ConfigurationError(f"RPC URL for chain_id {chain_id} not configured")
            w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.w3 = w3

        if bundler is None:
            bundler = BundlerClient(
                default_bundler_url(chain_id, paymaster_api_key, bundler_url),
                logger=self.logger,
            )
        self.bundler = bundler

        self.builder = UserOperationBuilder(self.operator_address, chain_id, entry_point_version)
        self.authorizations = AuthorizationManager(
            self.account, chain_id, self.w3, delegate_address, logger=self.logger
        )

    def deploy(self, call_data: Union[str, bytes]) -> DeploymentResult:
        """
        Run the sponsored pipeline for ``call_data``.

        Args:
            call_data: Smart-account ``execute`` call data (see ``splits_sdk.encoding``)

        Returns:
            A success-shaped result with the transaction hash, or an
            error-shaped result (including a confirmation timeout)
        """
        self.logger.info(f"Starting sponsored deployment for {self.operator_address} on chain {self.chain_id}")

        try:
            user_op_hash = self.submit(call_data)
        except BundlerError as e:
            self.logger.error(f"Sponsored deployment failed: {e}")
            return DeploymentResult.failed(str(e))

        return self.wait_for_receipt(user_op_hash)

    def prepare(self, call_data: Union[str, bytes]) -> UserOperation:
        """
        Build, price, estimate, sponsor and sign an operation without submitting it.

        Raises:
            BundlerError: If pricing, estimation or sponsorship fails
        """
        authorization = self.authorizations.get_or_create()

        nonce = resolve_user_operation_nonce(
            self.w3, self.builder.entry_point, self.operator_address, log=self.logger
        )
        self.logger.info("nonce-resolved: sender=%s nonce=%s", self.operator_address, nonce)

        operation = self.builder.build(call_data=call_data, nonce=nonce, authorization=authorization)

        try:
            price = self.bundler.get_gas_price().select_tier()
        except BundlerError as e:
            raise BundlerError(f"Gas price fetch failed: {e}", code=e.code, data=e.data, method=e.method) from e
        operation = operation.with_gas_price(price)
        self.logger.info(
            "gas-priced: maxFeePerGas=%s maxPriorityFeePerGas=%s",
            price.max_fee_per_gas, price.max_priority_fee_per_gas,
        )

        try:
            estimate = self.bundler.estimate_user_operation_gas(operation, self.entry_point_version)
        except BundlerError as e:
            raise BundlerError(f"Gas estimation failed: {e}", code=e.code, data=e.data, method=e.method) from e
        operation = operation.with_gas_estimate(estimate)
        self.logger.info(
            "estimated: callGasLimit=%s verificationGasLimit=%s preVerificationGas=%s",
            estimate.call_gas_limit, estimate.verification_gas_limit, estimate.pre_verification_gas,
        )

        if self.sponsorship_policy_id:
            self._validate_policy(operation)

        sponsorship = self.bundler.sponsor_user_operation(
            operation, self.entry_point_version, sponsorship_policy_id=self.sponsorship_policy_id
        )
        operation = operation.with_sponsorship(sponsorship)
        self.logger.info("sponsored: paymaster=%s", sponsorship.paymaster)

        signed = sign_user_operation(self.account, self.builder, operation)
        self.logger.info("signed: sender=%s nonce=%s", signed.sender, signed.nonce)
        return signed

    def submit(self, call_data: Union[str, bytes]) -> str:
        """
        Prepare and submit an operation.

        Returns:
            The user operation hash reported by the bundler
        """
        operation = self.prepare(call_data)
        user_op_hash = self.bundler.send_user_operation(operation, self.entry_point_version)
        self.logger.info("submitted: user_op_hash=%s", user_op_hash)
        return user_op_hash

    def wait_for_receipt(self, user_op_hash: str) -> DeploymentResult:
        """
        Poll for the operation's receipt.

        Sleeps ``receipt_poll_delay`` seconds between polls, at most
        ``max_receipt_attempts`` polls. A poll that errors counts as "not yet";
        a receipt that cannot be decoded ends the wait.

        Returns:
            Success with the mined transaction hash, or a timeout result that
            keeps the user operation hash
        """
        for attempt in range(1, self.max_receipt_attempts + 1):
            self.logger.debug("poll-attempt: user_op_hash=%s attempt=%s", user_op_hash, attempt)
            try:
                receipt = self.bundler.get_user_operation_receipt(user_op_hash)
            except ResponseDecodingError as e:
                self.logger.error(f"Receipt for {user_op_hash} could not be decoded: {e}")
                return DeploymentResult.failed(str(e), user_op_hash=user_op_hash)
            except BundlerError as e:
                self.logger.warning(f"Receipt poll {attempt} for {user_op_hash} failed: {e}")
                receipt = None

            if receipt is not None:
                if receipt.transaction_hash is None:
                    self.logger.warning(
                        f"Receipt for {user_op_hash} has no transaction hash; reporting the user operation hash"
                    )
                result = DeploymentResult.confirmed(user_op_hash, receipt)
                self.logger.info(
                    "confirmed: user_op_hash=%s tx_hash=%s block=%s",
                    user_op_hash, result.transaction_hash, result.block_number,
                )
                return result

            if attempt < self.max_receipt_attempts:
                time.sleep(self.receipt_poll_delay)

        self.logger.warning(
            "timed-out: user_op_hash=%s not confirmed after %s attempts",
            user_op_hash, self.max_receipt_attempts,
        )
        return DeploymentResult.timeout(user_op_hash, self.max_receipt_attempts)

    def _validate_policy(self, operation: UserOperation) -> None:
        # Advisory only: the sponsorship request decides
        try:
            valid = self.bundler.validate_sponsorship_policies(
                operation, [self.sponsorship_policy_id], self.entry_point_version
            )
        except BundlerError as e:
            self.logger.warning(f"Sponsorship policy validation failed for {self.sponsorship_policy_id}: {e}")
            return
        if not valid:
            self.logger.warning(f"Sponsorship policy {self.sponsorship_policy_id} rejected the operation")
        else:
            self.logger.debug("Sponsorship policy %s validated", self.sponsorship_policy_id)
