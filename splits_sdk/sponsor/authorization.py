"""
EIP-7702 delegation authorization, created lazily once per session.
"""
import logging
from typing import Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..contracts import SIMPLE_7702_ACCOUNT
from ..utils import to_checksum
from .models import Authorization


class AuthorizationManager:
    """
    Creates and caches the operator's delegation authorization.

    The authorization is bound to the signer's base-layer nonce, which does
    not move while UserOperations are submitted, so one authorization serves
    every sequential deployment made through the same manager.
    """

    def __init__(
        self,
        account: LocalAccount,
        chain_id: int,
        w3: Web3,
        delegate_address: str = SIMPLE_7702_ACCOUNT,
        logger: Optional[logging.Logger] = None,
    ):
        self.account = account
        self.chain_id = chain_id
        self.w3 = w3
        self.delegate_address = to_checksum(delegate_address)
        self.logger = logger or logging.getLogger(__name__)
        self._authorization: Optional[Authorization] = None

    @property
    def authorization(self) -> Optional[Authorization]:
        """The cached authorization, or None if none was created yet"""
        return self._authorization

    def get_or_create(self) -> Authorization:
        """
        Return the session's authorization, signing it on first use.

        Returns:
            The cached Authorization
        """
        if self._authorization is not None:
            return self._authorization

        eoa_nonce = self._eoa_nonce()
        # Bundlers require chainId to match the target chain (0 is not accepted)
        signed = self.account.sign_authorization({
            "chainId": self.chain_id,
            "address": self.delegate_address,
            "nonce": eoa_nonce,
        })
        self._authorization = Authorization(
            address=signed.address,
            chain_id=signed.chain_id,
            nonce=signed.nonce,
            y_parity=signed.y_parity,
            r=signed.r,
            s=signed.s,
        )
        self.logger.info(
            "authorization-created: delegate=%s chain_id=%s nonce=%s",
            self._authorization.address, self.chain_id, eoa_nonce,
        )
        return self._authorization

    def _eoa_nonce(self) -> int:
        try:
            return int(self.w3.eth.get_transaction_count(self.account.address))
        except Exception as e:
            # A wrong nonce only makes the bundler reject the delegation
            self.logger.warning(
                f"Failed to read transaction count for {self.account.address}, "
                f"signing authorization with nonce 0: {e}"
            )
            return 0
