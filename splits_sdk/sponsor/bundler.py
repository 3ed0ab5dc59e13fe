"""
JSON-RPC client for the bundler / paymaster service.

Every method is a single attempt: errors surface as ``BundlerError`` with the
upstream message preserved so the pipeline can report it verbatim.
"""
import itertools
import logging
from typing import Any, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import validate_url
from ..contracts import ENTRY_POINTS
from ..exceptions import BundlerError
from .models import GasEstimate, GasPriceTiers, SponsorshipData, UserOperationReceipt
from .user_operation import ENTRY_POINT_VERSION, UserOperation


class BundlerClient:
    """
    Client for an ERC-4337 bundler with paymaster extensions (Pimlico API).
    """

    def __init__(
        self,
        url: str,
        timeout: int = 30,
        connect_retries: int = 0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the BundlerClient

        Args:
            url: Bundler JSON-RPC endpoint
            timeout: Timeout for HTTP requests in seconds
            connect_retries: Retries for connection failures only. A request
                that reached the bundler is never repeated.
            session: Optional pre-configured requests session
            logger: Optional logger instance
        """
        self.url = validate_url("bundler_url", url)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._ids = itertools.count(1)

        if session is None:
            session = requests.Session()
            retries = Retry(
                total=connect_retries,
                connect=connect_retries,
                read=0,
                status=0,
                other=0,
                backoff_factor=0.5,
                allowed_methods=["POST"],
                raise_on_status=False,
            )
            session.mount("http://", HTTPAdapter(max_retries=retries))
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session

    def _rpc(self, method: str, params: List[Any]) -> Any:
        """
        Perform one JSON-RPC call.

        Raises:
            BundlerError: On transport failure, non-JSON output or an error payload
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise BundlerError(f"{method} request failed: {e}", method=method) from e

        try:
            data = response.json()
        except ValueError:
            response_text = (response.text or "")[:200]
            raise BundlerError(
                f"{method} returned HTTP {response.status_code}: {response_text}",
                code=response.status_code,
                method=method,
            )

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            if isinstance(error, dict):
                raise BundlerError(
                    str(error.get("message") or error),
                    code=error.get("code"),
                    data=error.get("data"),
                    method=method,
                )
            raise BundlerError(str(error), method=method)

        if response.status_code >= 400:
            raise BundlerError(f"{method} returned HTTP {response.status_code}", code=response.status_code, method=method)

        if not isinstance(data, dict) or "result" not in data:
            raise BundlerError(f"{method} returned no result", method=method, data=data)
        return data["result"]

    @staticmethod
    def _entry_point(version: str) -> str:
        if version not in ENTRY_POINTS:
            raise ValueError(f"Unsupported entry point version: {version}")
        return ENTRY_POINTS[version]

    def get_gas_price(self) -> GasPriceTiers:
        """Fetch the bundler's fee tiers (``pimlico_getUserOperationGasPrice``)."""
        method = "pimlico_getUserOperationGasPrice"
        return GasPriceTiers.from_rpc(self._rpc(method, []), method=method)

    def estimate_user_operation_gas(
        self,
        operation: UserOperation,
        entry_point_version: str = ENTRY_POINT_VERSION,
    ) -> GasEstimate:
        method = "eth_estimateUserOperationGas"
        result = self._rpc(method, [operation.to_rpc(), self._entry_point(entry_point_version)])
        return GasEstimate.from_rpc(result, method=method)

    def validate_sponsorship_policies(
        self,
        operation: UserOperation,
        policy_ids: List[str],
        entry_point_version: str = ENTRY_POINT_VERSION,
    ) -> List[Any]:
        """
        Ask the paymaster which of ``policy_ids`` would sponsor the operation.

        Returns:
            The policies the paymaster reports as valid
        """
        method = "pm_validateSponsorshipPolicies"
        result = self._rpc(method, [operation.to_rpc(), self._entry_point(entry_point_version), list(policy_ids)])
        if result is None:
            return []
        if not isinstance(result, list):
            raise BundlerError(f"Unexpected {method} result: {result!r}", method=method, data=result)
        return result

    def sponsor_user_operation(
        self,
        operation: UserOperation,
        entry_point_version: str = ENTRY_POINT_VERSION,
        sponsorship_policy_id: Optional[str] = None,
    ) -> SponsorshipData:
        method = "pm_sponsorUserOperation"
        params: List[Any] = [operation.to_rpc(), self._entry_point(entry_point_version)]
        if sponsorship_policy_id:
            params.append({"sponsorshipPolicyId": sponsorship_policy_id})
        return SponsorshipData.from_rpc(self._rpc(method, params), method=method)

    def send_user_operation(
        self,
        operation: UserOperation,
        entry_point_version: str = ENTRY_POINT_VERSION,
    ) -> str:
        """
        Submit a signed operation.

        Returns:
            The user operation hash
        """
        method = "eth_sendUserOperation"
        result = self._rpc(method, [operation.to_rpc(), self._entry_point(entry_point_version)])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise BundlerError(f"Bundler returned invalid user operation hash: {result!r}", method=method, data=result)
        return result

    def get_user_operation_receipt(self, user_op_hash: str) -> Optional[UserOperationReceipt]:
        """
        Fetch the receipt for a submitted operation.

        Returns:
            The receipt, or None if the operation is not mined yet
        """
        method = "eth_getUserOperationReceipt"
        result = self._rpc(method, [user_op_hash])
        if result is None:
            return None
        return UserOperationReceipt.from_rpc(result, method=method)
