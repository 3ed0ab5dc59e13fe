"""
Client for the Splits GraphQL API, used to look up existing split contracts.
"""
import logging
from typing import Any, Dict, Optional

import requests

from .config import SPLITS_GRAPHQL_URL, validate_url
from .exceptions import ConfigurationError
from .models import SplitContractData

ACCOUNT_QUERY = """
query($accountId: ID!, $chainId: String!) {
  account(id: $accountId, chainId: $chainId) {
    __typename
    id
    ... on Split {
      distributorFee
      recipients {
        account { id }
        ownership
      }
    }
  }
}
"""


class GraphqlClient:
    """Fetches split recipients and allocations from the Splits API"""

    def __init__(
        self,
        api_key: str,
        url: str = SPLITS_GRAPHQL_URL,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not api_key:
            raise ConfigurationError("Splits GraphQL API key must be set before use")
        self.api_key = api_key
        self.url = validate_url("graphql_url", url)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a GraphQL query

        Raises:
            requests.RequestException: On transport errors
            ValueError: If the response carries GraphQL errors or no data
        """
        response = self.session.post(
            self.url,
            json={"query": query, "variables": variables},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        body = response.json()
        if body.get("errors"):
            raise ValueError(f"GraphQL errors: {body['errors']}")
        if "data" not in body:
            raise ValueError("GraphQL response has no data")
        return body["data"] or {}

    def fetch_split_data(self, contract_address: str, chain_id: int) -> Optional[SplitContractData]:
        """
        Look up a split contract.

        Returns:
            SplitContractData, or None if the account is not a split or the
            lookup failed
        """
        try:
            data = self.query(ACCOUNT_QUERY, {
                "accountId": contract_address.lower(),
                "chainId": str(chain_id),
            })
            account = data.get("account")
            if not account or account.get("__typename") != "Split":
                return None
            return SplitContractData(
                chain_id=chain_id,
                contract_address=contract_address,
                recipients=[r["account"]["id"] for r in account.get("recipients") or []],
                allocations=[int(r["ownership"]) for r in account.get("recipients") or []],
                distribution_incentive=int(account.get("distributorFee") or 0),
            )
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Split data fetch failed for {contract_address} on chain {chain_id}: {e}")
            return None
