"""
Configuration for the Splits SDK.

Settings can be supplied programmatically with ``configure()`` or through
environment variables:

    SPLITS_OPERATOR_KEY            operator private key
    SPLITS_RPC_URL_<chain_id>      RPC endpoint per chain (e.g. SPLITS_RPC_URL_137)
    SPLITS_PAYMASTER_API_KEY       bundler / paymaster API key
    SPLITS_SPONSORSHIP_POLICY_ID   optional sponsorship policy
    SPLITS_BUNDLER_URL             optional bundler URL override
    SPLITS_GRAPHQL_API_KEY         Splits GraphQL API key
"""
import os
import threading
import urllib.parse
from typing import Dict, Optional

from pydantic import BaseModel, Field

from .exceptions import ConfigurationError

ENV_PREFIX = "SPLITS_"
PIMLICO_BUNDLER_URL = "https://api.pimlico.io/v2/{chain_id}/rpc?apikey={api_key}"
SPLITS_GRAPHQL_URL = "https://api.splits.org/graphql"


class PaymasterSettings(BaseModel):
    """Sponsorship settings"""
    api_key: Optional[str] = None
    sponsorship_policy_id: Optional[str] = None
    bundler_url: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class Settings(BaseModel):
    """Global SDK settings"""
    operator_key: Optional[str] = None
    rpc_urls: Dict[int, str] = Field(default_factory=dict)
    paymaster: Optional[PaymasterSettings] = None
    graphql_api_key: Optional[str] = None

    def rpc_url(self, chain_id: int) -> str:
        """
        Get the RPC URL for a chain.

        Raises:
            ConfigurationError: If no URL is configured for the chain
        """
        url = self.rpc_urls.get(chain_id)
        if not url:
            raise ConfigurationError(f"RPC URL for chain_id {chain_id} not configured")
        return url


_settings = Settings()
_settings_lock = threading.RLock()


def configure(**kwargs) -> Settings:
    """
    Update the global settings.

    Example:
        configure(
            operator_key="0x...",
            rpc_urls={137: "https://polygon-rpc.com", 8453: "https://mainnet.base.org"},
            paymaster={"api_key": "pim_...", "sponsorship_policy_id": "sp_..."},
        )
    """
    global _settings
    with _settings_lock:
        data = _settings.model_dump()
        data.update(kwargs)
        _settings = Settings.model_validate(data)
        return _settings


def reset_settings() -> None:
    """Forget all programmatic configuration."""
    global _settings
    with _settings_lock:
        _settings = Settings()


def _env_rpc_urls() -> Dict[int, str]:
    urls = {}
    prefix = f"{ENV_PREFIX}RPC_URL_"
    for name, value in os.environ.items():
        if name.startswith(prefix) and value:
            try:
                urls[int(name[len(prefix):])] = value
            except ValueError:
                continue
    return urls


def get_settings() -> Settings:
    """
    Return the effective settings.

    Programmatic values win; environment variables fill the gaps.
    """
    with _settings_lock:
        current = _settings

    rpc_urls = _env_rpc_urls()
    rpc_urls.update(current.rpc_urls)

    paymaster = current.paymaster
    env_api_key = os.environ.get(f"{ENV_PREFIX}PAYMASTER_API_KEY")
    if paymaster is None and env_api_key:
        paymaster = PaymasterSettings(
            api_key=env_api_key,
            sponsorship_policy_id=os.environ.get(f"{ENV_PREFIX}SPONSORSHIP_POLICY_ID"),
            bundler_url=os.environ.get(f"{ENV_PREFIX}BUNDLER_URL"),
        )

    return Settings(
        operator_key=current.operator_key or os.environ.get(f"{ENV_PREFIX}OPERATOR_KEY"),
        rpc_urls=rpc_urls,
        paymaster=paymaster,
        graphql_api_key=current.graphql_api_key or os.environ.get(f"{ENV_PREFIX}GRAPHQL_API_KEY"),
    )


def bundler_url(chain_id: int, api_key: str, override: Optional[str] = None) -> str:
    """Build the bundler endpoint for a chain."""
    if override:
        return override
    if not api_key:
        raise ConfigurationError("Paymaster API key must be provided")
    return PIMLICO_BUNDLER_URL.format(chain_id=chain_id, api_key=api_key)


def validate_url(name: str, url: str) -> str:
    """
    Require https:// unless the host is localhost/127.0.0.1.

    Raises:
        ConfigurationError: If the URL is insecure
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ConfigurationError(f"{name} must use https:// for security (got: {parsed.scheme}://)")
    return url
