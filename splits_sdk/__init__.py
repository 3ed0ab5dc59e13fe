"""
Splits SDK - create and distribute 0xSplits V2 contracts, optionally gasless.
"""
from .client import SplitsClient
from .config import PaymasterSettings, Settings, configure, get_settings, reset_settings
from .exceptions import (
    BundlerError,
    ConfigurationError,
    CreationError,
    DistributionError,
    InvalidAddressError,
    ResponseDecodingError,
    SplitConfigError,
    SplitsError,
    UnsupportedChainError,
)
from .models import (
    CreateSplitConfig,
    CreateSplitResult,
    DistributeResult,
    SplitContractData,
    SplitRecipient,
    TransferEvent,
    TxReceipt,
)
from .sponsor import DeploymentResult, SponsoredDeploymentService
from .version import __version__

__all__ = [
    "SplitsClient",
    "PaymasterSettings",
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
    "BundlerError",
    "ConfigurationError",
    "CreationError",
    "DistributionError",
    "InvalidAddressError",
    "ResponseDecodingError",
    "SplitConfigError",
    "SplitsError",
    "UnsupportedChainError",
    "CreateSplitConfig",
    "CreateSplitResult",
    "DistributeResult",
    "SplitContractData",
    "SplitRecipient",
    "TransferEvent",
    "TxReceipt",
    "DeploymentResult",
    "SponsoredDeploymentService",
    "__version__",
]
