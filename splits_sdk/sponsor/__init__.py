"""
Sponsored (gasless) execution for the Splits SDK.

Operations are sent as ERC-4337 UserOperations from the operator EOA,
delegated to a smart account through EIP-7702, with gas paid by a paymaster.
"""
from .authorization import AuthorizationManager
from .bundler import BundlerClient
from .models import (
    Authorization,
    DeploymentResult,
    GasEstimate,
    GasPrice,
    GasPriceTiers,
    SponsorshipData,
    UserOperationReceipt,
)
from .nonce import resolve_user_operation_nonce
from .service import MAX_RECEIPT_ATTEMPTS, RECEIPT_POLL_DELAY, SponsoredDeploymentService
from .signer import sign_user_operation
from .user_operation import UserOperation, UserOperationBuilder, compute_user_operation_hash

__all__ = [
    "Authorization",
    "AuthorizationManager",
    "BundlerClient",
    "DeploymentResult",
    "GasEstimate",
    "GasPrice",
    "GasPriceTiers",
    "MAX_RECEIPT_ATTEMPTS",
    "RECEIPT_POLL_DELAY",
    "SponsoredDeploymentService",
    "SponsorshipData",
    "UserOperation",
    "UserOperationBuilder",
    "UserOperationReceipt",
    "compute_user_operation_hash",
    "resolve_user_operation_nonce",
    "sign_user_operation",
]
