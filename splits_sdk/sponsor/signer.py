"""
UserOperation signing.
"""
from eth_account.signers.local import LocalAccount

from .user_operation import UserOperation, UserOperationBuilder


def sign_user_operation(
    account: LocalAccount,
    builder: UserOperationBuilder,
    operation: UserOperation,
) -> UserOperation:
    """
    Sign the operation's canonical hash and return the signed copy.

    The delegated account recovers the signer from the raw userOpHash, so
    the digest is signed without an EIP-191 prefix. Nothing may be changed on
    the returned operation.
    """
    digest = builder.compute_hash(operation)
    signed = account.unsafe_sign_hash(digest)
    return operation.with_signature(bytes(signed.signature))
