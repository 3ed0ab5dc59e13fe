#!/usr/bin/env python3
"""
Distribute an ERC-20 balance held by an existing split.
"""
import os
import sys

from splits_sdk import SplitsClient, SplitsError

USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


def main():
    chain_id = int(os.environ.get("CHAIN_ID", "8453"))
    rpc_url = os.environ.get("RPC_URL", "https://mainnet.base.org")
    token = os.environ.get("TOKEN_ADDRESS", USDC_BASE)

    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} <split-address>")
        return

    # Needs SPLITS_OPERATOR_KEY and SPLITS_GRAPHQL_API_KEY
    client = SplitsClient(rpc_urls={chain_id: rpc_url})

    try:
        result = client.splits.distribute(sys.argv[1], chain_id, token)
    except SplitsError as e:
        print(f"Error distributing: {e}")
        return

    print(f"Distribution sent: {result.transaction_hash}")
    for transfer in result.distributions:
        print(f"  {transfer.to_address}: {transfer.value_formatted}")


if __name__ == "__main__":
    main()
