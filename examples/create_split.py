#!/usr/bin/env python3
"""
Create a 0xSplits push split, gasless when a paymaster key is configured.
"""
import logging
import os

from splits_sdk import SplitsClient, SplitsError


def main():
    """
    Demonstrate split creation.

    This example shows how to:
    1. Initialize the client from environment variables
    2. Create a 60/40 split on Base
    3. Inspect the result
    """
    logging.basicConfig(level=logging.INFO)

    chain_id = int(os.environ.get("CHAIN_ID", "8453"))
    rpc_url = os.environ.get("RPC_URL", "https://mainnet.base.org")
    operator_key = os.environ.get("SPLITS_OPERATOR_KEY")

    if not operator_key:
        print("ERROR: SPLITS_OPERATOR_KEY environment variable is required")
        return

    # SPLITS_PAYMASTER_API_KEY / SPLITS_SPONSORSHIP_POLICY_ID enable sponsorship
    client = SplitsClient(operator_key=operator_key, rpc_urls={chain_id: rpc_url})
    print(f"Operator: {client.operator_address} (sponsored: {client.paymaster_enabled})")

    try:
        result = client.splits.create(
            chain_id,
            recipients=[
                {"address": "0x1111111111111111111111111111111111111111", "percent_allocation": 60},
                {"address": "0x2222222222222222222222222222222222222222", "percent_allocation": 40},
            ],
            distributor_fee_percent=0,
        )
    except SplitsError as e:
        print(f"Error creating split: {e}")
        return

    if result.already_existed:
        print(f"Split already exists at {result.split_address}")
        return

    print("Split created successfully!")
    print(f"Split address: {result.split_address}")
    print(f"Transaction hash: {result.transaction_hash}")
    if result.sponsored:
        print(f"User operation hash: {result.user_op_hash}")


if __name__ == "__main__":
    main()
