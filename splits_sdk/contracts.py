"""
Contract addresses and ABIs used by the Splits SDK.

0xSplits V2 uses CREATE2 deployments, so each contract has the same
address on every supported chain.
See https://docs.splits.org/core/split-v2#addresses
"""
from typing import Any, Dict, List

from .exceptions import UnsupportedChainError

FACTORY_ADDRESS = "0x8E8eB0cC6AE34A38B67D5Cf91ACa38f60bc3Ecf4"
PUSH_SPLIT_ADDRESS = "0x1e2086A7e84a32482ac03000D56925F607CCB708"
PULL_FACTORY_ADDRESS = "0x6B9118074aB15142d7524E8c4ea8f62A3Bdb98f1"
PULL_SPLIT_ADDRESS = "0x98254AeDb6B2c30b70483064367f0BA24ca86244"

SUPPORTED_CHAINS = (
    1,           # Ethereum
    10,          # Optimism
    56,          # BSC
    100,         # Gnosis
    137,         # Polygon
    360,         # Shape
    480,         # World Chain
    2020,        # Ronin
    8453,        # Base
    42_161,      # Arbitrum
    42_220,      # Celo
    98_866,      # Plume
    7_777_777,   # Zora
    11_155_111,  # Sepolia
    9998,        # ScionX Testnet
)

CONTRACT_ADDRESSES: Dict[str, Dict[int, str]] = {
    "push_factory": {chain_id: FACTORY_ADDRESS for chain_id in SUPPORTED_CHAINS},
    "pull_factory": {chain_id: PULL_FACTORY_ADDRESS for chain_id in SUPPORTED_CHAINS},
    "push_split": {chain_id: PUSH_SPLIT_ADDRESS for chain_id in SUPPORTED_CHAINS},
    "pull_split": {chain_id: PULL_SPLIT_ADDRESS for chain_id in SUPPORTED_CHAINS},
}

# ERC-4337 entry points
ENTRY_POINT_V07 = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"
ENTRY_POINT_V08 = "0x4337084D9E255Ff0702461CF8895CE9E3b5Ff108"
ENTRY_POINTS = {"0.7": ENTRY_POINT_V07, "0.8": ENTRY_POINT_V08}

# Simple7702Account implementation the operator EOA delegates to
SIMPLE_7702_ACCOUNT = "0xe6Cae83BdE06E4c305530e199D7217f42808555B"

SPLIT_PARAMS_TYPE = "(address[],uint256[],uint256,uint16)"
CREATE_SPLIT_SIGNATURE = f"createSplitDeterministic({SPLIT_PARAMS_TYPE},address,address,bytes32)"
DISTRIBUTE_SIGNATURE = f"distribute({SPLIT_PARAMS_TYPE},address,address)"
PREDICT_ADDRESS_SIGNATURE = f"predictDeterministicAddress({SPLIT_PARAMS_TYPE},address,bytes32)"
EXECUTE_SIGNATURE = "execute(address,uint256,bytes)"
GET_NONCE_SIGNATURE = "getNonce(address,uint192)"
TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"


def contract_address(kind: str, chain_id: int) -> str:
    """
    Look up a Splits contract address.

    Args:
        kind: One of ``push_factory``, ``pull_factory``, ``push_split``, ``pull_split``
        chain_id: Target chain id

    Raises:
        UnsupportedChainError: If the contract is not deployed on the chain
    """
    try:
        addresses = CONTRACT_ADDRESSES[kind]
    except KeyError:
        raise ValueError(f"Unknown contract kind: {kind}")
    if chain_id not in addresses:
        raise UnsupportedChainError(f"Splits {kind} is not deployed on chain {chain_id}")
    return addresses[chain_id]


def entry_point_address(version: str) -> str:
    """Return the canonical entry point address for ``version`` (``0.7`` or ``0.8``)."""
    if version not in ENTRY_POINTS:
        raise ValueError(f"Unsupported entry point version: {version}")
    return ENTRY_POINTS[version]


def _split_params_component(name: str) -> Dict[str, Any]:
    return {
        "components": [
            {"internalType": "address[]", "name": "recipients", "type": "address[]"},
            {"internalType": "uint256[]", "name": "allocations", "type": "uint256[]"},
            {"internalType": "uint256", "name": "totalAllocation", "type": "uint256"},
            {"internalType": "uint16", "name": "distributionIncentive", "type": "uint16"},
        ],
        "internalType": "struct SplitV2Lib.Split",
        "name": name,
        "type": "tuple",
    }


FACTORY_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            _split_params_component("_splitParams"),
            {"internalType": "address", "name": "_owner", "type": "address"},
        ],
        "name": "predictDeterministicAddress",
        "outputs": [{"internalType": "address", "name": "split", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _split_params_component("_splitParams"),
            {"internalType": "address", "name": "_owner", "type": "address"},
            {"internalType": "bytes32", "name": "_salt", "type": "bytes32"},
        ],
        "name": "predictDeterministicAddress",
        "outputs": [{"internalType": "address", "name": "split", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _split_params_component("_splitParams"),
            {"internalType": "address", "name": "_owner", "type": "address"},
            {"internalType": "address", "name": "_creator", "type": "address"},
            {"internalType": "bytes32", "name": "_salt", "type": "bytes32"},
        ],
        "name": "createSplitDeterministic",
        "outputs": [{"internalType": "address", "name": "split", "type": "address"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            _split_params_component("_splitParams"),
            {"internalType": "address", "name": "_owner", "type": "address"},
            {"internalType": "bytes32", "name": "_salt", "type": "bytes32"},
        ],
        "name": "isDeployed",
        "outputs": [
            {"internalType": "address", "name": "split", "type": "address"},
            {"internalType": "bool", "name": "exists", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

PUSH_SPLIT_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            _split_params_component("_split"),
            {"internalType": "address", "name": "_token", "type": "address"},
            {"internalType": "address", "name": "_distributor", "type": "address"},
        ],
        "name": "distribute",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            _split_params_component("_split"),
            {"internalType": "address", "name": "_token", "type": "address"},
            {"internalType": "uint256", "name": "_distributeAmount", "type": "uint256"},
            {"internalType": "bool", "name": "_performWarehouseTransfer", "type": "bool"},
            {"internalType": "address", "name": "_distributor", "type": "address"},
        ],
        "name": "distribute",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "_token", "type": "address"}],
        "name": "getSplitBalance",
        "outputs": [
            {"internalType": "uint256", "name": "splitBalance", "type": "uint256"},
            {"internalType": "uint256", "name": "warehouseBalance", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ENTRY_POINT_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "sender", "type": "address"},
            {"internalType": "uint192", "name": "key", "type": "uint192"},
        ],
        "name": "getNonce",
        "outputs": [{"internalType": "uint256", "name": "nonce", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

