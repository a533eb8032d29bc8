"""
zilstake - Staked balances and unclaimed rewards across Zilliqa staking pools

Covers both accounting models on the network:
- Legacy SSN staking (cycle-based rewards read from raw contract state)
- ZQ2 delegation contracts (balances and rewards via eth_call view functions)
- Liquid staking tokens (balance only)

All lookups for one account are sent as two JSON-RPC batches: discovery,
then per-cycle detail for the legacy pools the account actually uses.

Usage:
    import trio
    from zilstake import JsonRpcClient, StakeChecker

    async def main():
        async with JsonRpcClient() as client:
            checker = StakeChecker(client)
            report = await checker.check("0xb1fe20cd2b856ba1a4e08afb39dff5c80f0cbbca")
            for position in report.positions:
                print(position.name, position.stake, position.reward)

    trio.run(main)

Reward calculation only:
    from zilstake.protocol import compute_reward, CycleTotal
"""

from .address import InvalidAddressError, normalize_address
from .checker import StakeChecker, StakeReport, check_account
from .codec import AbiCodec
from .config import (
    AccountingModel,
    Pool,
    PoolRegistry,
    NetworkConfig,
    MAINNET,
    DEFAULT_REGISTRY,
)
from .protocol import (
    CycleTotal,
    StakePosition,
    StakeSummary,
    compute_reward,
    aggregate,
    summarize,
)
from .rpc import JsonRpcClient, RpcError, TransportError, ProtocolError
from .values import ABSENT, Present

__version__ = "0.1.0"

__all__ = [
    # Checker
    "StakeChecker",
    "StakeReport",
    "check_account",
    # Config
    "AccountingModel",
    "Pool",
    "PoolRegistry",
    "NetworkConfig",
    "MAINNET",
    "DEFAULT_REGISTRY",
    # Accounting
    "CycleTotal",
    "StakePosition",
    "StakeSummary",
    "compute_reward",
    "aggregate",
    "summarize",
    # RPC
    "JsonRpcClient",
    "RpcError",
    "TransportError",
    "ProtocolError",
    # Values / helpers
    "ABSENT",
    "Present",
    "AbiCodec",
    "InvalidAddressError",
    "normalize_address",
]
