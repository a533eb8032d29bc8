"""
zilstake/config.py

Configuration constants and data classes for zilstake.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple


# Default JSON-RPC endpoint (serves both the legacy Zilliqa API and eth_*)
DEFAULT_RPC_URL = "https://api.zilliqa.com"

# HTTP timeout for one batch round trip
DEFAULT_TIMEOUT = 30.0  # seconds

# Legacy SSN staking contract (state lives here, read via GetSmartContractSubState)
LEGACY_STAKING_CONTRACT = "0xa7c67d49c82c7dc1b73d231640b2e4d0661d37c1"

# ZQ2 deposit contract ("ZILDEPOSITPROXY" right-aligned in 20 bytes)
DEPOSIT_CONTRACT = "0x00000000005a494c4445504f53495450524f5859"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Token precision
ZIL_DECIMALS = 18       # EVM side (wei-style)
QA_DECIMALS = 12        # Legacy side (Qa)

# Legacy SSN commission is stored as percent * 10^7
COMMISSION_SCALE = 10 ** 7

# Network-wide validator reward emission used for APR estimates
REWARDS_PER_HOUR = 51_000
ANNUAL_REWARD_EMISSION = REWARDS_PER_HOUR * 24 * 365


# ============================================================================
# POOLS
# ============================================================================

class AccountingModel(Enum):
    """
    How a pool keeps its books.

    CYCLE_BASED: legacy SSN, rewards prorated per reward cycle from raw state
    POOL_CONTRACT: delegation contract, balances read through view calls
    """
    CYCLE_BASED = "cycle_based"
    POOL_CONTRACT = "pool_contract"


@dataclass(frozen=True)
class Pool:
    """A staking pool the account may have delegated to."""
    address: str
    name: str
    model: AccountingModel
    decimals: int = ZIL_DECIMALS
    symbol: str = "ZIL"
    token_address: Optional[str] = None

    @property
    def is_liquid(self) -> bool:
        """Liquid pools represent delegation as a transferable token balance."""
        return (
            self.model is AccountingModel.POOL_CONTRACT
            and bool(self.token_address)
            and self.token_address.lower() != ZERO_ADDRESS
        )

    @property
    def is_cycle_based(self) -> bool:
        return self.model is AccountingModel.CYCLE_BASED


@dataclass(frozen=True)
class PoolRegistry:
    """
    Immutable, ordered collection of pools.

    Passed into the query builder and the checker; never mutated in place.
    Use with_pools() to derive an extended registry.
    """
    pools: Tuple[Pool, ...] = ()

    def __iter__(self) -> Iterator[Pool]:
        return iter(self.pools)

    def __len__(self) -> int:
        return len(self.pools)

    def get(self, address: str) -> Optional[Pool]:
        """Find a pool by address (case-insensitive)."""
        address = address.lower()
        for pool in self.pools:
            if pool.address.lower() == address:
                return pool
        return None

    def by_model(self, model: AccountingModel) -> List[Pool]:
        return [pool for pool in self.pools if pool.model is model]

    def with_pools(self, pools: Iterable[Pool]) -> "PoolRegistry":
        """Return a new registry with extra pools appended; known addresses are skipped."""
        known = {pool.address.lower() for pool in self.pools}
        merged = list(self.pools)
        for pool in pools:
            if pool.address.lower() in known:
                continue
            known.add(pool.address.lower())
            merged.append(pool)
        return PoolRegistry(tuple(merged))

    @classmethod
    def from_ssnlist(cls, ssnlist: Dict[str, Any]) -> "PoolRegistry":
        """
        Build a registry of legacy pools from an `ssnlist` state map.

        Args:
            ssnlist: Mapping of SSN address -> Ssn ADT as returned by the
                     legacy staking contract

        Returns:
            Registry of CYCLE_BASED pools, sorted by address
        """
        pools = []
        for address in sorted(ssnlist, key=str.lower):
            entry = ssnlist[address]
            arguments = entry.get("arguments", []) if isinstance(entry, dict) else []
            name = arguments[3] if len(arguments) > 3 and isinstance(arguments[3], str) else address
            pools.append(Pool(
                address=address.lower(),
                name=name,
                model=AccountingModel.CYCLE_BASED,
                decimals=QA_DECIMALS,
            ))
        return cls(tuple(pools))


# ============================================================================
# NETWORK
# ============================================================================

@dataclass(frozen=True)
class NetworkConfig:
    """Endpoint and contract addresses for one network."""
    name: str = "mainnet"
    rpc_url: str = DEFAULT_RPC_URL
    legacy_contract: str = LEGACY_STAKING_CONTRACT
    deposit_contract: str = DEPOSIT_CONTRACT
    annual_emission: int = ANNUAL_REWARD_EMISSION
    timeout: float = DEFAULT_TIMEOUT
    block_time: float = 2.0  # seconds per block, for pending-claim ETAs


MAINNET = NetworkConfig()


def _delegation(address: str, name: str) -> Pool:
    return Pool(address=address.lower(), name=name, model=AccountingModel.POOL_CONTRACT)


def _liquid(address: str, name: str, token: str, symbol: str) -> Pool:
    return Pool(
        address=address.lower(),
        name=name,
        model=AccountingModel.POOL_CONTRACT,
        symbol=symbol,
        token_address=token.lower(),
    )


DEFAULT_POOLS: Tuple[Pool, ...] = (
    _delegation("0xA0572935d53e14C73eBb3de58d319A9Fe51E1FC8", "Moonlet"),
    _liquid("0x2Abed3a598CBDd8BB9089c09A9202FD80C55Df8c", "AtomicWallet",
            "0xD8B61fed51b9037A31C2Bf0a5dA4B717AF0C0F78", "SHARK"),
    _delegation("0xB9d689c64b969ad9eDd1EDDb50be42E217567fd3", "CEX.IO"),
    _liquid("0xe0C095DBE85a8ca75de4749B5AEe0D18100a3C39", "PlunderSwap",
            "0x7B213b5AEB896bC290F0cD8B8720eaF427098186", "pZIL"),
    _liquid("0xC0247d13323F1D06b6f24350Eea03c5e0Fbf65ed", "Luganodes",
            "0x2c51C97b22E73AfD33911397A20Aa5176e7Ab951", "LNZIL"),
    _delegation("0x8A0dEd57ABd3bc50A600c94aCbEcEf62db5f4D32", "DTEAM"),
    _delegation("0x3b1Cd55f995a9A8A634fc1A3cEB101e2baA636fc", "Shardpool"),
    _liquid("0x66a2bb4AD6999966616B2ad209833260F8eA07C8", "Encapsulate",
            "0xA1Adc08C12c684AdB28B963f251d6cB1C6a9c0c1", "encapZIL"),
    _liquid("0xe59D98b887e6D40F52f7Cc8d5fb4CF0F9Ed7C98B", "Amazing Pool - Avely and ZilPay",
            "0xf564DF9BeB417FB50b38A58334CA7607B36D3BFb", "stZIL"),
    _liquid("0xd090424684a9108229b830437b490363eB250A58", "PathrockNetwork",
            "0xE10575244f8E8735d71ed00287e9d1403f03C960", "zLST"),
    _delegation("0x33cDb55D7fD68d0Da1a3448F11bCdA5fDE3426B3", "BlackNodes"),
    _liquid("0x35118Af4Fc43Ce58CEcBC6Eeb21D0C1Eb7E28Bd3", "Lithium Digital",
            "0x245E6AB0d092672B18F27025385f98E2EC3a3275", "litZil"),
    _liquid("0x62269F615E1a3E36f96dcB7fDDF8B823737DD618", "TorchWallet.io",
            "0x770a35A5A95c2107860E9F74c1845e20289cbfe6", "tZIL"),
    _delegation("0xa45114E92E26B978F0B37cF19E66634f997250f9", "Stakefish"),
    _delegation("0x02376bA9e0f98439eA9F76A582FBb5d20E298177", "AlphaZIL (former Ezil)"),
)

DEFAULT_REGISTRY = PoolRegistry(DEFAULT_POOLS)
