"""
zilstake/rpc/queries.py

Query descriptor builder.

Turns logical lookups ("account's deposit with SSN X", "reward totals per
cycle for SSN X", "pool Y's commission") into JSON-RPC request objects and
keeps a side-table from correlation id back to the lookup.

Ids are allocated strictly increasing from a caller-supplied offset, so the
output of several builders can be concatenated into one physical batch.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..address import strip_prefix
from ..codec import AbiCodec
from ..config import AccountingModel, NetworkConfig, Pool, PoolRegistry, MAINNET

logger = logging.getLogger("zilstake.rpc.queries")


# ============================================================================
# WIRE METHODS
# ============================================================================

STATE_METHOD = "GetSmartContractSubState"
CALL_METHOD = "eth_call"
BLOCK_NUMBER_METHOD = "eth_blockNumber"
BLOCK_TAG = "latest"


class QueryStyle(Enum):
    STATE = "state"
    CALL = "call"
    NATIVE = "native"


class LookupKind(Enum):
    """Every logical lookup the checker can ask for."""
    # Legacy contract state
    LAST_REWARD_CYCLE = "last_reward_cycle"
    LEGACY_DEPOSITS = "legacy_deposits"
    SSN_LIST = "ssn_list"
    LAST_WITHDRAW_CYCLE = "last_withdraw_cycle"
    DIRECT_DEPOSITS = "direct_deposits"
    BUFFERED_DEPOSITS = "buffered_deposits"
    STAKE_PER_CYCLE = "stake_per_cycle"
    CYCLE_TOTALS = "cycle_totals"
    # Delegation contract calls
    DELEGATED_AMOUNT = "delegated_amount"
    TOKEN_BALANCE = "token_balance"
    REWARDS = "rewards"
    CLAIMABLE = "claimable"
    PENDING_CLAIMS = "pending_claims"
    POOL_STAKE = "pool_stake"
    COMMISSION = "commission"
    NETWORK_STAKE = "network_stake"
    # Node
    BLOCK_NUMBER = "block_number"


@dataclass(frozen=True)
class StateQuery:
    """A legacy contract field, optionally narrowed by map keys."""
    field: str
    keys: Tuple[str, ...] = ()  # "account" / "pool" placeholders


@dataclass(frozen=True)
class CallQuery:
    """A view function call against a pool, its token, or the deposit contract."""
    signature: str
    returns: Tuple[str, ...]
    target: str = "pool"        # "pool" | "token" | "deposit"
    account_arg: bool = False   # pass the account as the only argument
    from_account: bool = False  # set `from` so msg.sender is the account


STATE_QUERIES: Dict[LookupKind, StateQuery] = {
    LookupKind.LAST_REWARD_CYCLE: StateQuery("lastrewardcycle"),
    LookupKind.LEGACY_DEPOSITS: StateQuery("deposit_amt_deleg", ("account",)),
    LookupKind.SSN_LIST: StateQuery("ssnlist"),
    LookupKind.LAST_WITHDRAW_CYCLE: StateQuery("last_withdraw_cycle_deleg", ("account", "pool")),
    LookupKind.DIRECT_DEPOSITS: StateQuery("direct_deposit_deleg", ("account", "pool")),
    LookupKind.BUFFERED_DEPOSITS: StateQuery("buff_deposit_deleg", ("account", "pool")),
    LookupKind.STAKE_PER_CYCLE: StateQuery("deleg_stake_per_cycle", ("account", "pool")),
    LookupKind.CYCLE_TOTALS: StateQuery("stake_ssn_per_cycle", ("pool",)),
}

CALL_QUERIES: Dict[LookupKind, CallQuery] = {
    LookupKind.DELEGATED_AMOUNT: CallQuery("getDelegatedAmount()", ("uint256",), from_account=True),
    LookupKind.TOKEN_BALANCE: CallQuery("balanceOf(address)", ("uint256",), target="token", account_arg=True),
    LookupKind.REWARDS: CallQuery("rewards()", ("uint256",), from_account=True),
    LookupKind.CLAIMABLE: CallQuery("getClaimable()", ("uint256",), from_account=True),
    LookupKind.PENDING_CLAIMS: CallQuery("getPendingClaims()", ("uint256[2][]",), from_account=True),
    LookupKind.POOL_STAKE: CallQuery("getStake()", ("uint256",)),
    LookupKind.COMMISSION: CallQuery("getCommission()", ("uint256", "uint256")),
    LookupKind.NETWORK_STAKE: CallQuery("getFutureTotalStake()", ("uint256",), target="deposit"),
}


def query_style(kind: LookupKind) -> QueryStyle:
    if kind in STATE_QUERIES:
        return QueryStyle.STATE
    if kind in CALL_QUERIES:
        return QueryStyle.CALL
    return QueryStyle.NATIVE


@dataclass(frozen=True)
class Lookup:
    """One logical lookup. Global lookups carry no pool."""
    kind: LookupKind
    pool: Optional[Pool] = None

    def __repr__(self) -> str:
        target = self.pool.name if self.pool else "global"
        return f"Lookup({self.kind.value}, {target})"


# ============================================================================
# BUILDER
# ============================================================================

class QueryBuilder:
    """
    Allocates correlation ids and renders wire requests.

    Example:
        builder = QueryBuilder(account, offset=1)
        builder.extend(phase_one_lookups(registry))
        raw = await client.batch(builder.requests)
        values = correlate(raw, builder.table)
    """

    def __init__(
        self,
        account: str,
        network: NetworkConfig = MAINNET,
        codec: Optional[AbiCodec] = None,
        offset: int = 1,
    ):
        """
        Args:
            account: Normalized (lowercase 0x) account address
            network: Contract addresses to query
            codec: ABI codec used for call data
            offset: First correlation id to allocate
        """
        self.account = account
        self.network = network
        self.codec = codec or AbiCodec()
        self.offset = offset

        self._next_id = offset
        self._requests: List[dict] = []
        self._table: Dict[int, Lookup] = {}

    @property
    def next_id(self) -> int:
        """Id the next added lookup will receive; use as offset for a follow-up builder."""
        return self._next_id

    @property
    def requests(self) -> List[dict]:
        return list(self._requests)

    @property
    def table(self) -> Dict[int, Lookup]:
        return dict(self._table)

    def __len__(self) -> int:
        return len(self._requests)

    def add(self, lookup: Lookup) -> int:
        """Render one lookup and return its correlation id."""
        method, params = self._render(lookup)
        request_id = self._next_id
        self._next_id += 1
        self._requests.append({
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        })
        self._table[request_id] = lookup
        return request_id

    def extend(self, lookups: Iterable[Lookup]) -> List[int]:
        return [self.add(lookup) for lookup in lookups]

    def _render(self, lookup: Lookup) -> Tuple[str, list]:
        style = query_style(lookup.kind)
        if style is QueryStyle.STATE:
            return STATE_METHOD, self._state_params(lookup, STATE_QUERIES[lookup.kind])
        if style is QueryStyle.CALL:
            return CALL_METHOD, self._call_params(lookup, CALL_QUERIES[lookup.kind])
        return BLOCK_NUMBER_METHOD, []

    def _resolve(self, placeholder: str, pool: Optional[Pool]) -> str:
        if placeholder == "account":
            return self.account
        if pool is None:
            raise ValueError(f"Lookup needs a pool to resolve '{placeholder}'")
        if placeholder == "pool":
            return pool.address.lower()
        if placeholder == "token":
            if not pool.token_address:
                raise ValueError(f"Pool {pool.name} has no token address")
            return pool.token_address.lower()
        raise ValueError(f"Unknown placeholder: {placeholder}")

    def _state_params(self, lookup: Lookup, query: StateQuery) -> list:
        keys = [self._resolve(key, lookup.pool) for key in query.keys]
        return [strip_prefix(self.network.legacy_contract), query.field, keys]

    def _call_params(self, lookup: Lookup, query: CallQuery) -> list:
        if query.target == "deposit":
            to = self.network.deposit_contract.lower()
        else:
            to = self._resolve(query.target, lookup.pool)
        args = [self.account] if query.account_arg else []
        data = self.codec.encode_call(query.signature, args)
        call = {"to": to, "data": "0x" + data.hex()}
        if query.from_account:
            call["from"] = self.account
        return [call, BLOCK_TAG]


def build_queries(
    lookups: Iterable[Lookup],
    account: str,
    network: NetworkConfig = MAINNET,
    codec: Optional[AbiCodec] = None,
    offset: int = 1,
) -> Tuple[List[dict], Dict[int, Lookup]]:
    """Render lookups in one go; returns (requests, id -> lookup table)."""
    builder = QueryBuilder(account, network=network, codec=codec, offset=offset)
    builder.extend(lookups)
    return builder.requests, builder.table


# ============================================================================
# PHASE PLANS
# ============================================================================

# Legacy discovery reads whole maps keyed by the account, so it needs no
# per-SSN lookups and finds SSNs missing from the registry
LEGACY_DISCOVERY = (
    LookupKind.LAST_REWARD_CYCLE,
    LookupKind.LEGACY_DEPOSITS,
    LookupKind.SSN_LIST,
)

LEGACY_DETAIL = (
    LookupKind.LAST_WITHDRAW_CYCLE,
    LookupKind.DIRECT_DEPOSITS,
    LookupKind.BUFFERED_DEPOSITS,
    LookupKind.STAKE_PER_CYCLE,
    LookupKind.CYCLE_TOTALS,
)


def _contract_pool_discovery(pool: Pool) -> List[Lookup]:
    if pool.is_liquid:
        lookups = [Lookup(LookupKind.TOKEN_BALANCE, pool)]
    else:
        lookups = [
            Lookup(LookupKind.DELEGATED_AMOUNT, pool),
            Lookup(LookupKind.REWARDS, pool),
        ]
    lookups.extend([
        Lookup(LookupKind.CLAIMABLE, pool),
        Lookup(LookupKind.PENDING_CLAIMS, pool),
        Lookup(LookupKind.POOL_STAKE, pool),
        Lookup(LookupKind.COMMISSION, pool),
    ])
    return lookups


def _cycle_pool_detail(pool: Pool) -> List[Lookup]:
    return [Lookup(kind, pool) for kind in LEGACY_DETAIL]


DETAIL_PLANS: Dict[AccountingModel, Callable[[Pool], List[Lookup]]] = {
    AccountingModel.CYCLE_BASED: _cycle_pool_detail,
}


def phase_one_lookups(registry: PoolRegistry, include_legacy: bool = True) -> List[Lookup]:
    """
    Lookups for the discovery phase.

    Legacy bookkeeping first (when legacy discovery is on or the registry
    lists SSNs), then network-wide figures and each delegation pool's
    lookups in registry order.
    """
    lookups: List[Lookup] = []
    if include_legacy or registry.by_model(AccountingModel.CYCLE_BASED):
        lookups.extend(Lookup(kind) for kind in LEGACY_DISCOVERY)

    contract_pools = registry.by_model(AccountingModel.POOL_CONTRACT)
    if contract_pools:
        lookups.append(Lookup(LookupKind.NETWORK_STAKE))
        lookups.append(Lookup(LookupKind.BLOCK_NUMBER))
    for pool in contract_pools:
        lookups.extend(_contract_pool_discovery(pool))
    return lookups


def phase_two_lookups(pools: Sequence[Pool]) -> List[Lookup]:
    """Withdrawal bookkeeping and per-cycle data for pools found in phase 1."""
    lookups: List[Lookup] = []
    for pool in pools:
        plan = DETAIL_PLANS.get(pool.model)
        if plan is None:
            logger.debug(f"Skipping {pool.name} in detail phase (not cycle-based)")
            continue
        lookups.extend(plan(pool))
    return lookups
