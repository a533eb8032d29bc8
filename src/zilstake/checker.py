"""
zilstake/checker.py

Two-phase stake checker.

Phase 1 (discover): one batch with legacy bookkeeping (last reward cycle,
the account's whole deposit map, the SSN list), network figures (network
stake, block height) and, per delegation pool, the account's balance and
the pool's statistics. Identifies every pool where the account holds a
position, including SSNs that are not in the registry.

Phase 2 (detail): one batch, built only for cycle-based pools found in
phase 1, fetching withdrawal bookkeeping, per-cycle deposits and SSN cycle
totals so rewards can be computed.

Two round trips in total. A transport or protocol failure in either batch
aborts the run; missing or undecodable entries only affect their own pool.

Usage:
    async with JsonRpcClient() as client:
        checker = StakeChecker(client)
        report = await checker.check("0xb1fe20cd2b856ba1a4e08afb39dff5c80f0cbbca")
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .address import normalize_address
from .codec import AbiCodec
from .config import AccountingModel, DEFAULT_REGISTRY, MAINNET, NetworkConfig, Pool, PoolRegistry
from .decoding import (
    decode_address_map,
    decode_block_number,
    decode_call,
    decode_commission,
    decode_cycle_map,
    decode_cycle_totals,
    decode_pending_claims,
    decode_ssn_info,
    decode_state,
    decode_state_int,
    safe_lookup,
)
from .protocol.positions import (
    PendingClaim,
    PoolStatistics,
    StakePosition,
    StakeSummary,
    aggregate,
    attach_statistics,
    summarize,
)
from .protocol.rewards import CycleBookkeeping, CycleDeltas, compute_position_reward
from .rpc.client import JsonRpcClient
from .rpc.correlator import correlate
from .rpc.queries import (
    Lookup,
    LookupKind,
    QueryBuilder,
    phase_one_lookups,
    phase_two_lookups,
)
from .values import ABSENT, Value, value_or

logger = logging.getLogger("zilstake.checker")

# Decode problems that are isolated to one pool
POOL_ERRORS = (ValueError, TypeError, KeyError, ArithmeticError)


def _by_address(entries: Any) -> Dict[str, Any]:
    """Re-key an address map by lowercase address; non-maps read as empty."""
    if not isinstance(entries, Mapping):
        return {}
    return {address.lower(): entry for address, entry in entries.items() if isinstance(address, str)}


# ============================================================================
# RESULTS
# ============================================================================

@dataclass
class Discovery:
    """What phase 1 found."""
    last_reward_cycle: int = 0
    block_number: Optional[int] = None
    network_stake: Optional[int] = None
    cycle_positions: Dict[Pool, StakePosition] = field(default_factory=dict)
    contract_positions: List[StakePosition] = field(default_factory=list)
    liquid_positions: List[StakePosition] = field(default_factory=list)


@dataclass
class StakeReport:
    """Final result for one account."""
    account: str
    positions: List[StakePosition]
    summary: StakeSummary
    last_reward_cycle: Optional[int] = None
    block_number: Optional[int] = None
    block_time: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "last_reward_cycle": self.last_reward_cycle,
            "block_number": self.block_number,
            "positions": [
                position.to_dict(self.block_number, self.block_time)
                for position in self.positions
            ],
            "summary": self.summary.to_dict(),
        }


# ============================================================================
# CHECKER
# ============================================================================

class StakeChecker:
    """
    Computes staked balances and unclaimed rewards for an account.

    Attributes:
        client: Batch JSON-RPC client
        registry: Delegation pools to inspect, plus optional named SSNs
        network: Contract addresses and emission figures
        codec: ABI codec for call data and return values
        discover_legacy: Report every SSN the account deposited with, not
                         only the SSNs listed in the registry
    """

    def __init__(
        self,
        client: JsonRpcClient,
        registry: PoolRegistry = DEFAULT_REGISTRY,
        network: NetworkConfig = MAINNET,
        codec: Optional[AbiCodec] = None,
        discover_legacy: bool = True,
    ):
        self.client = client
        self.registry = registry
        self.network = network
        self.codec = codec or AbiCodec()
        self.discover_legacy = discover_legacy

    @property
    def checks_legacy(self) -> bool:
        return self.discover_legacy or bool(self.registry.by_model(AccountingModel.CYCLE_BASED))

    async def check(self, account: str) -> StakeReport:
        """
        Run both phases for one account.

        Raises:
            InvalidAddressError: If the account address is malformed
            RpcError: On transport or protocol failure
        """
        account = normalize_address(account)
        logger.info(f"Checking stakes for {account} across {len(self.registry)} pools")

        builder = QueryBuilder(account, network=self.network, codec=self.codec, offset=1)
        builder.extend(phase_one_lookups(self.registry, include_legacy=self.discover_legacy))
        values = await self._fetch(builder)
        discovery = self.discover(account, values)

        found = [pool for pool, position in discovery.cycle_positions.items() if position.stake]
        if found:
            detail = QueryBuilder(account, network=self.network, codec=self.codec, offset=builder.next_id)
            detail.extend(phase_two_lookups(found))
            detail_values = await self._fetch(detail)
            self.apply_details(account, discovery, detail_values)

        # Positions whose reward could not be computed are not emitted
        positions = aggregate(
            [p for p in discovery.cycle_positions.values() if p.reward is not None],
            discovery.contract_positions,
            discovery.liquid_positions,
        )
        report = StakeReport(
            account=account,
            positions=positions,
            summary=summarize(positions),
            last_reward_cycle=discovery.last_reward_cycle if self.checks_legacy else None,
            block_number=discovery.block_number,
            block_time=self.network.block_time,
        )
        logger.info(f"Found {len(positions)} positions for {account}")
        return report

    async def get_positions(self, account: str) -> List[StakePosition]:
        report = await self.check(account)
        return report.positions

    async def _fetch(self, builder: QueryBuilder) -> Dict[Lookup, Value]:
        raw = await self.client.batch(builder.requests)
        return correlate(raw, builder.table)

    # ========================================================================
    # PHASE 1
    # ========================================================================

    def discover(self, account: str, values: Dict[Lookup, Value]) -> Discovery:
        """Decode phase 1 results into positions and bookkeeping."""
        discovery = Discovery()

        def state(kind: LookupKind) -> Value:
            lookup = Lookup(kind)
            return decode_state(lookup, values.get(lookup, ABSENT), account)

        cycle_lookup = Lookup(LookupKind.LAST_REWARD_CYCLE)
        block_lookup = Lookup(LookupKind.BLOCK_NUMBER)
        network_lookup = Lookup(LookupKind.NETWORK_STAKE)

        discovery.last_reward_cycle = decode_state_int(
            cycle_lookup, values.get(cycle_lookup, ABSENT), account,
        )
        discovery.block_number = value_or(decode_block_number(values.get(block_lookup, ABSENT)))
        discovery.network_stake = value_or(
            decode_call(self.codec, network_lookup, values.get(network_lookup, ABSENT))
        )

        if self.checks_legacy:
            deposits = decode_address_map(state(LookupKind.LEGACY_DEPOSITS))
            ssnlist = _by_address(value_or(state(LookupKind.SSN_LIST), {}))
            for pool in self.legacy_pools(deposits, ssnlist):
                try:
                    self._discover_cycle_pool(pool, deposits[pool.address.lower()], ssnlist, discovery)
                except POOL_ERRORS as e:
                    logger.warning(f"Skipping {pool.name}: could not decode discovery data: {e}")

        for pool in self.registry.by_model(AccountingModel.POOL_CONTRACT):
            try:
                self._discover_contract_pool(pool, values, discovery)
            except POOL_ERRORS as e:
                logger.warning(f"Skipping {pool.name}: could not decode discovery data: {e}")
        return discovery

    def legacy_pools(self, deposits: Mapping[str, int], ssnlist: Mapping[str, Any]) -> List[Pool]:
        """
        Cycle-based pools for the SSNs the account has a deposit with.

        Registry entries win over pools built from the SSN list; without
        legacy discovery only registry SSNs are kept.
        """
        known = {pool.address.lower(): pool for pool in self.registry.by_model(AccountingModel.CYCLE_BASED)}

        pools = []
        for pool in PoolRegistry.from_ssnlist({address: ssnlist.get(address, {}) for address in deposits}):
            if pool.address in known:
                pools.append(known[pool.address])
            elif self.discover_legacy:
                if pool.address not in ssnlist:
                    logger.warning(f"SSN {pool.address} holds a deposit but is not in ssnlist")
                pools.append(pool)
        return pools

    def _discover_cycle_pool(
        self,
        pool: Pool,
        stake: int,
        ssnlist: Mapping[str, Any],
        discovery: Discovery,
    ) -> None:
        if not stake:
            return

        position = StakePosition(pool=pool, stake=stake, reward=None)
        info = decode_ssn_info(safe_lookup(ssnlist, pool.address))
        if info is not None:
            position.active = info.active
            position.commission = info.commission
            position.pool_stake = info.stake

        discovery.cycle_positions[pool] = position

    def _discover_contract_pool(
        self,
        pool: Pool,
        values: Dict[Lookup, Value],
        discovery: Discovery,
    ) -> None:
        def call(kind: LookupKind) -> Value:
            lookup = Lookup(kind, pool)
            return decode_call(self.codec, lookup, values.get(lookup, ABSENT))

        stake_kind = LookupKind.TOKEN_BALANCE if pool.is_liquid else LookupKind.DELEGATED_AMOUNT
        stake = call(stake_kind)
        if not stake:
            logger.debug(f"No stake result for {pool.name}, excluding")
            return

        position = StakePosition(
            pool=pool,
            stake=stake.value,
            reward=0 if pool.is_liquid else value_or(call(LookupKind.REWARDS), 0),
            claimable=value_or(call(LookupKind.CLAIMABLE), 0),
            pending_claims=[
                PendingClaim(block_number=block, amount=amount)
                for block, amount in decode_pending_claims(call(LookupKind.PENDING_CLAIMS))
            ],
        )
        stats = PoolStatistics(
            pool_stake=value_or(call(LookupKind.POOL_STAKE)),
            network_stake=discovery.network_stake,
            commission=value_or(decode_commission(call(LookupKind.COMMISSION))),
        )
        attach_statistics(position, stats, self.network.annual_emission)

        if pool.is_liquid:
            discovery.liquid_positions.append(position)
        else:
            discovery.contract_positions.append(position)

    # ========================================================================
    # PHASE 2
    # ========================================================================

    def apply_details(self, account: str, discovery: Discovery, values: Dict[Lookup, Value]) -> None:
        """Compute rewards for the cycle-based positions found in phase 1."""
        for pool, position in discovery.cycle_positions.items():
            if not position.stake:
                continue
            try:
                withdraw = Lookup(LookupKind.LAST_WITHDRAW_CYCLE, pool)
                bookkeeping = CycleBookkeeping(
                    last_reward_cycle=discovery.last_reward_cycle,
                    last_withdraw_cycle=decode_state_int(withdraw, values.get(withdraw, ABSENT), account),
                )
                deltas = CycleDeltas(
                    direct=self._cycle_map(account, LookupKind.DIRECT_DEPOSITS, pool, values),
                    buffered=self._cycle_map(account, LookupKind.BUFFERED_DEPOSITS, pool, values),
                )
                historical = self._cycle_map(account, LookupKind.STAKE_PER_CYCLE, pool, values)
                totals_lookup = Lookup(LookupKind.CYCLE_TOTALS, pool)
                totals = decode_cycle_totals(decode_state(totals_lookup, values.get(totals_lookup, ABSENT), account))

                position.reward = compute_position_reward(bookkeeping, deltas, totals, historical)
            except POOL_ERRORS as e:
                logger.warning(f"Skipping {pool.name}: could not compute reward: {e}")
                position.reward = None

    @staticmethod
    def _cycle_map(account: str, kind: LookupKind, pool: Pool, values: Dict[Lookup, Value]) -> Dict[int, int]:
        lookup = Lookup(kind, pool)
        return decode_cycle_map(decode_state(lookup, values.get(lookup, ABSENT), account))


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

async def check_account(
    account: str,
    registry: PoolRegistry = DEFAULT_REGISTRY,
    network: NetworkConfig = MAINNET,
    discover_legacy: bool = True,
) -> StakeReport:
    """
    Open a client and check one account.

    Raises:
        InvalidAddressError: If the account address is malformed
        RpcError: On transport or protocol failure
    """
    async with JsonRpcClient(network.rpc_url, timeout=network.timeout) as client:
        checker = StakeChecker(client, registry=registry, network=network, discover_legacy=discover_legacy)
        return await checker.check(account)
