"""
zilstake/decoding.py

Value decoding for both accounting models.

State-style: legacy substate results are nested maps, e.g.

    {"deposit_amt_deleg": {"0xaccount": {"0xssn": "1000000"}}}

and are walked with safe_lookup() along (field, *keys). Any missing
intermediate key reads as zero.

Call-style: eth_call results are hex return blobs decoded with the return
types declared for the lookup kind. An empty blob or a decode failure
yields ABSENT, not zero.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from eth_utils import to_bytes

from .codec import AbiCodec, DecodingError
from .config import COMMISSION_SCALE
from .protocol.rewards import CycleTotal
from .rpc.queries import CALL_QUERIES, STATE_QUERIES, Lookup
from .values import ABSENT, Present, Value, value_or

logger = logging.getLogger("zilstake.decoding")

# Deepest key path any legacy field needs (field, account, ssn, cycle) plus slack
MAX_LOOKUP_DEPTH = 8


# ============================================================================
# GENERIC HELPERS
# ============================================================================

def safe_lookup(payload: Any, *path: Any) -> Value:
    """
    Walk a nested mapping.

    Returns:
        Present(node) at the end of the path, or ABSENT if any step is
        missing, not a mapping, or the final node is null
    """
    if len(path) > MAX_LOOKUP_DEPTH:
        raise ValueError(f"Lookup path too deep ({len(path)} > {MAX_LOOKUP_DEPTH})")
    node = payload
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return ABSENT
        node = node[key]
    if node is None:
        return ABSENT
    return Present(node)


def parse_int(raw: Any) -> Optional[int]:
    """Parse a string-encoded unsigned integer; None if not one."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.isdigit():
            return int(raw)
    return None


def parse_quantity(raw: Any) -> Optional[int]:
    """Parse an eth_* hex quantity such as "0x1b4"."""
    if isinstance(raw, str) and raw.lower().startswith("0x"):
        try:
            return int(raw, 16)
        except ValueError:
            return None
    return None


# ============================================================================
# STATE-STYLE
# ============================================================================

def state_path(lookup: Lookup, account: str) -> Tuple[str, ...]:
    """Key path into a substate result: (field, *resolved keys)."""
    query = STATE_QUERIES[lookup.kind]
    keys = []
    for placeholder in query.keys:
        if placeholder == "account":
            keys.append(account)
        else:
            keys.append(lookup.pool.address.lower())
    return (query.field, *keys)


def decode_state(lookup: Lookup, value: Value, account: str) -> Value:
    """The node a state lookup points at, or ABSENT."""
    if not isinstance(value, Present):
        return ABSENT
    return safe_lookup(value.value, *state_path(lookup, account))


def decode_state_int(lookup: Lookup, value: Value, account: str) -> int:
    """Integer at a state lookup's path; zero on any miss."""
    node = decode_state(lookup, value, account)
    parsed = parse_int(value_or(node))
    if parsed is None:
        if isinstance(node, Present):
            logger.debug(f"{lookup!r}: non-integer state value {node.value!r}")
        return 0
    return parsed


def decode_cycle_map(node: Value) -> Dict[int, int]:
    """{"cycle": "amount"} -> {cycle: amount}; unparseable entries are skipped."""
    raw = value_or(node, {})
    result: Dict[int, int] = {}
    if not isinstance(raw, Mapping):
        return result
    for cycle, amount in raw.items():
        cycle_number = parse_int(cycle)
        parsed = parse_int(amount)
        if cycle_number is None or parsed is None:
            logger.debug(f"Skipping malformed cycle entry {cycle!r}: {amount!r}")
            continue
        result[cycle_number] = parsed
    return result


def decode_address_map(node: Value) -> Dict[str, int]:
    """{"0xSSN": "amount"} -> {"0xssn": amount}; unparseable entries are skipped."""
    raw = value_or(node, {})
    result: Dict[str, int] = {}
    if not isinstance(raw, Mapping):
        return result
    for address, amount in raw.items():
        parsed = parse_int(amount)
        if not isinstance(address, str) or parsed is None:
            logger.debug(f"Skipping malformed address entry {address!r}: {amount!r}")
            continue
        result[address.lower()] = parsed
    return result


def decode_cycle_totals(node: Value) -> Dict[int, CycleTotal]:
    """
    Decode `stake_ssn_per_cycle` entries.

    Each entry is an SSNCycleInfo ADT whose arguments are
    [total_stake, total_reward] as strings.
    """
    raw = value_or(node, {})
    totals: Dict[int, CycleTotal] = {}
    if not isinstance(raw, Mapping):
        return totals
    for cycle, entry in raw.items():
        cycle_number = parse_int(cycle)
        arguments = entry.get("arguments", []) if isinstance(entry, Mapping) else []
        if cycle_number is None or len(arguments) < 2:
            logger.debug(f"Skipping malformed cycle totals {cycle!r}: {entry!r}")
            continue
        stake = parse_int(arguments[0])
        reward = parse_int(arguments[1])
        if stake is None or reward is None:
            continue
        totals[cycle_number] = CycleTotal(total_stake=stake, total_reward=reward)
    return totals


@dataclass(frozen=True)
class SsnInfo:
    """Fields of interest from a legacy `ssnlist` entry."""
    name: str
    active: bool
    stake: int
    commission: Optional[float]   # fraction, 0.1 == 10%
    raw_commission: Optional[int]


def commission_fraction(raw: Optional[int]) -> Optional[float]:
    """Legacy commission (percent * 10^7) as a fraction."""
    if raw is None:
        return None
    return raw / COMMISSION_SCALE / 100


def decode_ssn_info(node: Value) -> Optional[SsnInfo]:
    """
    Decode an Ssn ADT. Arguments are positional:
    [active_status, stake_amt, rewards, name, urlraw, urlapi,
     buffered_deposit, comm, comm_rewards, rec_addr]
    """
    raw = value_or(node)
    if not isinstance(raw, Mapping):
        return None
    arguments = raw.get("arguments", [])
    if not isinstance(arguments, list) or len(arguments) < 4:
        return None

    status = arguments[0]
    active = isinstance(status, Mapping) and status.get("constructor") == "True"
    stake = parse_int(arguments[1]) or 0
    name = arguments[3] if isinstance(arguments[3], str) else ""
    raw_commission = parse_int(arguments[7]) if len(arguments) > 7 else None

    return SsnInfo(
        name=name,
        active=active,
        stake=stake,
        commission=commission_fraction(raw_commission),
        raw_commission=raw_commission,
    )


# ============================================================================
# CALL-STYLE
# ============================================================================

def decode_call(codec: AbiCodec, lookup: Lookup, value: Value) -> Value:
    """
    Decode an eth_call result with the lookup's declared return types.

    Single-value returns unwrap to the value itself; multi-value returns
    stay a tuple.
    """
    if not isinstance(value, Present):
        return ABSENT
    returns = CALL_QUERIES[lookup.kind].returns

    payload = value.value
    if not isinstance(payload, str):
        logger.debug(f"{lookup!r}: unexpected call result type {type(payload).__name__}")
        return ABSENT
    try:
        data = to_bytes(hexstr=payload)
    except (ValueError, TypeError):
        logger.debug(f"{lookup!r}: result is not hex: {payload!r:.80}")
        return ABSENT
    if not data:
        return ABSENT

    try:
        decoded = codec.decode_return(returns, data)
    except (DecodingError, ValueError, TypeError) as e:
        logger.debug(f"{lookup!r}: decode failed: {e}")
        return ABSENT

    if len(returns) == 1:
        return Present(decoded[0])
    return Present(tuple(decoded))


def decode_commission(value: Value) -> Value:
    """(numerator, denominator) -> fraction; ABSENT on a zero denominator."""
    pair = value_or(value)
    if not isinstance(pair, tuple) or len(pair) != 2:
        return ABSENT
    numerator, denominator = pair
    if denominator == 0:
        return ABSENT
    return Present(numerator / denominator)


def decode_pending_claims(value: Value) -> List[Tuple[int, int]]:
    """uint256[2][] -> [(block_number, amount), ...]."""
    claims = value_or(value, ())
    return [(int(block), int(amount)) for block, amount in claims]


def decode_block_number(value: Value) -> Value:
    parsed = parse_quantity(value_or(value))
    return Present(parsed) if parsed is not None else ABSENT

