"""
zilstake/rpc - Batched JSON-RPC access to a Zilliqa node.

Builds query batches, sends them in one round trip, and correlates the
out-of-order, partially failing responses back to their logical lookups.
"""

from .client import JsonRpcClient, RpcError, TransportError, ProtocolError
from .queries import (
    Lookup,
    LookupKind,
    QueryBuilder,
    build_queries,
    phase_one_lookups,
    phase_two_lookups,
)
from .correlator import correlate, classify

__all__ = [
    "JsonRpcClient",
    "RpcError",
    "TransportError",
    "ProtocolError",
    "Lookup",
    "LookupKind",
    "QueryBuilder",
    "build_queries",
    "phase_one_lookups",
    "phase_two_lookups",
    "correlate",
    "classify",
]
