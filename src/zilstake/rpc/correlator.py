"""
zilstake/rpc/correlator.py

Response correlator.

Maps raw batch entries back to the lookups that produced them, by id only.
Response order is never relied on. Anything that is not a usable result
(error marker, null, empty payload, missing entry) becomes ABSENT; absence
never aborts the batch.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..values import ABSENT, Present, Value
from .queries import Lookup

logger = logging.getLogger("zilstake.rpc.correlator")

# Payloads that mean "no data"
EMPTY_RESULTS = ("", "0x")


def _entry_id(entry: Any) -> Optional[int]:
    if not isinstance(entry, dict):
        return None
    raw_id = entry.get("id")
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, int):
        return raw_id
    if isinstance(raw_id, str) and raw_id.isdigit():
        return int(raw_id)
    return None


def classify(entry: Dict[str, Any]) -> Value:
    """Present(result) for a usable entry, ABSENT otherwise."""
    if entry.get("error"):
        return ABSENT
    result = entry.get("result")
    if result is None or result == {} or result in EMPTY_RESULTS:
        return ABSENT
    return Present(result)


def correlate(raw: Iterable[Any], table: Mapping[int, Lookup]) -> Dict[Lookup, Value]:
    """
    Rebuild lookup -> value from a raw batch response.

    Args:
        raw: Response entries in any order
        table: Correlation id -> lookup, from the query builder

    Returns:
        Every lookup in the table, mapped to Present(result) or ABSENT
    """
    results: Dict[Lookup, Value] = {lookup: ABSENT for lookup in table.values()}
    seen = set()

    for entry in raw:
        request_id = _entry_id(entry)
        lookup = table.get(request_id) if request_id is not None else None
        if lookup is None:
            logger.debug(f"Ignoring response entry with unknown id: {entry!r:.120}")
            continue
        if request_id in seen:
            logger.debug(f"Ignoring duplicate response for id {request_id}")
            continue
        seen.add(request_id)

        value = classify(entry)
        if value is ABSENT and entry.get("error"):
            logger.debug(f"{lookup!r} failed: {entry['error']}")
        results[lookup] = value

    missing = len(table) - len(seen)
    if missing:
        logger.debug(f"{missing} of {len(table)} lookups had no response entry")
    return results
