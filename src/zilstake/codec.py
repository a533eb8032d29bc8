"""
zilstake/codec.py

ABI codec for view-function calls.

Wraps eth_abi/eth_utils behind the two operations the query builder and
decoder need:
- encode_call(signature, args) -> calldata bytes
- decode_return(types, data) -> tuple of decoded values
"""

from typing import Any, List, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector


__all__ = ["AbiCodec", "DecodingError", "argument_types"]


def argument_types(signature: str) -> List[str]:
    """
    Extract argument types from a flat function signature.

    Example:
        argument_types("balanceOf(address)") -> ["address"]
        argument_types("getStake()") -> []
    """
    start = signature.find("(")
    if start < 0 or not signature.endswith(")"):
        raise ValueError(f"Malformed function signature: {signature}")
    inner = signature[start + 1:-1].strip()
    if not inner:
        return []
    return [part.strip() for part in inner.split(",")]


class AbiCodec:
    """Stateless ABI encoder/decoder backed by eth_abi."""

    def encode_call(self, signature: str, args: Sequence[Any] = ()) -> bytes:
        """
        Build calldata: 4-byte selector followed by encoded arguments.

        Args:
            signature: Canonical signature, e.g. "balanceOf(address)"
            args: Argument values in signature order

        Returns:
            Calldata bytes
        """
        selector = function_signature_to_4byte_selector(signature)
        types = argument_types(signature)
        if len(types) != len(args):
            raise ValueError(f"{signature} takes {len(types)} arguments, got {len(args)}")
        if not types:
            return selector
        return selector + encode(types, list(args))

    def decode_return(self, types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
        """
        Decode return data.

        Raises:
            DecodingError: If data does not match the declared types
        """
        return decode(list(types), data)
