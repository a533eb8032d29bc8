"""
zilstake/address.py

Account address normalization.

Queries key legacy state maps by the lowercase `0x` form of an address,
so every account is normalized once before any query is built.
"""

from eth_utils import add_0x_prefix, is_hex_address, remove_0x_prefix


class InvalidAddressError(ValueError):
    """Raised when an account address cannot be normalized."""
    pass


def is_bech32(address: str) -> bool:
    """Check for the legacy `zil1...` human-readable form."""
    return isinstance(address, str) and address.lower().startswith("zil1")


def normalize_address(address: str) -> str:
    """
    Convert an address to its canonical lowercase `0x` form.

    Args:
        address: 40-hex-digit address, with or without `0x` prefix

    Returns:
        Lowercase address with `0x` prefix

    Raises:
        InvalidAddressError: If the address is not a hex address
    """
    if not isinstance(address, str):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    address = address.strip()
    if is_bech32(address):
        raise InvalidAddressError(
            f"Bech32 addresses are not supported, convert to hex first: {address}"
        )
    if not is_hex_address(address):
        raise InvalidAddressError(f"Invalid address: {address}")
    return add_0x_prefix(address.lower())


def strip_prefix(address: str) -> str:
    """Lowercase address without `0x`, the form the legacy API expects for contracts."""
    return remove_0x_prefix(address.lower())
