"""Address normalization.

Participants, reporters and the controller are Ethereum-style accounts.
Every address entering the core is normalized to its EIP-55 checksum form
so that the same account never appears under two spellings.
"""

from __future__ import annotations

from web3 import Web3


def normalize_address(address: str) -> str:
    """Return the checksum form of address.

    Raises ValueError if address is not a 20-byte hex account.
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)
