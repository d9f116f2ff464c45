"""
Deposit Accounting Module

Pure functions sizing the reserve an asset owner must hold for an asset class
and its metadata, and the amounts to reserve or release when those
parameters change.
"""

from typing import Tuple

from .arithmetic import saturating_add, saturating_mul
from .config import LedgerConfig


def asset_deposit(config: LedgerConfig, max_zombies: int) -> int:
    """
    Deposit backing an asset class.

    base + per_zombie * max_zombies, saturating at the balance bound.
    """
    return saturating_add(
        saturating_mul(config.asset_deposit_per_zombie, max_zombies),
        config.asset_deposit_base
    )


def metadata_deposit(config: LedgerConfig, name: bytes, symbol: bytes) -> int:
    """
    Deposit backing an asset's metadata record.

    base + per_byte * (len(name) + len(symbol)), saturating at the balance bound.
    """
    bytes_used = len(name) + len(symbol)
    return saturating_add(
        saturating_mul(config.metadata_deposit_per_byte, bytes_used),
        config.metadata_deposit_base
    )


def deposit_delta(old: int, new: int) -> Tuple[int, int]:
    """
    Amounts to move when a deposit changes from old to new.

    Returns:
        (to_reserve, to_release); at most one of them is non-zero
    """
    if new > old:
        return new - old, 0
    return 0, old - new
