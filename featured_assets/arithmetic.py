"""
Bounded Unsigned Arithmetic Module

Balances, deposits and counters are unsigned integers of fixed width.
Ledger code never uses raw ``+``/``-`` on them: every operation goes through
one of the checked or saturating helpers below so that overflow behaviour is
explicit at the call site.
"""

from typing import Optional


U8_MAX = (1 << 8) - 1
U32_MAX = (1 << 32) - 1
U128_MAX = (1 << 128) - 1

# Balance and deposit domain
BALANCE_MAX = U128_MAX
# zombies / accounts / max_zombies domain
COUNTER_MAX = U32_MAX


def checked_add(a: int, b: int, maximum: int = BALANCE_MAX) -> Optional[int]:
    """Return a + b, or None when the result leaves [0, maximum]"""
    result = a + b
    if result > maximum:
        return None
    return result


def checked_sub(a: int, b: int) -> Optional[int]:
    """Return a - b, or None when the result would be negative"""
    if b > a:
        return None
    return a - b


def saturating_add(a: int, b: int, maximum: int = BALANCE_MAX) -> int:
    """Return a + b clamped to maximum"""
    return min(a + b, maximum)


def saturating_sub(a: int, b: int) -> int:
    """Return a - b clamped to zero"""
    return max(a - b, 0)


def saturating_mul(a: int, b: int, maximum: int = BALANCE_MAX) -> int:
    """Return a * b clamped to maximum"""
    return min(a * b, maximum)


def is_unsigned(value: int, maximum: int = BALANCE_MAX) -> bool:
    """Check that value is an int within [0, maximum]"""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= maximum
