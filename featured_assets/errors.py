"""
Ledger Error Taxonomy

Every failing ledger operation reports exactly one ErrorKind. Inside the core
the kind travels as an AssetError so the staged view unwinds; the dispatcher
turns it back into a plain outcome value.
"""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of ledger failure outcomes"""
    AMOUNT_ZERO = "AmountZero"              # Transfer amount should be non-zero
    BALANCE_LOW = "BalanceLow"              # Balance below amount or below min_balance
    BALANCE_ZERO = "BalanceZero"            # Holder has no entry for the asset
    NO_PERMISSION = "NoPermission"          # Caller lacks the required role or ownership
    UNKNOWN = "Unknown"                     # Asset id is not in use
    FROZEN = "Frozen"                       # Holder entry or asset class is frozen
    IN_USE = "InUse"                        # Asset id is already taken
    TOO_MANY_ZOMBIES = "TooManyZombies"     # Zombie capacity exhausted or shrunk below usage
    REFS_LEFT = "RefsLeft"                  # Non-zombie holders still exist
    BAD_WITNESS = "BadWitness"              # Zombie witness below the actual zombie count
    MIN_BALANCE_ZERO = "MinBalanceZero"     # min_balance must be non-zero
    OVERFLOW = "Overflow"                   # Supply or account counter overflow
    BAD_STATE = "BadState"                  # Internal invariant violation
    BAD_METADATA = "BadMetadata"            # Name or symbol exceeds the string limit
    BAD_FEATURE_POINT = "BadFeaturePoint"   # Feature code must be non-zero
    INSUFFICIENT_FUNDS = "InsufficientFunds"  # Deposit could not be reserved
    BAD_ORIGIN = "BadOrigin"                # Call dispatched from the wrong origin class


class AssetError(Exception):
    """Raised by ledger components when an operation precondition fails"""

    def __init__(self, kind: ErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"AssetError({self.kind.value!r})"


def ensure(condition: bool, kind: ErrorKind, message: str = "") -> None:
    """Raise AssetError(kind) unless condition holds"""
    if not condition:
        raise AssetError(kind, message)
