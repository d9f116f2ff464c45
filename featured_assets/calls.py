"""
Ledger Calls Module

The closed set of operations a caller may dispatch against the ledger, and
the origin a call is dispatched from. Call objects validate the numeric
domain of their fields on construction.
"""

from dataclasses import dataclass, fields
from typing import Optional, ClassVar

from .arithmetic import BALANCE_MAX, COUNTER_MAX, U8_MAX, is_unsigned


@dataclass(frozen=True)
class Origin:
    """Where a call comes from: a signed identity or the privileged root"""
    who: Optional[str] = None
    is_root: bool = False

    @classmethod
    def signed(cls, who: str) -> 'Origin':
        if not who:
            raise ValueError("Signed origin requires an identity")
        return cls(who=who)

    @classmethod
    def root(cls) -> 'Origin':
        return cls(is_root=True)

    @property
    def label(self) -> str:
        return "root" if self.is_root else str(self.who)


# Field name -> inclusive upper bound of its unsigned domain
_BOUNDS = {
    "asset_id": COUNTER_MAX,
    "max_zombies": COUNTER_MAX,
    "zombies_witness": COUNTER_MAX,
    "feature_code": COUNTER_MAX,
    "min_balance": BALANCE_MAX,
    "amount": BALANCE_MAX,
    "decimals": U8_MAX,
}


@dataclass(frozen=True)
class Call:
    """Base class of ledger calls"""
    call_name: ClassVar[str] = "call"
    privileged: ClassVar[bool] = False

    asset_id: int

    def __post_init__(self):
        for f in fields(self):
            bound = _BOUNDS.get(f.name)
            if bound is not None and not is_unsigned(getattr(self, f.name), bound):
                raise ValueError(f"{self.call_name}: {f.name} must be an integer in [0, {bound}]")


@dataclass(frozen=True)
class Create(Call):
    call_name: ClassVar[str] = "create"
    max_zombies: int = 0
    min_balance: int = 0
    feature_code: int = 0


@dataclass(frozen=True)
class ForceCreate(Call):
    call_name: ClassVar[str] = "force_create"
    privileged: ClassVar[bool] = True
    owner: str = ""
    max_zombies: int = 0
    min_balance: int = 0


@dataclass(frozen=True)
class Destroy(Call):
    call_name: ClassVar[str] = "destroy"
    zombies_witness: int = 0


@dataclass(frozen=True)
class ForceDestroy(Call):
    call_name: ClassVar[str] = "force_destroy"
    privileged: ClassVar[bool] = True
    zombies_witness: int = 0


@dataclass(frozen=True)
class Mint(Call):
    call_name: ClassVar[str] = "mint"
    beneficiary: str = ""
    amount: int = 0


@dataclass(frozen=True)
class Burn(Call):
    call_name: ClassVar[str] = "burn"
    who: str = ""
    amount: int = 0


@dataclass(frozen=True)
class Transfer(Call):
    call_name: ClassVar[str] = "transfer"
    target: str = ""
    amount: int = 0


@dataclass(frozen=True)
class ForceTransfer(Call):
    call_name: ClassVar[str] = "force_transfer"
    source: str = ""
    dest: str = ""
    amount: int = 0


@dataclass(frozen=True)
class Freeze(Call):
    call_name: ClassVar[str] = "freeze"
    who: str = ""


@dataclass(frozen=True)
class Thaw(Call):
    call_name: ClassVar[str] = "thaw"
    who: str = ""


@dataclass(frozen=True)
class FreezeAsset(Call):
    call_name: ClassVar[str] = "freeze_asset"


@dataclass(frozen=True)
class ThawAsset(Call):
    call_name: ClassVar[str] = "thaw_asset"


@dataclass(frozen=True)
class TransferOwnership(Call):
    call_name: ClassVar[str] = "transfer_ownership"
    owner: str = ""


@dataclass(frozen=True)
class SetMaxZombies(Call):
    call_name: ClassVar[str] = "set_max_zombies"
    max_zombies: int = 0


@dataclass(frozen=True)
class SetMetadata(Call):
    call_name: ClassVar[str] = "set_metadata"
    name: bytes = b""
    symbol: bytes = b""
    decimals: int = 0

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.name, (bytes, bytearray)) or not isinstance(self.symbol, (bytes, bytearray)):
            raise ValueError("set_metadata: name and symbol must be bytes")
