"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..accounts import AccountEntry
from ..arithmetic import BALANCE_MAX, COUNTER_MAX, U8_MAX
from ..events import EventPayload
from ..registry import AssetClass, AssetMetadata


AssetId = Field(..., ge=0, le=COUNTER_MAX, description="Asset class identifier")


# Asset class schemas
class CreateAssetRequest(BaseModel):
    asset_id: int = AssetId
    max_zombies: int = Field(..., ge=0, le=COUNTER_MAX)
    min_balance: int = Field(..., ge=0, le=BALANCE_MAX)
    feature_code: int = Field(..., ge=0, le=COUNTER_MAX, description="Packed feature point")


class ForceCreateAssetRequest(BaseModel):
    asset_id: int = AssetId
    owner: str = Field(..., min_length=1)
    max_zombies: int = Field(..., ge=0, le=COUNTER_MAX)
    min_balance: int = Field(..., ge=0, le=BALANCE_MAX)


class DestroyAssetRequest(BaseModel):
    zombies_witness: int = Field(..., ge=0, le=COUNTER_MAX)


class TransferOwnershipRequest(BaseModel):
    owner: str = Field(..., min_length=1)


class SetMaxZombiesRequest(BaseModel):
    max_zombies: int = Field(..., ge=0, le=COUNTER_MAX)


class SetMetadataRequest(BaseModel):
    name: str = ""
    symbol: str = ""
    decimals: int = Field(0, ge=0, le=U8_MAX)


# Balance schemas
class MintRequest(BaseModel):
    beneficiary: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=BALANCE_MAX)


class BurnRequest(BaseModel):
    who: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=BALANCE_MAX)


class TransferRequest(BaseModel):
    target: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=BALANCE_MAX)


class ForceTransferRequest(BaseModel):
    source: str = Field(..., min_length=1)
    dest: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=BALANCE_MAX)


# Admin schemas
class RoleGrantRequest(BaseModel):
    asset_id: int = AssetId
    role: str = Field(..., description="issuer, admin or freezer")
    who: str = Field(..., min_length=1)


class FundRequest(BaseModel):
    who: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, le=BALANCE_MAX)


# Response models
class AssetModel(BaseModel):
    asset_id: int
    owner: str
    supply: int
    deposit: int
    max_zombies: int
    min_balance: int
    zombies: int
    accounts: int
    zombie_allowance: int
    is_frozen: bool
    is_featured: bool

    @classmethod
    def from_asset(cls, details: AssetClass) -> 'AssetModel':
        return cls(zombie_allowance=details.zombie_allowance, **details.to_dict())


class MetadataModel(BaseModel):
    asset_id: int
    deposit: int
    name: str
    symbol: str
    decimals: int

    @classmethod
    def from_metadata(cls, metadata: AssetMetadata) -> 'MetadataModel':
        return cls(
            asset_id=metadata.asset_id,
            deposit=metadata.deposit,
            name=metadata.name.decode("utf-8", errors="replace"),
            symbol=metadata.symbol.decode("utf-8", errors="replace"),
            decimals=metadata.decimals
        )


class AccountModel(BaseModel):
    asset_id: int
    holder: str
    balance: int
    is_frozen: bool
    is_zombie: bool

    @classmethod
    def from_entry(cls, entry: AccountEntry) -> 'AccountModel':
        return cls(**entry.to_dict())


class EventResponse(BaseModel):
    event_type: str
    asset_id: int
    data: Dict[str, Any]
    timestamp: str
    event_id: str

    @classmethod
    def from_event(cls, event: EventPayload) -> 'EventResponse':
        return cls(**event.to_dict())


class ErrorDetail(BaseModel):
    error: str
    message: Optional[str] = None
