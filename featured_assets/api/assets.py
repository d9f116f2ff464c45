"""
Asset class endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import event_or_error, get_caller, get_ledger_system
from .schemas import (
    AssetModel, CreateAssetRequest, DestroyAssetRequest, MetadataModel,
    SetMaxZombiesRequest, SetMetadataRequest, TransferOwnershipRequest
)
from ..dispatch import LedgerSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    request: CreateAssetRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new asset class owned by the caller"""
    outcome = system.dispatcher.create(
        caller, request.asset_id, request.max_zombies,
        request.min_balance, request.feature_code
    )
    return event_or_error(outcome)


@router.get("")
async def list_assets(system: LedgerSystem = Depends(get_ledger_system)):
    """List all asset classes"""
    return [AssetModel.from_asset(a).model_dump() for a in system.registry.list_assets()]


@router.get("/{asset_id}")
async def get_asset(asset_id: int, system: LedgerSystem = Depends(get_ledger_system)):
    """Get asset class details"""
    details = system.dispatcher.asset_details(asset_id)
    if not details:
        raise HTTPException(status_code=404, detail="Asset not found")
    return AssetModel.from_asset(details).model_dump()


@router.post("/{asset_id}/destroy")
async def destroy_asset(
    asset_id: int,
    request: DestroyAssetRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Destroy an asset class owned by the caller"""
    return event_or_error(system.dispatcher.destroy(caller, asset_id, request.zombies_witness))


@router.post("/{asset_id}/owner")
async def transfer_ownership(
    asset_id: int,
    request: TransferOwnershipRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Hand the asset class to a new owner"""
    return event_or_error(system.dispatcher.transfer_ownership(caller, asset_id, request.owner))


@router.post("/{asset_id}/max-zombies")
async def set_max_zombies(
    asset_id: int,
    request: SetMaxZombiesRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Resize the zombie capacity of an asset class"""
    return event_or_error(system.dispatcher.set_max_zombies(caller, asset_id, request.max_zombies))


@router.post("/{asset_id}/freeze")
async def freeze_asset(
    asset_id: int,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Freeze transfers of the asset for every holder"""
    return event_or_error(system.dispatcher.freeze_asset(caller, asset_id))


@router.post("/{asset_id}/thaw")
async def thaw_asset(
    asset_id: int,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Thaw transfers of the asset"""
    return event_or_error(system.dispatcher.thaw_asset(caller, asset_id))


@router.put("/{asset_id}/metadata")
async def set_metadata(
    asset_id: int,
    request: SetMetadataRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Set or clear name, symbol and decimals"""
    outcome = system.dispatcher.set_metadata(
        caller, asset_id, request.name.encode("utf-8"),
        request.symbol.encode("utf-8"), request.decimals
    )
    return event_or_error(outcome)


@router.get("/{asset_id}/metadata")
async def get_metadata(asset_id: int, system: LedgerSystem = Depends(get_ledger_system)):
    """Get asset metadata"""
    metadata = system.dispatcher.metadata(asset_id)
    if not metadata:
        raise HTTPException(status_code=404, detail="Metadata not set")
    return MetadataModel.from_metadata(metadata).model_dump()


@router.get("/{asset_id}/feature")
async def get_feature(asset_id: int, system: LedgerSystem = Depends(get_ledger_system)):
    """Get the feature point of an asset class"""
    feature = system.dispatcher.feature(asset_id)
    if not feature:
        raise HTTPException(status_code=404, detail="Feature not found")
    return {"asset_id": asset_id, **feature.describe()}


@router.get("/{asset_id}/supply")
async def get_supply(asset_id: int, system: LedgerSystem = Depends(get_ledger_system)):
    """Get total supply and remaining zombie slots"""
    return {
        "asset_id": asset_id,
        "total_supply": system.dispatcher.total_supply(asset_id),
        "zombie_allowance": system.dispatcher.zombie_allowance(asset_id)
    }
