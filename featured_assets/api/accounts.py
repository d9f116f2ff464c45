"""
Balance and account flag endpoints
"""

from fastapi import APIRouter, HTTPException, Depends

from .dependencies import event_or_error, get_caller, get_ledger_system
from .schemas import (
    AccountModel, BurnRequest, ForceTransferRequest, MintRequest, TransferRequest
)
from ..dispatch import LedgerSystem


router = APIRouter()


@router.post("/{asset_id}/mint")
async def mint(
    asset_id: int,
    request: MintRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Issue new units to a beneficiary"""
    return event_or_error(system.dispatcher.mint(caller, asset_id, request.beneficiary, request.amount))


@router.post("/{asset_id}/burn")
async def burn(
    asset_id: int,
    request: BurnRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Burn units from a holder"""
    return event_or_error(system.dispatcher.burn(caller, asset_id, request.who, request.amount))


@router.post("/{asset_id}/transfer")
async def transfer(
    asset_id: int,
    request: TransferRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfer units from the caller to a target"""
    return event_or_error(system.dispatcher.transfer(caller, asset_id, request.target, request.amount))


@router.post("/{asset_id}/force-transfer")
async def force_transfer(
    asset_id: int,
    request: ForceTransferRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Move units between holders as an asset admin"""
    outcome = system.dispatcher.force_transfer(
        caller, asset_id, request.source, request.dest, request.amount
    )
    return event_or_error(outcome)


@router.get("/{asset_id}/accounts")
async def list_accounts(asset_id: int, system: LedgerSystem = Depends(get_ledger_system)):
    """List holders of an asset class"""
    return [AccountModel.from_entry(e).model_dump() for e in system.dispatcher.holders(asset_id)]


@router.get("/{asset_id}/accounts/{holder}")
async def get_account(
    asset_id: int,
    holder: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get the balance entry of a holder"""
    entry = system.dispatcher.account(asset_id, holder)
    if not entry:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountModel.from_entry(entry).model_dump()


@router.post("/{asset_id}/accounts/{holder}/freeze")
async def freeze_account(
    asset_id: int,
    holder: str,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Block a holder from sending the asset"""
    return event_or_error(system.dispatcher.freeze(caller, asset_id, holder))


@router.post("/{asset_id}/accounts/{holder}/thaw")
async def thaw_account(
    asset_id: int,
    holder: str,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Allow a holder to send the asset again"""
    return event_or_error(system.dispatcher.thaw(caller, asset_id, holder))
