"""
Privileged endpoints: forced asset lifecycle, role grants, funding and host accounts

Every route requires the X-Force-Key header.
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import event_or_error, get_ledger_system, require_root
from .schemas import (
    DestroyAssetRequest, EventResponse, ForceCreateAssetRequest, FundRequest, RoleGrantRequest
)
from ..dispatch import LedgerSystem
from ..events import LedgerEvent
from ..roles import AssetRole


router = APIRouter(dependencies=[Depends(require_root)])


def _parse_role(role: str) -> AssetRole:
    try:
        return AssetRole(role)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown role: {role}")


@router.post("/assets", status_code=status.HTTP_201_CREATED)
async def force_create_asset(
    request: ForceCreateAssetRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create an asset class without a deposit"""
    outcome = system.dispatcher.force_create(
        request.asset_id, request.owner, request.max_zombies, request.min_balance
    )
    return event_or_error(outcome)


@router.post("/assets/{asset_id}/destroy")
async def force_destroy_asset(
    asset_id: int,
    request: DestroyAssetRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Destroy an asset class regardless of its owner"""
    return event_or_error(system.dispatcher.force_destroy(asset_id, request.zombies_witness))


@router.post("/roles", status_code=status.HTTP_201_CREATED)
async def grant_role(request: RoleGrantRequest, system: LedgerSystem = Depends(get_ledger_system)):
    """Grant an asset role"""
    grant = system.asset_admin.grant(request.asset_id, _parse_role(request.role), request.who)
    return grant.to_dict()


@router.delete("/roles/{asset_id}/{role}/{who}")
async def revoke_role(
    asset_id: int,
    role: str,
    who: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Revoke an asset role"""
    if not system.asset_admin.revoke(asset_id, _parse_role(role), who):
        raise HTTPException(status_code=404, detail="Role grant not found")
    return {"message": "Role revoked"}


@router.get("/roles/{asset_id}/{who}")
async def get_roles(asset_id: int, who: str, system: LedgerSystem = Depends(get_ledger_system)):
    """List the roles of an identity over an asset class"""
    roles = system.asset_admin.roles_of(asset_id, who)
    return {"asset_id": asset_id, "who": who, "roles": sorted(r.value for r in roles)}


@router.post("/funds")
async def fund(request: FundRequest, system: LedgerSystem = Depends(get_ledger_system)):
    """Credit the deposit currency to an identity"""
    free = system.currency.deposit_creating(request.who, request.amount)
    return {"who": request.who, "free": free, "reserved": system.currency.reserved_balance(request.who)}


@router.get("/funds/{who}")
async def get_funds(who: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Free and reserved deposit currency of an identity"""
    return {
        "who": who,
        "free": system.currency.free_balance(who),
        "reserved": system.currency.reserved_balance(who)
    }


@router.post("/host-accounts/{who}")
async def add_host_account(who: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Register an identity in the host account registry"""
    system.account_registry.inc_providers(who)
    return {"who": who, "providers": system.account_registry.providers(who)}


@router.delete("/host-accounts/{who}")
async def remove_host_account(who: str, system: LedgerSystem = Depends(get_ledger_system)):
    """Drop a provider reference from an identity"""
    try:
        system.account_registry.dec_providers(who)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"who": who, "providers": system.account_registry.providers(who)}


@router.get("/events")
async def list_events(
    asset_id: Optional[int] = None,
    event_type: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Recently published ledger events"""
    kind = None
    if event_type:
        try:
            kind = LedgerEvent(event_type)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown event type: {event_type}")
    events = system.event_log.events(asset_id=asset_id, event_type=kind)
    return [EventResponse.from_event(e).model_dump() for e in events]
