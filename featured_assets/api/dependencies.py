"""
Ledger system and caller identity dependencies
"""

import hmac
from typing import Optional
from fastapi import Depends, Header, HTTPException, status

from .schemas import ErrorDetail, EventResponse
from ..dispatch import DispatchOutcome, LedgerSystem
from ..errors import ErrorKind


UNPROCESSABLE = 422

# Error kind -> HTTP status; anything unlisted is a 400
ERROR_STATUS = {
    ErrorKind.UNKNOWN: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_PERMISSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.BAD_ORIGIN: status.HTTP_403_FORBIDDEN,
    ErrorKind.IN_USE: status.HTTP_409_CONFLICT,
    ErrorKind.REFS_LEFT: status.HTTP_409_CONFLICT,
    ErrorKind.AMOUNT_ZERO: UNPROCESSABLE,
    ErrorKind.MIN_BALANCE_ZERO: UNPROCESSABLE,
    ErrorKind.BAD_FEATURE_POINT: UNPROCESSABLE,
    ErrorKind.BAD_METADATA: UNPROCESSABLE,
}


_ledger_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    """Process-wide ledger, built from configuration on first use"""
    global _ledger_system
    if _ledger_system is None:
        _ledger_system = LedgerSystem()
    return _ledger_system


def get_caller(x_caller: Optional[str] = Header(None)) -> str:
    """Signed identity of the request, taken from the X-Caller header"""
    if not x_caller:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Caller header required"
        )
    return x_caller


def require_root(
    x_force_key: Optional[str] = Header(None),
    system: LedgerSystem = Depends(get_ledger_system)
) -> None:
    """Authorize privileged routes against the configured force key"""
    expected = system.config.force_origin_key
    if not x_force_key or not hmac.compare_digest(x_force_key, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Valid X-Force-Key header required"
        )


def event_or_error(outcome: DispatchOutcome) -> dict:
    """Serialize a successful outcome, or raise the matching HTTPException"""
    if not outcome.ok:
        detail = ErrorDetail(error=outcome.error.value, message=outcome.message or None)
        raise HTTPException(
            status_code=ERROR_STATUS.get(outcome.error, status.HTTP_400_BAD_REQUEST),
            detail=detail.model_dump()
        )
    return EventResponse.from_event(outcome.event).model_dump()
