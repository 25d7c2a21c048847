"""
Season API Endpoints.

Checks and performs the end-of-season reset of lots and counters.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.schemas.lot import ResetCheckResponse, ResetResponse

router = APIRouter(prefix="/season", tags=["Season"])


@router.get("/reset-check", response_model=ResetCheckResponse)
async def reset_check(
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await LotService.reset_check(db, caller.cold_storage_id)


@router.post("/reset", response_model=ResetResponse)
async def reset_season(
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete every lot and reset the lot and bill counters.

    Refused with 409 while any lot still has bags. Sales, exits and the
    cash book are kept.
    """
    summary = await LotService.reset_season(db, caller)
    await db.commit()
    return summary
