"""
Reversal API Endpoint.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.reversal_service import ReversalService
from coldstore_ledger.app.models.enums import ReversibleEntity
from coldstore_ledger.app.schemas.reversal import ReversalResponse

router = APIRouter(prefix="/reversals", tags=["Reversals"])


@router.post("/{entity_type}/{entity_id}", response_model=ReversalResponse)
async def reverse_entity(
    entity_type: ReversibleEntity = Path(..., description="exit, receipt, expense, cash_transfer, discount, transfer or sale"),
    entity_id: int = Path(..., description="Record ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Reverse a ledger record and replay every party it touched.

    Reversing a record twice returns 200 with status "noop".
    """
    result = await ReversalService.reverse(db, caller, entity_type, entity_id)
    await db.commit()
    return ReversalResponse(**asdict(result))
