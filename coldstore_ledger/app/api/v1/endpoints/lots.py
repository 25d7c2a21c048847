"""
Lot API Endpoints.

Lot entry, edits, the up-for-sale flag, partial and final sales, lot
history and entry bill numbers.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.schemas.lot import (
    LotCreate, LotUpdate, LotResponse, UpForSaleRequest, LotHistoryResponse,
    PartialSaleCreate, FinalizeSaleCreate,
)
from coldstore_ledger.app.schemas.sale import SaleResponse

router = APIRouter(prefix="/lots", tags=["Lots"])


@router.post("", response_model=LotResponse, status_code=status.HTTP_201_CREATED)
async def create_lot(
    payload: LotCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """Record a new lot at entry. The lot number comes from the lot counter when omitted."""
    lot = await LotService.create_lot(db, caller, payload)
    await db.commit()
    return lot


@router.get("/{lot_id}", response_model=LotResponse)
async def get_lot(
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await LotService.get_lot(db, caller.cold_storage_id, lot_id)


@router.patch("/{lot_id}", response_model=LotResponse)
async def edit_lot(
    payload: LotUpdate,
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit a lot's non-financial fields.

    Sizes, charges and deductions are rejected with 400; they only change
    through sales and reversals.
    """
    lot = await LotService.edit_lot(db, caller, lot_id, payload.model_dump(exclude_unset=True))
    await db.commit()
    return lot


@router.post("/{lot_id}/up-for-sale", response_model=LotResponse)
async def set_up_for_sale(
    payload: UpForSaleRequest,
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    lot = await LotService.set_up_for_sale(db, caller, lot_id, payload.up_for_sale)
    await db.commit()
    return lot


@router.get("/{lot_id}/history", response_model=List[LotHistoryResponse])
async def get_lot_history(
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await LotService.get_history(db, caller.cold_storage_id, lot_id)


@router.post("/{lot_id}/partial-sale", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def record_partial_sale(
    payload: PartialSaleCreate,
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Sell part of a lot.

    Validates:
    - 0 < quantity <= remaining bags
    - Partial payments lie between 0 and the total charge
    - Quintal billing has a net weight
    """
    sale = await LotService.record_partial_sale(db, caller, lot_id, payload)
    await db.commit()
    return sale


@router.post("/{lot_id}/finalize-sale", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def finalize_sale(
    payload: FinalizeSaleCreate,
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """Sell every remaining bag of the lot and mark it sold."""
    sale = await LotService.finalize_sale(db, caller, lot_id, payload)
    await db.commit()
    return sale


@router.post("/{lot_id}/entry-bill-number", response_model=LotResponse)
async def assign_entry_bill_number(
    lot_id: int = Path(..., description="Lot ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    lot = await LotService.assign_entry_bill_number(db, caller, lot_id)
    await db.commit()
    return lot
