"""
Sale API Endpoints.

Sale corrections, edit history, exits and bill numbers.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.core.timeutil import utcnow
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.exit_service import ExitService
from coldstore_ledger.app.domain.ledger.sale_service import SaleService
from coldstore_ledger.app.models.enums import ReversibleEntity
from coldstore_ledger.app.schemas.reversal import ReversalResponse
from coldstore_ledger.app.schemas.sale import (
    SaleResponse, SaleUpdate, SaleEditHistoryResponse, BillNumberRequest, BillNumberResponse,
    ExitCreate, ExitResponse, ExitListResponse,
)

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await SaleService.get_sale(db, caller.cold_storage_id, sale_id)


@router.patch("/{sale_id}", response_model=SaleResponse)
async def update_sale(
    payload: SaleUpdate,
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Correct a sale. One edit-history row is written per changed field.

    Changing the buyer moves the sale's dues to the new buyer.
    """
    sale = await SaleService.update_sale(db, caller, sale_id, payload.model_dump(exclude_unset=True))
    await db.commit()
    return sale


@router.get("/{sale_id}/edit-history", response_model=List[SaleEditHistoryResponse])
async def get_sale_edit_history(
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await SaleService.get_edit_history(db, caller.cold_storage_id, sale_id)


@router.post("/{sale_id}/exits", response_model=ExitResponse, status_code=status.HTTP_201_CREATED)
async def record_exit(
    payload: ExitCreate,
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """Record bags physically leaving the store against a sale. Each exit gets the next exit bill number."""
    exit_row = await ExitService.record_exit(db, caller, sale_id, payload.bags_exited, payload.exit_date)
    await db.commit()
    return exit_row


@router.get("/{sale_id}/exits", response_model=ExitListResponse)
async def list_exits(
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    sale, exits, total = await ExitService.list_exits(db, caller.cold_storage_id, sale_id)
    return ExitListResponse(
        sale_id=sale.id,
        quantity_sold=sale.quantity_sold,
        total_exited=total,
        exits=[ExitResponse.model_validate(row) for row in exits],
    )


@router.post("/{sale_id}/exits/reverse-latest", response_model=ReversalResponse)
async def reverse_latest_exit(
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    exit_row = await ExitService.reverse_latest_exit(db, caller, sale_id)
    await db.commit()
    if exit_row is None:
        return ReversalResponse(
            entity_type=ReversibleEntity.EXIT,
            entity_id=0,
            status="noop",
            reversed_at=None,
            message=f"Sale {sale_id} has no exit to reverse",
        )
    return ReversalResponse(
        entity_type=ReversibleEntity.EXIT,
        entity_id=exit_row.id,
        status="reversed",
        reversed_at=exit_row.reversed_at or utcnow(),
        message=f"exit {exit_row.id} reversed",
    )


@router.post("/{sale_id}/bill-number", response_model=BillNumberResponse)
async def assign_bill_number(
    payload: BillNumberRequest,
    sale_id: int = Path(..., description="Sale ID"),
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """Assign a cold-storage or sales bill number. Repeat calls return the same number."""
    number = await SaleService.assign_bill_number(db, caller, sale_id, payload.bill_type)
    await db.commit()
    return BillNumberResponse(sale_id=sale_id, bill_type=payload.bill_type, bill_number=number)
