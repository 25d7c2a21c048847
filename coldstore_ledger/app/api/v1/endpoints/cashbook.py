"""
Cash Book API Endpoints.

Receipts, expenses, internal cash transfers, discounts and farmer
receivables.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.exceptions import ResourceNotFoundError
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.cashbook_service import CashbookService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.cash_receipt import CashReceipt
from coldstore_ledger.app.models.discount import Discount
from coldstore_ledger.app.schemas.cash import (
    ReceiptCreate, ReceiptResponse, ExpenseCreate, ExpenseResponse,
    CashTransferCreate, CashTransferResponse, DiscountCreate, DiscountResponse,
    DiscountAllocationResponse, FarmerReceivableCreate, FarmerReceivableResponse,
)

router = APIRouter(tags=["Cash Book"])


def _discount_response(discount, allocations) -> DiscountResponse:
    response = DiscountResponse.model_validate(discount)
    response.allocations = [DiscountAllocationResponse.model_validate(a) for a in allocations]
    return response


@router.post("/receipts", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def record_receipt(
    payload: ReceiptCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Record cash received.

    Merchant and farmer receipts are applied FIFO to the party's open dues;
    anything left stays unapplied on the receipt for later dues. Other payer
    types are recorded as income.
    """
    receipt = await SettlementService.record_receipt(db, caller, payload)
    await db.commit()
    return receipt


@router.get("/receipts/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt(
    receipt_id: int = Path(..., description="Receipt ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    receipt = (await db.execute(
        select(CashReceipt).where(CashReceipt.id == receipt_id, CashReceipt.cold_storage_id == caller.cold_storage_id)
    )).scalar_one_or_none()
    if not receipt:
        raise ResourceNotFoundError("Receipt", receipt_id)
    return receipt


@router.post("/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def record_expense(
    payload: ExpenseCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    expense = await CashbookService.record_expense(db, caller, payload)
    await db.commit()
    return expense


@router.post("/cash-transfers", response_model=CashTransferResponse, status_code=status.HTTP_201_CREATED)
async def record_cash_transfer(
    payload: CashTransferCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    transfer = await CashbookService.record_cash_transfer(db, caller, payload)
    await db.commit()
    return transfer


@router.post("/discounts", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
async def record_discount(
    payload: DiscountCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Give a farmer a discount split across the buyers holding that farmer's sales.

    Allocations must add up to the total, and no buyer's share may exceed
    its open dues for the farmer.
    """
    discount, allocations = await CashbookService.record_discount(db, caller, payload)
    await db.commit()
    return _discount_response(discount, allocations)


@router.get("/discounts/{discount_id}", response_model=DiscountResponse)
async def get_discount(
    discount_id: int = Path(..., description="Discount ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    discount = (await db.execute(
        select(Discount).where(Discount.id == discount_id, Discount.cold_storage_id == caller.cold_storage_id)
    )).scalar_one_or_none()
    if not discount:
        raise ResourceNotFoundError("Discount", discount_id)
    allocations = await CashbookService.get_discount_allocations(db, discount.id)
    return _discount_response(discount, allocations)


@router.post("/farmer-receivables", response_model=FarmerReceivableResponse, status_code=status.HTTP_201_CREATED)
async def record_farmer_receivable(
    payload: FarmerReceivableCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    receivable = await CashbookService.record_farmer_receivable(db, caller, payload)
    await db.commit()
    return receivable
