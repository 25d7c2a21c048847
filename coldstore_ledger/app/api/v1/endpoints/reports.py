"""
Financial Report API Endpoints.

Balance Sheet and Profit & Loss per financial year, plus the asset and
liability registers they read from.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.reporting.statement_service import StatementService
from coldstore_ledger.app.schemas.reports import (
    AssetCreate, AssetResponse, LiabilityCreate, LiabilityResponse,
    BalanceSheetReport, ProfitAndLossReport,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/balance-sheet/{financial_year}", response_model=BalanceSheetReport)
async def balance_sheet(
    financial_year: str = Path(..., description="Financial year, e.g. 2024-25"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Balance Sheet as of March 31 of the year.

    An imbalance is reported in the warning field, never as an error.
    """
    return await StatementService.balance_sheet(db, caller.cold_storage_id, financial_year)


@router.get("/profit-and-loss/{financial_year}", response_model=ProfitAndLossReport)
async def profit_and_loss(
    financial_year: str = Path(..., description="Financial year, e.g. 2024-25"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await StatementService.profit_and_loss(db, caller.cold_storage_id, financial_year)


@router.post("/assets", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def add_asset(
    payload: AssetCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    asset = await StatementService.add_asset(db, caller, payload)
    await db.commit()
    return asset


@router.post("/liabilities", response_model=LiabilityResponse, status_code=status.HTTP_201_CREATED)
async def add_liability(
    payload: LiabilityCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    liability = await StatementService.add_liability(db, caller, payload)
    await db.commit()
    return liability
