"""
Dues API Endpoints.

Outstanding balances grouped by the party currently holding them.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.schemas.cash import PartyDuesResponse

router = APIRouter(tags=["Dues"])


@router.get("/buyers/dues", response_model=List[PartyDuesResponse])
async def buyer_dues(
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementService.buyer_dues(db, caller.cold_storage_id)


@router.get("/farmers/dues", response_model=List[PartyDuesResponse])
async def farmer_dues(
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    """Receivables and self-sale dues owed by farmers."""
    return await SettlementService.farmer_dues(db, caller.cold_storage_id)
