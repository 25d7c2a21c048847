"""
Transfer API Endpoints.

Moves dues from a buyer's sale, or from a farmer, onto another buyer.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.exceptions import ResourceNotFoundError
from coldstore_ledger.app.core.guards import require_edit_access
from coldstore_ledger.app.db.session import get_db
from coldstore_ledger.app.domain.ledger.transfer_service import TransferService
from coldstore_ledger.app.models.transfer import Transfer
from coldstore_ledger.app.schemas.transfer import TransferCreate, TransferResponse, TransferLegResponse

router = APIRouter(prefix="/transfers", tags=["Transfers"])


def _transfer_response(transfer, legs) -> TransferResponse:
    response = TransferResponse.model_validate(transfer)
    response.legs = [TransferLegResponse.model_validate(leg) for leg in legs]
    return response


@router.post("", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def record_transfer(
    payload: TransferCreate,
    caller: CallerContext = Depends(require_edit_access),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a transfer.

    Both parties are locked in party-key order. The response carries the
    out and in legs with each party's balance right after the transfer.
    """
    transfer, legs = await TransferService.record_transfer(db, caller, payload)
    await db.commit()
    return _transfer_response(transfer, legs)


@router.get("/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    transfer_id: int = Path(..., description="Transfer ID"),
    caller: CallerContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db)
):
    transfer = (await db.execute(
        select(Transfer).where(Transfer.id == transfer_id, Transfer.cold_storage_id == caller.cold_storage_id)
    )).scalar_one_or_none()
    if not transfer:
        raise ResourceNotFoundError("Transfer", transfer_id)
    return _transfer_response(transfer, await TransferService.get_legs(db, transfer.id))
