"""
Transfer Service (Domain Logic).

Moves outstanding debt between parties without moving goods:

- Buyer-to-buyer: part or all of one sale's due is cleared on the source
  sale and re-created as a TransferredDue on the destination buyer.
- Farmer-to-buyer: the farmer's receivables, then self-sales, are cleared
  FIFO and the total lands on the destination buyer.

Both parties are locked in key order, and both are replayed afterwards,
which also refreshes every due_balance_after snapshot of their legs.
"""

import logging
import uuid
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.exceptions import ValidationError, PreconditionError, ConsistencyError
from coldstore_ledger.app.core.timeutil import utcnow, to_naive_utc
from coldstore_ledger.app.domain.ledger.allocation import OpenDue, allocate, fifo
from coldstore_ledger.app.domain.ledger.charges import money
from coldstore_ledger.app.domain.ledger.parties import buyer_key, farmer_key
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.enums import TransferKind, LegDirection, TargetType
from coldstore_ledger.app.models.farmer_receivable import FarmerReceivable
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.models.transfer import Transfer, TransferLeg, TransferredDue
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.services.locking import lock_parties, lock_sale

logger = logging.getLogger("coldstore.transfers")


class TransferService:

    @staticmethod
    async def record_transfer(db: AsyncSession, caller, payload) -> Tuple[Transfer, List[TransferLeg]]:
        if payload.amount is None or payload.amount <= 0:
            raise ValidationError("Transfer amount must be greater than zero", details={"amount": payload.amount})
        if payload.kind == TransferKind.BUYER_TO_BUYER:
            transfer = await TransferService._buyer_to_buyer(db, caller, payload)
        else:
            transfer = await TransferService._farmer_to_buyer(db, caller, payload)

        legs = await TransferService.get_legs(db, transfer.id)
        await log_event(
            db, AuditAction.TRANSFER_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="transfer", entity_id=transfer.id, after=snapshot(transfer),
            metadata={"legs": [snapshot(leg) for leg in legs]},
        )
        logger.info(
            "Transfer %s (%s): %.2f from %s to %s",
            transfer.transaction_id, transfer.kind.value, transfer.amount,
            transfer.from_party_key, transfer.to_party_key
        )
        return transfer, legs

    @staticmethod
    async def _create(db: AsyncSession, caller, payload, kind: TransferKind, from_key: str, from_name: str,
                      to_key: str, sale_id=None, receivables=0.0, self_sales=0.0) -> Transfer:
        at = to_naive_utc(payload.transferred_at) or utcnow()
        group_id = str(uuid.uuid4())
        amount = money(payload.amount)
        transfer = Transfer(
            cold_storage_id=caller.cold_storage_id,
            transaction_id=await sequences.next_transaction_id(db, caller.cold_storage_id),
            transfer_group_id=group_id,
            kind=kind,
            from_party_key=from_key,
            to_party_key=to_key,
            from_name=from_name,
            to_buyer_name=payload.to_buyer_name.strip(),
            sale_id=sale_id,
            amount=amount,
            receivables_transferred=money(receivables),
            self_sales_transferred=money(self_sales),
            remarks=payload.remarks,
            transferred_at=at,
        )
        db.add(transfer)
        await db.flush()

        db.add_all([
            TransferLeg(transfer_id=transfer.id, transfer_group_id=group_id,
                        direction=LegDirection.OUT, party_key=from_key, amount=amount),
            TransferLeg(transfer_id=transfer.id, transfer_group_id=group_id,
                        direction=LegDirection.IN, party_key=to_key, amount=amount),
            TransferredDue(
                cold_storage_id=caller.cold_storage_id,
                transfer_id=transfer.id,
                party_key=to_key,
                buyer_name=transfer.to_buyer_name,
                from_name=from_name,
                amount=amount,
                paid_amount=0.0,
                due_amount=amount,
                created_at=at,
            ),
        ])
        await db.flush()
        return transfer

    @staticmethod
    async def _buyer_to_buyer(db: AsyncSession, caller, payload) -> Transfer:
        if payload.sale_id is None:
            raise ValidationError("Buyer-to-buyer transfers need the source sale", details={"field": "sale_id"})

        sale = await lock_sale(db, caller.cold_storage_id, payload.sale_id)
        if sale.is_reversed:
            raise PreconditionError("Cannot transfer dues of a reversed sale", details={"sale_id": sale.id})

        to_key = buyer_key(payload.to_buyer_name)
        if to_key == sale.party_key:
            raise ValidationError("Source and destination buyer are the same", details={"party_key": to_key})

        await lock_parties(db, caller.cold_storage_id, [sale.party_key, to_key])
        if payload.amount > sale.due_amount + settings.money_tolerance:
            raise ValidationError(
                "Transfer amount exceeds the sale's due",
                details={"amount": payload.amount, "due_amount": sale.due_amount}
            )

        transfer = await TransferService._create(
            db, caller, payload, TransferKind.BUYER_TO_BUYER,
            from_key=sale.party_key, from_name=sale.buyer_name or sale.farmer_name,
            to_key=to_key, sale_id=sale.id,
        )
        sale.transfer_to_buyer_name = transfer.to_buyer_name
        sale.transfer_group_id = transfer.transfer_group_id
        sale.transfer_transaction_id = transfer.transaction_id
        sale.transfer_date = transfer.transferred_at

        await SettlementService.recompute_parties(db, caller.cold_storage_id, [sale.party_key, to_key])
        return transfer

    @staticmethod
    async def _farmer_to_buyer(db: AsyncSession, caller, payload) -> Transfer:
        if not (payload.farmer_name or "").strip():
            raise ValidationError("Farmer-to-buyer transfers need the farmer", details={"field": "farmer_name"})

        from_key = farmer_key(payload.farmer_name, payload.village, payload.contact_number)
        to_key = buyer_key(payload.to_buyer_name)
        await lock_parties(db, caller.cold_storage_id, [from_key, to_key])

        receivables = (await db.execute(
            select(FarmerReceivable).where(
                FarmerReceivable.cold_storage_id == caller.cold_storage_id,
                FarmerReceivable.party_key == from_key,
            )
        )).scalars().all()
        self_sales = (await db.execute(
            select(Sale).where(
                Sale.cold_storage_id == caller.cold_storage_id,
                Sale.party_key == from_key,
                Sale.is_reversed == False,  # noqa: E712
            )
        )).scalars().all()

        dues = fifo(
            OpenDue((TargetType.RECEIVABLE, r.id), r.due_amount, (0, r.recorded_at, r.id)) for r in receivables
        ) + fifo(
            OpenDue((TargetType.SALE, s.id), s.due_amount, (1, s.sold_at, s.id)) for s in self_sales
        )
        applied, leftover = allocate(payload.amount, dues)
        if leftover > settings.money_tolerance:
            raise ValidationError(
                "Transfer amount exceeds the farmer's open dues",
                details={"amount": payload.amount, "open_dues": money(payload.amount - leftover)}
            )

        from_receivables = money(sum(p for (kind, _), p in applied if kind == TargetType.RECEIVABLE))
        from_self_sales = money(sum(p for (kind, _), p in applied if kind == TargetType.SALE))
        if abs(from_receivables + from_self_sales - money(payload.amount)) > settings.money_tolerance:
            raise ConsistencyError(
                "Farmer transfer breakdown does not add up to the total",
                details={"receivables": from_receivables, "self_sales": from_self_sales, "amount": payload.amount}
            )

        transfer = await TransferService._create(
            db, caller, payload, TransferKind.FARMER_TO_BUYER,
            from_key=from_key, from_name=payload.farmer_name.strip(), to_key=to_key,
            receivables=from_receivables, self_sales=from_self_sales,
        )
        for sale in self_sales:
            if any(kind == TargetType.SALE and sale_id == sale.id for (kind, sale_id), _ in applied):
                sale.transfer_to_buyer_name = transfer.to_buyer_name
                sale.transfer_group_id = transfer.transfer_group_id
                sale.transfer_transaction_id = transfer.transaction_id
                sale.transfer_date = transfer.transferred_at

        await SettlementService.recompute_parties(db, caller.cold_storage_id, [from_key, to_key])
        return transfer

    @staticmethod
    async def get_legs(db: AsyncSession, transfer_id: int) -> List[TransferLeg]:
        result = await db.execute(
            select(TransferLeg).where(TransferLeg.transfer_id == transfer_id).order_by(TransferLeg.id)
        )
        return result.scalars().all()

    @staticmethod
    async def reverse(db: AsyncSession, caller, transfer: Transfer) -> List[str]:
        """Flag the transfer and its transferred due; returns the parties to replay."""
        transfer.is_reversed = True
        transfer.reversed_at = utcnow()

        due = (await db.execute(
            select(TransferredDue).where(TransferredDue.transfer_id == transfer.id)
        )).scalar_one_or_none()
        if due is not None:
            due.is_reversed = True

        linked = (await db.execute(
            select(Sale).where(Sale.transfer_group_id == transfer.transfer_group_id)
        )).scalars().all()
        for sale in linked:
            sale.transfer_to_buyer_name = None
            sale.transfer_group_id = None
            sale.transfer_transaction_id = None
            sale.transfer_date = None

        await db.flush()
        return [transfer.from_party_key, transfer.to_party_key]
