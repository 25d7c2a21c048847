"""
Cash Book Service.

Expenses, internal cash transfers, discounts and farmer receivables.
Discounts and receivables change party dues and end with a replay;
expenses and cash transfers only feed the statements.
"""

import logging
from collections import defaultdict
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.exceptions import ValidationError
from coldstore_ledger.app.core.timeutil import to_naive_utc
from coldstore_ledger.app.domain.ledger.charges import money
from coldstore_ledger.app.domain.ledger.parties import farmer_key, same_buyer
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.cash_transfer import CashTransfer
from coldstore_ledger.app.models.discount import Discount, DiscountAllocation
from coldstore_ledger.app.models.expense import Expense
from coldstore_ledger.app.models.farmer_receivable import FarmerReceivable
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.services.locking import lock_parties

logger = logging.getLogger("coldstore.cashbook")


def _require_positive(amount, field: str = "amount") -> None:
    if amount is None or amount <= 0:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be greater than zero", details={field: amount})


class CashbookService:

    @staticmethod
    async def record_expense(db: AsyncSession, caller, payload) -> Expense:
        _require_positive(payload.amount)
        expense = Expense(
            cold_storage_id=caller.cold_storage_id,
            transaction_id=await sequences.next_transaction_id(db, caller.cold_storage_id),
            expense_type=payload.expense_type.strip().lower(),
            expense_class=payload.expense_class,
            receiver_name=payload.receiver_name,
            payment_mode=payload.payment_mode,
            amount=money(payload.amount),
            remarks=payload.remarks,
        )
        paid_at = to_naive_utc(payload.paid_at)
        if paid_at:
            expense.paid_at = paid_at
        db.add(expense)
        await db.flush()

        await log_event(
            db, AuditAction.EXPENSE_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="expense", entity_id=expense.id, after=snapshot(expense),
        )
        return expense

    @staticmethod
    async def record_cash_transfer(db: AsyncSession, caller, payload) -> CashTransfer:
        _require_positive(payload.amount)
        if payload.from_account.strip().lower() == payload.to_account.strip().lower():
            raise ValidationError("Cannot transfer to the same account", details={"account": payload.from_account})

        transfer = CashTransfer(
            cold_storage_id=caller.cold_storage_id,
            transaction_id=await sequences.next_transaction_id(db, caller.cold_storage_id),
            from_account=payload.from_account,
            to_account=payload.to_account,
            amount=money(payload.amount),
            remarks=payload.remarks,
        )
        at = to_naive_utc(payload.transferred_at)
        if at:
            transfer.transferred_at = at
        db.add(transfer)
        await db.flush()

        await log_event(
            db, AuditAction.CASH_TRANSFER_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="cash_transfer", entity_id=transfer.id, after=snapshot(transfer),
        )
        return transfer

    @staticmethod
    async def record_discount(db: AsyncSession, caller, payload) -> Tuple[Discount, List[DiscountAllocation]]:
        """
        Record a farmer discount split across buyers.

        Raises:
            ValidationError: allocations don't sum to the total, or a buyer's
                share exceeds that buyer's open dues for this farmer
        """
        _require_positive(payload.total_amount, "total_amount")
        if not payload.allocations:
            raise ValidationError("A discount needs at least one buyer allocation", details={"field": "allocations"})
        for item in payload.allocations:
            _require_positive(item.amount)
        allocated = money(sum(item.amount for item in payload.allocations))
        if abs(allocated - money(payload.total_amount)) > settings.money_tolerance:
            raise ValidationError(
                "Discount allocations must add up to the total amount",
                details={"total_amount": payload.total_amount, "allocated": allocated}
            )

        farmer = farmer_key(payload.farmer_name, payload.village, payload.contact_number)
        sales = (await db.execute(
            select(Sale).where(
                Sale.cold_storage_id == caller.cold_storage_id,
                Sale.farmer_key == farmer,
                Sale.is_reversed == False,  # noqa: E712
            ).order_by(Sale.sold_at, Sale.id)
        )).scalars().all()

        resolved = []
        for item in payload.allocations:
            matching = [s for s in sales if same_buyer(s.buyer_name, item.buyer_name)]
            if not matching:
                raise ValidationError(
                    "Buyer has no sales for this farmer",
                    details={"buyer_name": item.buyer_name}
                )
            resolved.append((item, matching[0].party_key))

        per_buyer = defaultdict(float)
        for item, _ in resolved:
            per_buyer[" ".join(item.buyer_name.split()).lower()] += item.amount
        for buyer, amount in per_buyer.items():
            open_due = money(sum(s.due_amount for s in sales if same_buyer(s.buyer_name, buyer)))
            if amount > open_due + settings.money_tolerance:
                raise ValidationError(
                    "Discount exceeds the buyer's open dues for this farmer",
                    details={"buyer_name": buyer, "amount": amount, "open_due": open_due}
                )

        parties = {party for _, party in resolved}
        await lock_parties(db, caller.cold_storage_id, parties)

        discount = Discount(
            cold_storage_id=caller.cold_storage_id,
            transaction_id=await sequences.next_transaction_id(db, caller.cold_storage_id),
            farmer_name=payload.farmer_name.strip(),
            village=payload.village,
            contact_number=payload.contact_number,
            farmer_key=farmer,
            total_amount=money(payload.total_amount),
            remarks=payload.remarks,
        )
        at = to_naive_utc(payload.discount_date)
        if at:
            discount.discount_date = at
        db.add(discount)
        await db.flush()

        allocations = [
            DiscountAllocation(
                discount_id=discount.id,
                buyer_name=item.buyer_name.strip(),
                party_key=party,
                amount=money(item.amount),
            )
            for item, party in resolved
        ]
        db.add_all(allocations)
        await db.flush()

        await SettlementService.recompute_parties(db, caller.cold_storage_id, parties)

        await log_event(
            db, AuditAction.DISCOUNT_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="discount", entity_id=discount.id, after=snapshot(discount),
            metadata={"allocations": [snapshot(a) for a in allocations]},
        )
        logger.info("Discount %s: %.2f for %s", discount.transaction_id, discount.total_amount, farmer)
        return discount, allocations

    @staticmethod
    async def get_discount_allocations(db: AsyncSession, discount_id: int) -> List[DiscountAllocation]:
        result = await db.execute(
            select(DiscountAllocation).where(DiscountAllocation.discount_id == discount_id).order_by(DiscountAllocation.id)
        )
        return result.scalars().all()

    @staticmethod
    async def record_farmer_receivable(db: AsyncSession, caller, payload) -> FarmerReceivable:
        """Opening dues owed by a farmer. Unapplied farmer receipts settle them on replay."""
        _require_positive(payload.amount)
        party = farmer_key(payload.farmer_name, payload.village, payload.contact_number)
        await lock_parties(db, caller.cold_storage_id, [party])

        receivable = FarmerReceivable(
            cold_storage_id=caller.cold_storage_id,
            farmer_name=payload.farmer_name.strip(),
            village=payload.village,
            contact_number=payload.contact_number,
            party_key=party,
            description=payload.description,
            financial_year=payload.financial_year,
            amount=money(payload.amount),
            paid_amount=0.0,
            due_amount=money(payload.amount),
        )
        at = to_naive_utc(payload.recorded_at)
        if at:
            receivable.recorded_at = at
        db.add(receivable)
        await db.flush()

        await SettlementService.recompute_party(db, caller.cold_storage_id, party)
        await log_event(
            db, AuditAction.RECEIVABLE_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="farmer_receivable", entity_id=receivable.id, after=snapshot(receivable),
        )
        return receivable
