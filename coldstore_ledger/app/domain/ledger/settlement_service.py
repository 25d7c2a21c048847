"""
Settlement Service (Domain Logic).

Rebuilds a party's settlement state from its active ledger entries. Every
mutation that touches a party's debits or credits ends with a replay:

1. Each debit (sale, transferred due, farmer receivable) starts at its
   counter payment.
2. Transfer clearances and discounts are applied first, in date order; each
   must still fit the dues it was recorded against. Receipts then settle
   what is left, oldest receipt first, FIFO over the debits. Any surplus
   stays unapplied.
3. Sale, due, receivable, receipt and lot totals are written back, the
   party's PaymentAllocation rows are rewritten and transfer leg balance
   snapshots are refreshed.

Replay is deterministic: the same ledger always yields the same balances.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.exceptions import ConsistencyError, ValidationError
from coldstore_ledger.app.core.timeutil import to_naive_utc
from coldstore_ledger.app.domain.ledger.allocation import OpenDue, allocate, balance_as_of, fifo
from coldstore_ledger.app.domain.ledger.charges import money, payment_status_for
from coldstore_ledger.app.domain.ledger.parties import BUYER_PREFIX, FARMER_PREFIX, buyer_key, farmer_key, same_buyer
from coldstore_ledger.app.models.cash_receipt import CashReceipt
from coldstore_ledger.app.models.discount import Discount, DiscountAllocation
from coldstore_ledger.app.models.enums import (
    ClearanceType, CreditType, LegDirection, PayerType, TargetType, TransferKind
)
from coldstore_ledger.app.models.farmer_receivable import FarmerReceivable
from coldstore_ledger.app.models.lot import Lot
from coldstore_ledger.app.models.payment_allocation import PaymentAllocation
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.models.transfer import Transfer, TransferLeg, TransferredDue
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.services.locking import lock_parties

logger = logging.getLogger("coldstore.settlement")

ALLOCATING_PAYERS = (PayerType.COLD_MERCHANT, PayerType.FARMER)

# Replay phase, then tie-break for credits recorded at the same instant
_CREDIT_RANK = {CreditType.TRANSFER: 0, CreditType.DISCOUNT: 1, CreditType.RECEIPT: 2}
_RECEIPT_PHASE = 1


@dataclass
class PartyBalance:
    party_key: str
    total_charged: float
    total_paid: float
    total_due: float
    unapplied: float


def _check_non_negative(label: str, value: float, details: dict) -> None:
    if value < -settings.money_tolerance:
        raise ConsistencyError(f"{label} would go negative", details={**details, "value": value})


class SettlementService:

    @staticmethod
    async def recompute_party(db: AsyncSession, cold_storage_id: int, party_key: str) -> PartyBalance:
        """
        Replay every active credit of `party_key` against its debits.

        Raises:
            ConsistencyError: a transfer clearance or discount no longer fits
                the dues it was recorded against, or a total would go negative.
        """
        tolerance = settings.money_tolerance

        sales = (await db.execute(
            select(Sale).where(
                Sale.cold_storage_id == cold_storage_id,
                Sale.party_key == party_key,
                Sale.is_reversed == False,  # noqa: E712
            ).order_by(Sale.sold_at, Sale.id)
        )).scalars().all()

        transferred_dues = (await db.execute(
            select(TransferredDue).where(
                TransferredDue.cold_storage_id == cold_storage_id,
                TransferredDue.party_key == party_key,
                TransferredDue.is_reversed == False,  # noqa: E712
            ).order_by(TransferredDue.created_at, TransferredDue.id)
        )).scalars().all()

        receivables = (await db.execute(
            select(FarmerReceivable).where(
                FarmerReceivable.cold_storage_id == cold_storage_id,
                FarmerReceivable.party_key == party_key,
            ).order_by(FarmerReceivable.recorded_at, FarmerReceivable.id)
        )).scalars().all()

        legs = (await db.execute(
            select(TransferLeg, Transfer)
            .join(Transfer, Transfer.id == TransferLeg.transfer_id)
            .where(
                Transfer.cold_storage_id == cold_storage_id,
                TransferLeg.party_key == party_key,
                Transfer.is_reversed == False,  # noqa: E712
            )
        )).all()

        discount_rows = (await db.execute(
            select(DiscountAllocation, Discount)
            .join(Discount, Discount.id == DiscountAllocation.discount_id)
            .where(
                Discount.cold_storage_id == cold_storage_id,
                DiscountAllocation.party_key == party_key,
                Discount.is_reversed == False,  # noqa: E712
            )
        )).all()

        receipts = (await db.execute(
            select(CashReceipt).where(
                CashReceipt.cold_storage_id == cold_storage_id,
                CashReceipt.party_key == party_key,
                CashReceipt.is_reversed == False,  # noqa: E712
                CashReceipt.payer_type.in_(ALLOCATING_PAYERS),
            ).order_by(CashReceipt.received_at, CashReceipt.id)
        )).scalars().all()

        # 1. Debits start at their counter payment
        due: Dict[Hashable, float] = {}
        order: Dict[Hashable, tuple] = {}
        for sale in sales:
            key = (TargetType.SALE, sale.id)
            opening = money(sale.cold_storage_charge - sale.initial_paid_amount)
            _check_non_negative("Sale due", opening, {"sale_id": sale.id})
            due[key] = max(opening, 0.0)
            order[key] = (sale.sold_at, 1, sale.id)
        for item in transferred_dues:
            key = (TargetType.TRANSFERRED_DUE, item.id)
            due[key] = money(item.amount)
            order[key] = (item.created_at, 2, item.id)
        for item in receivables:
            key = (TargetType.RECEIVABLE, item.id)
            due[key] = money(item.amount)
            order[key] = (item.recorded_at, 0, item.id)

        sales_by_id = {sale.id: sale for sale in sales}
        receivable_keys = [(TargetType.RECEIVABLE, r.id) for r in receivables]
        sale_keys = [(TargetType.SALE, s.id) for s in sales]

        def open_dues(keys: Iterable[Hashable]) -> List[OpenDue]:
            return fifo(OpenDue(key, due[key], order[key]) for key in keys)

        # 2. Clearances and discounts, then receipts; each group in date order
        credits = []
        for leg, transfer in legs:
            if leg.direction == LegDirection.OUT:
                credits.append((0, transfer.transferred_at, _CREDIT_RANK[CreditType.TRANSFER], transfer.id,
                                CreditType.TRANSFER, (leg, transfer)))
        for allocation, discount in discount_rows:
            credits.append((0, discount.discount_date, _CREDIT_RANK[CreditType.DISCOUNT], allocation.id,
                            CreditType.DISCOUNT, (allocation, discount)))
        for receipt in receipts:
            credits.append((_RECEIPT_PHASE, receipt.received_at, _CREDIT_RANK[CreditType.RECEIPT], receipt.id,
                            CreditType.RECEIPT, receipt))
        credits.sort(key=lambda c: c[:4])

        discounted: Dict[int, float] = defaultdict(float)
        transferred: Dict[int, float] = defaultdict(float)
        settled_by_receipt: set = set()
        allocation_rows: List[PaymentAllocation] = []
        applied_by_receipt: Dict[int, float] = {}

        for _, _, _, credit_id, credit_type, payload in credits:
            if credit_type == CreditType.TRANSFER:
                leg, transfer = payload
                if transfer.kind == TransferKind.BUYER_TO_BUYER:
                    key = (TargetType.SALE, transfer.sale_id)
                    if key not in due:
                        raise ConsistencyError(
                            "Transfer source sale is no longer active",
                            details={"transfer_id": transfer.id, "sale_id": transfer.sale_id}
                        )
                    eligible = open_dues([key])
                else:
                    eligible = open_dues(receivable_keys) + open_dues(sale_keys)
                amount = leg.amount
                source_id = transfer.id
            elif credit_type == CreditType.DISCOUNT:
                allocation, discount = payload
                eligible = open_dues(
                    (TargetType.SALE, s.id) for s in sales
                    if s.farmer_key == discount.farmer_key and same_buyer(s.buyer_name, allocation.buyer_name)
                )
                amount = allocation.amount
                source_id = discount.id
            else:
                receipt = payload
                eligible = open_dues(due.keys())
                amount = receipt.amount
                source_id = receipt.id

            applied, leftover = allocate(amount, eligible)

            if credit_type != CreditType.RECEIPT and leftover > tolerance:
                raise ConsistencyError(
                    f"{credit_type.value.capitalize()} of {amount} no longer fits the open dues",
                    details={"party_key": party_key, "credit_id": source_id, "unallocated": leftover}
                )

            for key, portion in applied:
                due[key] = money(due[key] - portion)
                target_type, target_id = key
                if target_type == TargetType.SALE:
                    if credit_type == CreditType.DISCOUNT:
                        discounted[target_id] += portion
                    elif credit_type == CreditType.TRANSFER:
                        transferred[target_id] += portion
                    else:
                        settled_by_receipt.add(target_id)
                allocation_rows.append(PaymentAllocation(
                    cold_storage_id=cold_storage_id,
                    party_key=party_key,
                    credit_type=credit_type,
                    credit_id=source_id,
                    target_type=target_type,
                    target_id=target_id,
                    amount=portion,
                ))

            if credit_type == CreditType.RECEIPT:
                applied_by_receipt[receipt.id] = money(amount - leftover)

        # 3. Write back
        for sale in sales:
            key = (TargetType.SALE, sale.id)
            sale_due = due[key]
            _check_non_negative("Sale due", sale_due, {"sale_id": sale.id})
            sale.due_amount = money(max(sale_due, 0.0))
            sale.paid_amount = money(sale.cold_storage_charge - sale.due_amount)
            sale.discount_amount = money(discounted.get(sale.id, 0.0))
            sale.transferred_amount = money(transferred.get(sale.id, 0.0))
            sale.payment_status = payment_status_for(sale.paid_amount, sale.due_amount)
            if sale.transferred_amount > 0:
                sale.clearance_type = ClearanceType.TRANSFER
            elif sale.discount_amount > 0:
                sale.clearance_type = ClearanceType.DISCOUNT
            elif sale.id in settled_by_receipt:
                sale.clearance_type = ClearanceType.RECEIPT
            else:
                sale.clearance_type = None

        for item in transferred_dues:
            item.due_amount = money(due[(TargetType.TRANSFERRED_DUE, item.id)])
            item.paid_amount = money(item.amount - item.due_amount)

        for item in receivables:
            item.due_amount = money(due[(TargetType.RECEIVABLE, item.id)])
            item.paid_amount = money(item.amount - item.due_amount)

        unapplied_total = 0.0
        for receipt in receipts:
            receipt.applied_amount = applied_by_receipt.get(receipt.id, 0.0)
            receipt.unapplied_amount = money(receipt.amount - receipt.applied_amount)
            unapplied_total += receipt.unapplied_amount

        await db.execute(
            delete(PaymentAllocation).where(
                PaymentAllocation.cold_storage_id == cold_storage_id,
                PaymentAllocation.party_key == party_key,
            )
        )
        db.add_all(allocation_rows)

        await SettlementService.refresh_lot_totals(db, {s.lot_id for s in sales if s.lot_id})

        # Balance snapshots for every leg of this party
        debits = (
            [(s.sold_at, s.cold_storage_charge) for s in sales]
            + [(d.created_at, d.amount) for d in transferred_dues]
            + [(r.recorded_at, r.amount) for r in receivables]
        )
        settled = (
            [(s.sold_at, s.initial_paid_amount) for s in sales]
            + [(t.transferred_at, leg.amount) for leg, t in legs if leg.direction == LegDirection.OUT]
            + [(d.discount_date, a.amount) for a, d in discount_rows]
            + [(r.received_at, r.amount) for r in receipts]
        )
        for leg, transfer in legs:
            leg.due_balance_after = balance_as_of(debits, settled, transfer.transferred_at)

        await db.flush()

        balance = PartyBalance(
            party_key=party_key,
            total_charged=money(sum(d for _, d in debits)),
            total_paid=money(
                sum(s.paid_amount for s in sales)
                + sum(d.paid_amount for d in transferred_dues)
                + sum(r.paid_amount for r in receivables)
            ),
            total_due=money(sum(due.values())),
            unapplied=money(unapplied_total),
        )
        logger.info(
            "Replayed party %s: %d debits, %d credits, due=%.2f unapplied=%.2f",
            party_key, len(due), len(credits), balance.total_due, balance.unapplied
        )
        return balance

    @staticmethod
    async def refresh_lot_totals(db: AsyncSession, lot_ids: Iterable[int]) -> None:
        """Recompute lot paid/due totals from the lot's active sales."""
        lot_ids = [lot_id for lot_id in lot_ids if lot_id]
        if not lot_ids:
            return
        await db.flush()
        totals = {
            row.lot_id: (row.paid or 0.0, row.due or 0.0)
            for row in (await db.execute(
                select(
                    Sale.lot_id,
                    func.sum(Sale.paid_amount).label("paid"),
                    func.sum(Sale.due_amount).label("due"),
                )
                .where(Sale.lot_id.in_(lot_ids), Sale.is_reversed == False)  # noqa: E712
                .group_by(Sale.lot_id)
            )).all()
        }
        lots = (await db.execute(select(Lot).where(Lot.id.in_(lot_ids)))).scalars().all()
        for lot in lots:
            paid, lot_due = totals.get(lot.id, (0.0, 0.0))
            lot.total_paid_charge = money(paid)
            lot.total_due_charge = money(lot_due)

    @staticmethod
    async def recompute_parties(db: AsyncSession, cold_storage_id: int, party_keys: Iterable[str]) -> List[PartyBalance]:
        """Replay several parties in lock order."""
        return [
            await SettlementService.recompute_party(db, cold_storage_id, key)
            for key in sorted({k for k in party_keys if k})
        ]

    @staticmethod
    async def record_receipt(db: AsyncSession, caller, payload) -> CashReceipt:
        """
        Record a cash receipt and allocate it FIFO.

        cold_merchant receipts settle the buyer's dues; farmer receipts
        settle the farmer's receivables and self-sales. Other payer types
        are income only (applied=0, unapplied=amount).
        """
        if payload.amount is None or payload.amount <= 0:
            raise ValidationError("Receipt amount must be greater than zero", details={"amount": payload.amount})

        party_key: Optional[str] = None
        if payload.payer_type == PayerType.COLD_MERCHANT:
            if not (payload.buyer_name or "").strip():
                raise ValidationError("Buyer name is required for merchant receipts", details={"field": "buyer_name"})
            party_key = buyer_key(payload.buyer_name)
        elif payload.payer_type == PayerType.FARMER:
            if not (payload.farmer_name or "").strip():
                raise ValidationError("Farmer name is required for farmer receipts", details={"field": "farmer_name"})
            party_key = farmer_key(payload.farmer_name, payload.village, payload.contact_number)

        if party_key:
            await lock_parties(db, caller.cold_storage_id, [party_key])

        received_at = to_naive_utc(payload.received_at)
        receipt = CashReceipt(
            cold_storage_id=caller.cold_storage_id,
            transaction_id=await sequences.next_transaction_id(db, caller.cold_storage_id),
            payer_type=payload.payer_type,
            buyer_name=payload.buyer_name,
            farmer_name=payload.farmer_name,
            village=payload.village,
            contact_number=payload.contact_number,
            party_key=party_key,
            receipt_type=payload.receipt_type,
            amount=money(payload.amount),
            applied_amount=0.0,
            unapplied_amount=money(payload.amount),
            notes=payload.notes,
        )
        if received_at:
            receipt.received_at = received_at
        db.add(receipt)
        await db.flush()

        if party_key:
            await SettlementService.recompute_party(db, caller.cold_storage_id, party_key)

        await log_event(
            db,
            AuditAction.RECEIPT_RECORDED,
            actor_id=caller.user_id,
            cold_storage_id=caller.cold_storage_id,
            entity_type="receipt",
            entity_id=receipt.id,
            after=snapshot(receipt),
        )
        logger.info(
            "Receipt %s recorded: %s %.2f applied=%.2f",
            receipt.transaction_id, payload.payer_type.value, receipt.amount, receipt.applied_amount
        )
        return receipt

    @staticmethod
    async def buyer_dues(db: AsyncSession, cold_storage_id: int) -> List[dict]:
        """Open dues per buyer, grouped by the party currently holding them."""
        return await SettlementService._party_dues(db, cold_storage_id, BUYER_PREFIX)

    @staticmethod
    async def farmer_dues(db: AsyncSession, cold_storage_id: int) -> List[dict]:
        """Open dues per farmer: receivables, self-sales and buyerless sales."""
        return await SettlementService._party_dues(db, cold_storage_id, FARMER_PREFIX)

    @staticmethod
    async def _party_dues(db: AsyncSession, cold_storage_id: int, prefix: str) -> List[dict]:
        tolerance = settings.money_tolerance
        groups: Dict[str, dict] = {}

        def group(key: str, name: str) -> dict:
            if key not in groups:
                groups[key] = {
                    "party_key": key,
                    "name": name,
                    "sales_due": 0.0,
                    "transferred_due": 0.0,
                    "receivable_due": 0.0,
                    "open_items": 0,
                }
            return groups[key]

        sales = (await db.execute(
            select(Sale).where(
                Sale.cold_storage_id == cold_storage_id,
                Sale.party_key.startswith(prefix),
                Sale.is_reversed == False,  # noqa: E712
                Sale.due_amount > tolerance,
            )
        )).scalars().all()
        for sale in sales:
            name = sale.farmer_name if prefix == FARMER_PREFIX else sale.buyer_name
            entry = group(sale.party_key, name)
            entry["sales_due"] += sale.due_amount
            entry["open_items"] += 1

        dues = (await db.execute(
            select(TransferredDue).where(
                TransferredDue.cold_storage_id == cold_storage_id,
                TransferredDue.party_key.startswith(prefix),
                TransferredDue.is_reversed == False,  # noqa: E712
                TransferredDue.due_amount > tolerance,
            )
        )).scalars().all()
        for item in dues:
            entry = group(item.party_key, item.buyer_name)
            entry["transferred_due"] += item.due_amount
            entry["open_items"] += 1

        receivables = (await db.execute(
            select(FarmerReceivable).where(
                FarmerReceivable.cold_storage_id == cold_storage_id,
                FarmerReceivable.party_key.startswith(prefix),
                FarmerReceivable.due_amount > tolerance,
            )
        )).scalars().all()
        for item in receivables:
            entry = group(item.party_key, item.farmer_name)
            entry["receivable_due"] += item.due_amount
            entry["open_items"] += 1

        result = []
        for entry in groups.values():
            for field in ("sales_due", "transferred_due", "receivable_due"):
                entry[field] = money(entry[field])
            entry["total_due"] = money(entry["sales_due"] + entry["transferred_due"] + entry["receivable_due"])
            result.append(entry)
        return sorted(result, key=lambda e: e["party_key"])
