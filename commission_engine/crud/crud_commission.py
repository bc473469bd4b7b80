import logging
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from typing import Optional, List, Sequence

from commission_engine.core.exceptions import (
    AmountMismatchError,
    CommissionValidationError,
    DuplicateEntryError,
    InvalidTransitionError,
    NotFoundError,
)
from commission_engine.core.utils import quantize_money, utcnow
from commission_engine.crud import crud_influencer
from commission_engine.models.commission import CommissionEntry
from commission_engine.models.commission_payment import CommissionPayment
from commission_engine.models.customer import Customer
from commission_engine.schemas.rule import CommissionRule, CommissionResult, FinancialContext, PercentageRule

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"


def build_dedup_key(influencer_id: int, customer_id: int, trigger: str, event_key: str) -> str:
    return f"{influencer_id}:{customer_id}:{trigger}:{event_key}"


def get_entry(db: Session, entry_id: int) -> Optional[CommissionEntry]:
    """
    Get a single commission entry by ID with its customer eagerly loaded.
    """
    return (
        db.query(CommissionEntry)
        .options(joinedload(CommissionEntry.customer))
        .filter(CommissionEntry.id == entry_id)
        .first()
    )


def get_entry_by_dedup_key(db: Session, dedup_key: str) -> Optional[CommissionEntry]:
    return db.query(CommissionEntry).filter(CommissionEntry.dedup_key == dedup_key).first()


def get_entries_by_influencer(
    db: Session, *, influencer_id: int, status: Optional[str] = None, skip: int = 0, limit: int = 100
) -> List[CommissionEntry]:
    """
    Get commission entries for an influencer, newest first, optionally filtered by status.
    Eager loads the customer for dashboard display.
    """
    query = (
        db.query(CommissionEntry)
        .options(joinedload(CommissionEntry.customer))
        .filter(CommissionEntry.influencer_id == influencer_id)
    )
    if status:
        query = query.filter(CommissionEntry.commission_status == status)

    return query.order_by(CommissionEntry.earned_date.desc(), CommissionEntry.id.desc()).offset(skip).limit(limit).all()


def get_entries_by_customer(db: Session, *, customer_id: int) -> List[CommissionEntry]:
    return (
        db.query(CommissionEntry)
        .filter(CommissionEntry.customer_id == customer_id)
        .order_by(CommissionEntry.earned_date.asc(), CommissionEntry.id.asc())
        .all()
    )


def select_pending(db: Session, *, influencer_id: int) -> List[CommissionEntry]:
    """
    Pending entries for an influencer, oldest first, for payout selection.
    """
    return (
        db.query(CommissionEntry)
        .options(joinedload(CommissionEntry.customer))
        .filter(
            CommissionEntry.influencer_id == influencer_id,
            CommissionEntry.commission_status == STATUS_PENDING,
        )
        .order_by(CommissionEntry.earned_date.asc(), CommissionEntry.id.asc())
        .all()
    )


def credited_amount(db: Session, *, influencer_id: int, customer_id: int, trigger: str) -> Decimal:
    """Sum of non-cancelled commission already recorded for one influencer/customer/trigger."""
    total = (
        db.query(func.coalesce(func.sum(CommissionEntry.commission_amount), 0))
        .filter(
            CommissionEntry.influencer_id == influencer_id,
            CommissionEntry.customer_id == customer_id,
            CommissionEntry.trigger == trigger,
            CommissionEntry.commission_status != STATUS_CANCELLED,
        )
        .scalar()
    )
    return quantize_money(total or 0)


def record_earned(
    db: Session,
    *,
    influencer_id: int,
    customer_id: int,
    trigger: str,
    event_key: str,
    rule: CommissionRule,
    result: CommissionResult,
    context: FinancialContext,
    amount: Optional[Decimal] = None,
    extra_details: Optional[dict] = None,
) -> CommissionEntry:
    """
    Record one pending commission for a triggering event.

    Idempotent per (influencer, customer, trigger, event_key): a repeated call
    returns the entry created the first time and changes nothing. ``amount``
    overrides ``result.final_amount`` when only part of the calculated
    commission is newly earned.
    """
    dedup_key = build_dedup_key(influencer_id, customer_id, trigger, event_key)
    existing = get_entry_by_dedup_key(db, dedup_key)
    if existing:
        logger.info(f"Commission for event {dedup_key} already recorded as entry ID: {existing.id}; skipping")
        return existing

    if not crud_influencer.get_influencer(db, influencer_id, include_inactive=True):
        raise NotFoundError(f"Influencer {influencer_id} not found")
    if not db.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found")

    commission_amount = quantize_money(result.final_amount if amount is None else amount)
    if commission_amount < 0:
        raise CommissionValidationError(f"Commission amount must not be negative, got {commission_amount}")

    details = dict(result.explanation)
    details["event_key"] = event_key
    if extra_details:
        details.update(extra_details)

    db_obj = CommissionEntry(
        influencer_id=influencer_id,
        customer_id=customer_id,
        trigger=trigger,
        dedup_key=dedup_key,
        project_value=context.project_value,
        commission_rate=rule.rate if isinstance(rule, PercentageRule) else None,
        fixed_rate=None if isinstance(rule, PercentageRule) else rule.fixed_rate,
        commission_amount=commission_amount,
        commission_status=STATUS_PENDING,
        calculation_method_used=rule.calculation_method,
        calculation_details=details,
        earned_date=utcnow(),
    )
    db.add(db_obj)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent writer for the same event
        db.rollback()
        existing = get_entry_by_dedup_key(db, dedup_key)
        if existing:
            return existing
        raise DuplicateEntryError(f"Commission for event {dedup_key} could not be recorded")
    db.refresh(db_obj)
    logger.info(
        f"Recorded pending commission ID: {db_obj.id} for influencer ID: {influencer_id}, "
        f"customer ID: {customer_id}, amount: {commission_amount} ({dedup_key})"
    )
    return db_obj


def _find_settling_payment(entries: Sequence[CommissionEntry], *, influencer_id: int, amount: Decimal,
                           transaction_reference: Optional[str]) -> Optional[CommissionPayment]:
    """A previous payment that settled exactly these entries with the same reference, if any."""
    if not transaction_reference:
        return None
    payment_ids = {e.payment_id for e in entries}
    if len(payment_ids) != 1 or None in payment_ids:
        return None
    payment = entries[0].payment
    if (
        payment.influencer_id == influencer_id
        and payment.transaction_reference == transaction_reference
        and quantize_money(payment.payment_amount) == amount
        and sorted(payment.entry_ids) == sorted(e.id for e in entries)
    ):
        return payment
    return None


def pay_entries(
    db: Session,
    *,
    influencer_id: int,
    entry_ids: Sequence[int],
    payment_amount: Decimal,
    payment_method: str,
    transaction_reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> CommissionPayment:
    """
    Settle a set of pending entries with one payout batch.

    All-or-nothing: every id must be a pending entry of the influencer and the
    amount must equal their total, otherwise nothing changes. Re-submitting a
    payout that already went through (same entries, amount and transaction
    reference) returns the original payment.
    """
    if not crud_influencer.get_influencer(db, influencer_id, include_inactive=True):
        raise NotFoundError(f"Influencer {influencer_id} not found")

    ids = list(entry_ids)
    if not ids:
        raise CommissionValidationError("At least one commission entry must be selected")
    if len(set(ids)) != len(ids):
        raise CommissionValidationError("Commission entry ids must not repeat")
    amount = quantize_money(payment_amount)

    try:
        entries = (
            db.query(CommissionEntry)
            .options(selectinload(CommissionEntry.payment).selectinload(CommissionPayment.entries))
            .filter(CommissionEntry.id.in_(ids))
            .order_by(CommissionEntry.id)
            .with_for_update()
            .all()
        )
        found = {e.id for e in entries}
        missing = [i for i in ids if i not in found]
        foreign = [e.id for e in entries if e.influencer_id != influencer_id]
        if missing or foreign:
            raise NotFoundError(f"Commission entries {sorted(missing + foreign)} not found for influencer {influencer_id}")

        previous = _find_settling_payment(entries, influencer_id=influencer_id, amount=amount,
                                          transaction_reference=transaction_reference)
        if previous is not None:
            logger.info(f"Payout for entries {sorted(ids)} already recorded as payment ID: {previous.id}")
            return previous

        not_pending = [e.id for e in entries if e.commission_status != STATUS_PENDING]
        if not_pending:
            raise InvalidTransitionError(f"Commission entries {not_pending} are not pending and cannot be paid")

        expected = quantize_money(sum((Decimal(e.commission_amount) for e in entries), Decimal("0")))
        if expected != amount:
            raise AmountMismatchError(expected, amount)

        now = utcnow()
        payment = CommissionPayment(
            influencer_id=influencer_id,
            payment_amount=amount,
            payment_date=now,
            payment_method=payment_method,
            transaction_reference=transaction_reference,
            notes=notes,
        )
        db.add(payment)
        db.flush()

        # Conditional update so a concurrent payout of the same entries cannot also succeed
        flipped = (
            db.query(CommissionEntry)
            .filter(CommissionEntry.id.in_(ids), CommissionEntry.commission_status == STATUS_PENDING)
            .update(
                {
                    CommissionEntry.commission_status: STATUS_PAID,
                    CommissionEntry.paid_date: now,
                    CommissionEntry.payment_id: payment.id,
                },
                synchronize_session="fetch",
            )
        )
        if flipped != len(ids):
            raise InvalidTransitionError("Some commission entries were settled concurrently; payout aborted")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(payment)
    logger.info(
        f"Recorded commission payment ID: {payment.id} of {amount} for influencer ID: {influencer_id} "
        f"settling entries {sorted(ids)}"
    )
    return payment


def cancel_entry(db: Session, *, entry_id: int, reason: str) -> CommissionEntry:
    """
    Cancel a pending entry. Paid and cancelled entries are terminal.
    """
    try:
        db_obj = db.query(CommissionEntry).filter(CommissionEntry.id == entry_id).with_for_update().first()
        if not db_obj:
            raise NotFoundError(f"Commission entry {entry_id} not found")
        if db_obj.commission_status != STATUS_PENDING:
            raise InvalidTransitionError(
                f"Commission entry {entry_id} is {db_obj.commission_status} and cannot be cancelled"
            )
        db_obj.commission_status = STATUS_CANCELLED
        db_obj.cancellation_reason = reason
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_obj)
    logger.info(f"Cancelled commission entry ID: {entry_id}: {reason}")
    return db_obj


def get_payment(db: Session, payment_id: int) -> Optional[CommissionPayment]:
    return (
        db.query(CommissionPayment)
        .options(selectinload(CommissionPayment.entries))
        .filter(CommissionPayment.id == payment_id)
        .first()
    )


def get_payments_by_influencer(
    db: Session, *, influencer_id: int, skip: int = 0, limit: int = 100
) -> List[CommissionPayment]:
    """
    Payment history for an influencer, newest first.
    """
    return (
        db.query(CommissionPayment)
        .options(selectinload(CommissionPayment.entries))
        .filter(CommissionPayment.influencer_id == influencer_id)
        .order_by(CommissionPayment.payment_date.desc(), CommissionPayment.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
