import logging
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from typing import Optional, List

from commission_engine.core.commissions_calculator import calculate_commission
from commission_engine.core.exceptions import CommissionValidationError, NotFoundError
from commission_engine.core.rule_resolution import resolve_rule
from commission_engine.core.utils import quantize_money
from commission_engine.crud import crud_commission, crud_customer, crud_influencer
from commission_engine.models.commission import CommissionEntry
from commission_engine.models.customer import Customer
from commission_engine.schemas.rule import FinancialContext

logger = logging.getLogger(__name__)

CUSTOMER_CREATED = "customer_created"
PAYMENT_RECORDED = "payment_recorded"
PROJECT_COMPLETED = "project_completed"

# Rule trigger each event kind satisfies
EVENT_TRIGGERS = {
    CUSTOMER_CREATED: "signup",
    PAYMENT_RECORDED: "first_payment",
    PROJECT_COMPLETED: "project_completion",
}


def build_financial_context(db: Session, customer: Customer, *, through_payment_id: Optional[int] = None) -> FinancialContext:
    """
    Financial snapshot of a customer. With through_payment_id, only payments up to
    and including that one count, so replaying history reproduces past amounts.
    """
    payments = crud_customer.get_payments(db, customer_id=customer.id)
    if through_payment_id is not None:
        ids = [p.id for p in payments]
        if through_payment_id not in ids:
            raise NotFoundError(f"Payment {through_payment_id} not found for customer {customer.id}")
        payments = payments[: ids.index(through_payment_id) + 1]

    total = sum((Decimal(p.payment_amount) for p in payments), Decimal("0"))
    first = Decimal(payments[0].payment_amount) if payments else Decimal("0")
    return FinancialContext(
        project_value=Decimal(customer.project_value or 0),
        payments_received_total=total,
        first_payment_amount=first,
    )


async def process_event(
    db: Session,
    *,
    event: str,
    customer_id: int,
    payment_id: Optional[int] = None,
    at: Optional[datetime] = None,
) -> Optional[CommissionEntry]:
    """
    Turn one customer/payment event into at most one pending commission entry.

    Returns the entry recorded for the event (or the one recorded by an earlier
    delivery of the same event), or None when the event earns nothing.
    """
    if event not in EVENT_TRIGGERS:
        raise CommissionValidationError(f"Unknown event '{event}'")
    trigger = EVENT_TRIGGERS[event]

    customer = crud_customer.get_customer(db, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")

    payment = None
    if event == PAYMENT_RECORDED:
        if payment_id is None:
            raise CommissionValidationError("payment_id is required for payment events")
        payment = crud_customer.get_payment(db, payment_id)
        if not payment or payment.customer_id != customer.id:
            raise NotFoundError(f"Payment {payment_id} not found for customer {customer_id}")

    if not customer.referred_by_influencer_id:
        logger.info(f"Customer ID: {customer_id} has no referrer. No commission for {event}.")
        return None

    influencer = crud_influencer.get_influencer(db, customer.referred_by_influencer_id)
    if not influencer:
        logger.info(f"Referrer ID: {customer.referred_by_influencer_id} of customer ID: {customer_id} is inactive. No commission for {event}.")
        return None

    if at is None:
        at = payment.payment_date if payment is not None else None
    rule = resolve_rule(db, influencer.id, customer_id=customer.id, referral_code=customer.referral_code, at=at)

    if rule.trigger != trigger:
        logger.info(f"Influencer ID: {influencer.id} earns on '{rule.trigger}', not '{trigger}'. Skipping {event} for customer ID: {customer_id}.")
        return None

    context = build_financial_context(db, customer, through_payment_id=payment_id)
    result = calculate_commission(rule, context)

    if rule.calculation_method == "payments_received" and event == PAYMENT_RECORDED:
        # Recomputed per payment over cumulative payments; only the increase is newly earned
        event_key = f"payment-{payment_id}"
        existing = crud_commission.get_entry_by_dedup_key(
            db, crud_commission.build_dedup_key(influencer.id, customer.id, trigger, event_key)
        )
        if existing:
            return existing
        already_credited = crud_commission.credited_amount(
            db, influencer_id=influencer.id, customer_id=customer.id, trigger=trigger
        )
        amount = quantize_money(result.final_amount - already_credited)
        if amount <= 0:
            logger.info(f"No additional commission for customer ID: {customer_id} after payment ID: {payment_id} (credited {already_credited}).")
            return None
        return crud_commission.record_earned(
            db,
            influencer_id=influencer.id,
            customer_id=customer.id,
            trigger=trigger,
            event_key=event_key,
            rule=rule,
            result=result,
            context=context,
            amount=amount,
            extra_details={
                "cumulative_commission": str(result.final_amount),
                "previously_credited": str(already_credited),
            },
        )

    # Every other rule earns once per customer and trigger
    event_key = trigger
    existing = crud_commission.get_entry_by_dedup_key(
        db, crud_commission.build_dedup_key(influencer.id, customer.id, trigger, event_key)
    )
    if existing:
        return existing
    if result.final_amount <= 0:
        logger.info(f"Commission amount is zero for customer ID: {customer_id} on {event}. Nothing recorded.")
        return None
    return crud_commission.record_earned(
        db,
        influencer_id=influencer.id,
        customer_id=customer.id,
        trigger=trigger,
        event_key=event_key,
        rule=rule,
        result=result,
        context=context,
    )


async def sync_customer_commissions(db: Session, *, customer_id: int) -> List[CommissionEntry]:
    """
    Replay a customer's history (signup, each payment in order, completion) through
    process_event. Safe to run any number of times; returns the entries touched.
    """
    customer = crud_customer.get_customer(db, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    logger.info(f"Syncing commission data for customer ID: {customer_id}")

    entries = []
    entry = await process_event(db, event=CUSTOMER_CREATED, customer_id=customer_id, at=customer.created_at)
    if entry is not None:
        entries.append(entry)
    for payment in crud_customer.get_payments(db, customer_id=customer_id):
        entry = await process_event(db, event=PAYMENT_RECORDED, customer_id=customer_id, payment_id=payment.id)
        if entry is not None:
            entries.append(entry)
    if customer.status == "completed":
        entry = await process_event(db, event=PROJECT_COMPLETED, customer_id=customer_id)
        if entry is not None:
            entries.append(entry)

    unique = {e.id: e for e in entries}
    return list(unique.values())
