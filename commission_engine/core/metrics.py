"""
Influencer and program-wide referral metrics, derived from the ledger and
the click table rather than from stored counters.

A referral is a distinct (influencer, customer) pair where the customer is
attributed to the influencer (``customer.referred_by_influencer_id``) or has
at least one commission entry for that influencer.
"""
import logging
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Dict, Set, Tuple

from commission_engine.core.exceptions import NotFoundError
from commission_engine.core.utils import quantize_money
from commission_engine.crud import crud_influencer
from commission_engine.crud.crud_commission import STATUS_PAID, STATUS_PENDING
from commission_engine.models.commission import CommissionEntry
from commission_engine.models.customer import Customer
from commission_engine.models.influencer import Influencer
from commission_engine.models.referral import ReferralClick
from commission_engine.schemas.metrics import InfluencerSummary, ReferralMetrics

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CLOSED_PROJECT_STATUSES = ("completed", "rejected")


def _referral_pairs(db: Session, influencer_id=None) -> Set[Tuple[int, int]]:
    attributed = db.query(Customer.referred_by_influencer_id, Customer.id).filter(
        Customer.referred_by_influencer_id.isnot(None)
    )
    earned = db.query(CommissionEntry.influencer_id, CommissionEntry.customer_id).distinct()
    if influencer_id is not None:
        attributed = attributed.filter(Customer.referred_by_influencer_id == influencer_id)
        earned = earned.filter(CommissionEntry.influencer_id == influencer_id)
    return {(row[0], row[1]) for row in attributed.all()} | {(row[0], row[1]) for row in earned.all()}


def _commission_totals(db: Session, influencer_id=None) -> Dict[str, Decimal]:
    query = db.query(
        CommissionEntry.commission_status,
        func.coalesce(func.sum(CommissionEntry.commission_amount), 0),
    )
    if influencer_id is not None:
        query = query.filter(CommissionEntry.influencer_id == influencer_id)
    totals = {STATUS_PENDING: ZERO, STATUS_PAID: ZERO}
    for status, amount in query.group_by(CommissionEntry.commission_status).all():
        totals[status] = quantize_money(amount or 0)
    return totals


def get_influencer_summary(db: Session, *, influencer_id: int) -> InfluencerSummary:
    # Soft-deleted influencers still have history worth summarising
    influencer = crud_influencer.get_influencer(db, influencer_id, include_inactive=True)
    if not influencer:
        raise NotFoundError(f"Influencer {influencer_id} not found")

    customer_ids = {customer_id for _, customer_id in _referral_pairs(db, influencer_id)}
    customers = db.query(Customer).filter(Customer.id.in_(customer_ids)).all() if customer_ids else []

    active_projects = sum(1 for c in customers if c.status not in CLOSED_PROJECT_STATUSES)
    if customers:
        total_value = sum((Decimal(c.project_value or 0) for c in customers), Decimal("0"))
        average_project_value = quantize_money(total_value / len(customers))
    else:
        average_project_value = ZERO

    totals = _commission_totals(db, influencer_id)

    total_clicks = db.query(func.count(ReferralClick.id)).filter(ReferralClick.influencer_id == influencer_id).scalar() or 0
    converted_clicks = (
        db.query(func.count(ReferralClick.id))
        .filter(ReferralClick.influencer_id == influencer_id, ReferralClick.converted == True)
        .scalar()
        or 0
    )
    conversion_rate = quantize_money(Decimal(converted_clicks) * 100 / total_clicks) if total_clicks else ZERO

    return InfluencerSummary(
        influencer_id=influencer_id,
        total_referrals=len(customer_ids),
        active_projects=active_projects,
        total_commission_earned=totals[STATUS_PENDING] + totals[STATUS_PAID],
        unpaid_commission=totals[STATUS_PENDING],
        total_paid_commission=totals[STATUS_PAID],
        average_project_value=average_project_value,
        conversion_rate=conversion_rate,
    )


def get_referral_metrics(db: Session) -> ReferralMetrics:
    """Program-wide totals; pending/paid sums cover every influencer, deleted ones included."""
    total_influencers = db.query(func.count(Influencer.id)).filter(Influencer.is_active == True).scalar() or 0
    totals = _commission_totals(db)
    metrics = ReferralMetrics(
        total_influencers=total_influencers,
        total_referrals=len(_referral_pairs(db)),
        total_pending_commissions=totals[STATUS_PENDING],
        total_paid_commissions=totals[STATUS_PAID],
    )
    logger.debug(f"Referral metrics: {metrics}")
    return metrics
