import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List

from commission_engine.core.exceptions import DuplicateEntryError, NotFoundError
from commission_engine.core.utils import utcnow
from commission_engine.crud import crud_influencer
from commission_engine.models.customer import Customer
from commission_engine.models.influencer import Influencer
from commission_engine.models.referral import ReferralClick

logger = logging.getLogger(__name__)


def validate_code(db: Session, code: str) -> Optional[Influencer]:
    """The active influencer owning a referral code, or None."""
    return crud_influencer.get_influencer_by_code(db, code)


def record_click(
    db: Session, *, code: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None
) -> ReferralClick:
    """
    Record a visit through a referral link. Unknown codes raise NotFoundError;
    the redirector decides whether that matters to the visitor.
    """
    influencer = crud_influencer.get_influencer_by_code(db, code)
    if not influencer:
        raise NotFoundError(f"Referral code '{code}' not found")

    db_obj = ReferralClick(
        influencer_id=influencer.id,
        referral_code=influencer.referral_code,
        ip_address=ip_address,
        user_agent=user_agent,
        clicked_at=utcnow(),
        converted=False,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_conversion(db: Session, *, influencer_id: int, customer_id: int) -> Optional[ReferralClick]:
    return (
        db.query(ReferralClick)
        .filter(ReferralClick.influencer_id == influencer_id, ReferralClick.customer_id == customer_id)
        .first()
    )


def record_conversion(db: Session, *, code: str, customer_id: int) -> ReferralClick:
    """
    Attribute a converted customer to the influencer's earliest unconverted click
    (under any code it has used) and count the referral, all in one transaction.

    A customer converts at most once per influencer: repeating the call returns
    the click converted the first time and leaves total_referrals untouched.
    Conversions without any prior click (code typed into the form) are recorded
    as an already converted click.
    """
    influencer = crud_influencer.get_influencer_by_code(db, code)
    if not influencer:
        raise NotFoundError(f"Referral code '{code}' not found")
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")

    existing = get_conversion(db, influencer_id=influencer.id, customer_id=customer_id)
    if existing:
        logger.info(f"Customer ID: {customer_id} already converted for influencer ID: {influencer.id}; skipping")
        return existing

    now = utcnow()
    try:
        click = (
            db.query(ReferralClick)
            .filter(
                ReferralClick.influencer_id == influencer.id,
                ReferralClick.converted == False,
            )
            .order_by(ReferralClick.clicked_at.asc(), ReferralClick.id.asc())
            .with_for_update()
            .first()
        )
        if click is None:
            click = ReferralClick(
                influencer_id=influencer.id,
                referral_code=influencer.referral_code,
                clicked_at=now,
            )
            db.add(click)
        click.converted = True
        click.converted_at = now
        click.customer_id = customer_id

        influencer.total_referrals = Influencer.total_referrals + 1
        if customer.referred_by_influencer_id is None:
            customer.referred_by_influencer_id = influencer.id
            customer.referral_code = influencer.referral_code
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_conversion(db, influencer_id=influencer.id, customer_id=customer_id)
        if existing:
            return existing
        raise DuplicateEntryError(f"Conversion of customer {customer_id} could not be recorded")
    except Exception:
        db.rollback()
        raise

    db.refresh(click)
    logger.info(f"Recorded conversion of customer ID: {customer_id} for influencer ID: {influencer.id} (click ID: {click.id})")
    return click


def get_clicks_for_influencer(
    db: Session, *, influencer_id: int, skip: int = 0, limit: int = 100
) -> List[ReferralClick]:
    return (
        db.query(ReferralClick)
        .filter(ReferralClick.influencer_id == influencer_id)
        .order_by(ReferralClick.clicked_at.desc(), ReferralClick.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
