from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from commission_engine import schemas
from commission_engine.core.config import REFERRAL_BASE_URL
from commission_engine.crud import crud_referral
from commission_engine.db.session import get_db

router = APIRouter()


@router.post("/clicks", response_model=schemas.ReferralClick, status_code=201)
def track_referral_click(click_in: schemas.ReferralClickCreate, request: Request, db: Session = Depends(get_db)):
    """
    Called by the referral link redirector when a visitor lands on /ref/{code}.
    Unknown codes answer 404.
    """
    ip_address = click_in.ip_address or (request.client.host if request.client else None)
    user_agent = click_in.user_agent or request.headers.get("user-agent")
    return crud_referral.record_click(
        db, code=click_in.referral_code, ip_address=ip_address, user_agent=user_agent
    )


@router.post("/conversions", response_model=schemas.ReferralClick)
def track_referral_conversion(conversion_in: schemas.ReferralConversionCreate, db: Session = Depends(get_db)):
    """
    Mark the referral as converted once the referred lead became a customer.
    Repeating the call for the same customer is harmless.
    """
    return crud_referral.record_conversion(
        db, code=conversion_in.referral_code, customer_id=conversion_in.customer_id
    )


@router.get("/validate/{code}", response_model=schemas.ReferralCodeValidation)
def validate_referral_code(code: str, db: Session = Depends(get_db)):
    influencer = crud_referral.validate_code(db, code)
    if not influencer:
        return schemas.ReferralCodeValidation(valid=False)
    return schemas.ReferralCodeValidation(
        valid=True,
        referral_code=influencer.referral_code,
        influencer_id=influencer.id,
        referral_link=f"{REFERRAL_BASE_URL}/ref/{influencer.referral_code}",
    )
