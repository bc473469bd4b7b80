from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from decimal import Decimal

from commission_engine import schemas
from commission_engine.core import metrics
from commission_engine.core.commissions_calculator import calculate_commission, describe_rule
from commission_engine.core.rule_resolution import resolve_rule
from commission_engine.crud import crud_commission, crud_influencer, crud_override, crud_referral
from commission_engine.db.session import get_db

router = APIRouter()


def _get_influencer_or_404(db: Session, influencer_id: int, include_inactive: bool = False):
    influencer = crud_influencer.get_influencer(db, influencer_id, include_inactive=include_inactive)
    if not influencer:
        raise HTTPException(status_code=404, detail="Influencer not found")
    return influencer


@router.post("/", response_model=schemas.Influencer, status_code=201)
def create_influencer(influencer_in: schemas.InfluencerCreate, db: Session = Depends(get_db)):
    """
    Add an influencer. A referral code is generated from the name unless one is supplied.
    """
    return crud_influencer.create_influencer(db=db, obj_in=influencer_in)


@router.get("/", response_model=List[schemas.Influencer])
def read_influencers(
    db: Session = Depends(get_db),
    include_inactive: bool = Query(False, description="Also list soft-deleted influencers."),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    return crud_influencer.get_influencers(db, include_inactive=include_inactive, skip=skip, limit=limit)


@router.get("/{influencer_id}", response_model=schemas.Influencer)
def read_influencer(influencer_id: int, db: Session = Depends(get_db)):
    return _get_influencer_or_404(db, influencer_id, include_inactive=True)


@router.patch("/{influencer_id}", response_model=schemas.Influencer)
def update_influencer(influencer_id: int, influencer_in: schemas.InfluencerUpdate, db: Session = Depends(get_db)):
    """
    Update profile fields and the default commission rule.
    """
    influencer = _get_influencer_or_404(db, influencer_id)
    return crud_influencer.update_influencer(db=db, db_obj=influencer, obj_in=influencer_in)


@router.delete("/{influencer_id}", response_model=schemas.Influencer)
def delete_influencer(influencer_id: int, db: Session = Depends(get_db)):
    """
    Soft delete: the influencer stops earning, commission history is kept.
    """
    return crud_influencer.soft_delete_influencer(db=db, influencer_id=influencer_id)


@router.put("/{influencer_id}/referral-code", response_model=schemas.Influencer)
def update_referral_code(
    influencer_id: int, code_in: schemas.InfluencerReferralCodeUpdate, db: Session = Depends(get_db)
):
    influencer = _get_influencer_or_404(db, influencer_id)
    return crud_influencer.update_referral_code(db=db, db_obj=influencer, referral_code=code_in.referral_code)


@router.get("/{influencer_id}/summary", response_model=schemas.InfluencerSummary)
def read_influencer_summary(influencer_id: int, db: Session = Depends(get_db)):
    return metrics.get_influencer_summary(db, influencer_id=influencer_id)


@router.get("/{influencer_id}/commissions", response_model=List[schemas.CommissionEntry])
def read_influencer_commissions(
    influencer_id: int,
    db: Session = Depends(get_db),
    status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    """
    Commission entries of an influencer with customer details, newest first.
    """
    _get_influencer_or_404(db, influencer_id, include_inactive=True)
    return crud_commission.get_entries_by_influencer(
        db, influencer_id=influencer_id, status=status, skip=skip, limit=limit
    )


@router.get("/{influencer_id}/commissions/pending", response_model=List[schemas.CommissionEntry])
def read_pending_commissions(influencer_id: int, db: Session = Depends(get_db)):
    """
    Pending entries, oldest first, for selecting a payout.
    """
    _get_influencer_or_404(db, influencer_id, include_inactive=True)
    return crud_commission.select_pending(db, influencer_id=influencer_id)


@router.get("/{influencer_id}/payments", response_model=List[schemas.CommissionPayment])
def read_commission_payments(
    influencer_id: int,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    _get_influencer_or_404(db, influencer_id, include_inactive=True)
    return crud_commission.get_payments_by_influencer(db, influencer_id=influencer_id, skip=skip, limit=limit)


@router.post("/{influencer_id}/payments", response_model=schemas.CommissionPayment, status_code=201)
def pay_commissions(
    influencer_id: int, payment_in: schemas.CommissionPaymentCreate, db: Session = Depends(get_db)
):
    """
    Record a payout settling the selected pending commissions. The amount must
    equal their total; on any error no commission changes state.
    """
    return crud_commission.pay_entries(
        db,
        influencer_id=influencer_id,
        entry_ids=payment_in.entry_ids,
        payment_amount=payment_in.payment_amount,
        payment_method=payment_in.payment_method,
        transaction_reference=payment_in.transaction_reference,
        notes=payment_in.notes,
    )


@router.get("/{influencer_id}/overrides", response_model=List[schemas.CommissionOverride])
def read_influencer_overrides(influencer_id: int, db: Session = Depends(get_db)):
    _get_influencer_or_404(db, influencer_id, include_inactive=True)
    return crud_override.get_overrides_for_influencer(db, influencer_id=influencer_id)


@router.get("/{influencer_id}/clicks", response_model=List[schemas.ReferralClick])
def read_referral_clicks(
    influencer_id: int,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    _get_influencer_or_404(db, influencer_id, include_inactive=True)
    return crud_referral.get_clicks_for_influencer(db, influencer_id=influencer_id, skip=skip, limit=limit)


@router.get("/{influencer_id}/rule-preview", response_model=schemas.RulePreview)
def preview_rule(
    influencer_id: int,
    db: Session = Depends(get_db),
    customer_id: Optional[int] = Query(None),
    referral_code: Optional[str] = Query(None),
    project_value: Optional[Decimal] = Query(None, ge=0),
    payments_received_total: Decimal = Query(Decimal("0"), ge=0),
    first_payment_amount: Decimal = Query(Decimal("0"), ge=0),
):
    """
    Show the rule that would apply to a customer/code right now and, when a
    project value is given, the commission it would produce.
    """
    rule = resolve_rule(db, influencer_id, customer_id=customer_id, referral_code=referral_code)
    commission = None
    if project_value is not None:
        context = schemas.FinancialContext(
            project_value=project_value,
            payments_received_total=payments_received_total,
            first_payment_amount=first_payment_amount,
        )
        commission = calculate_commission(rule, context)
    return schemas.RulePreview(rule=rule, description=describe_rule(rule), commission=commission)
