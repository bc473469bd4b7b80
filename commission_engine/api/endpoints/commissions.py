from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from commission_engine import schemas
from commission_engine.core import metrics
from commission_engine.core.commission_triggers import sync_customer_commissions
from commission_engine.crud import crud_commission
from commission_engine.db.session import get_db

router = APIRouter()


@router.get("/metrics", response_model=schemas.ReferralMetrics)
def read_referral_metrics(db: Session = Depends(get_db)):
    """
    Program-wide totals for the referral dashboard.
    """
    return metrics.get_referral_metrics(db)


@router.get("/payments/{payment_id}", response_model=schemas.CommissionPayment)
def read_commission_payment(payment_id: int, db: Session = Depends(get_db)):
    payment = crud_commission.get_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Commission payment not found")
    return payment


@router.post("/sync/{customer_id}", response_model=List[schemas.CommissionEntry])
async def sync_commissions(customer_id: int, db: Session = Depends(get_db)):
    """
    Replay a customer's history so any missing commissions get recorded.
    """
    return await sync_customer_commissions(db, customer_id=customer_id)


@router.get("/{entry_id}", response_model=schemas.CommissionEntry)
def read_commission(entry_id: int, db: Session = Depends(get_db)):
    entry = crud_commission.get_entry(db, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Commission not found")
    return entry


@router.post("/{entry_id}/cancel", response_model=schemas.CommissionEntry)
def cancel_commission(entry_id: int, cancel_in: schemas.CommissionCancel, db: Session = Depends(get_db)):
    """
    Cancel a pending commission. Paid commissions cannot be cancelled.
    """
    return crud_commission.cancel_entry(db, entry_id=entry_id, reason=cancel_in.reason)
