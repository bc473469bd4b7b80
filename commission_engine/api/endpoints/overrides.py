from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from commission_engine import schemas
from commission_engine.crud import crud_override
from commission_engine.db.session import get_db

router = APIRouter()


@router.post("/", response_model=schemas.CommissionOverride, status_code=201)
def create_override(override_in: schemas.CommissionOverrideCreate, db: Session = Depends(get_db)):
    """
    Create a commission override for a customer, a referral code, or all of an
    influencer's referrals.
    """
    return crud_override.create_override(db=db, obj_in=override_in)


@router.get("/{override_id}", response_model=schemas.CommissionOverride)
def read_override(override_id: int, db: Session = Depends(get_db)):
    db_override = crud_override.get_override(db, override_id)
    if not db_override:
        raise HTTPException(status_code=404, detail="Commission override not found")
    return db_override


@router.delete("/{override_id}", response_model=schemas.CommissionOverride)
def delete_override(override_id: int, db: Session = Depends(get_db)):
    return crud_override.delete_override(db=db, override_id=override_id)
