from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from commission_engine import schemas
from commission_engine.crud import crud_commission, crud_customer
from commission_engine.db.session import get_db

router = APIRouter()

# Minimal customer surface used by the event hooks and tests; customer
# management itself lives in the CRM.

@router.post("/", response_model=schemas.Customer, status_code=201)
def create_customer(customer_in: schemas.CustomerCreate, db: Session = Depends(get_db)):
    return crud_customer.create_customer(db=db, obj_in=customer_in)


@router.get("/{customer_id}", response_model=schemas.Customer)
def read_customer(customer_id: int, db: Session = Depends(get_db)):
    customer = crud_customer.get_customer(db, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("/{customer_id}/payments", response_model=List[schemas.CustomerPayment])
def read_customer_payments(customer_id: int, db: Session = Depends(get_db)):
    if not crud_customer.get_customer(db, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return crud_customer.get_payments(db, customer_id=customer_id)


@router.get("/{customer_id}/commissions", response_model=List[schemas.CommissionEntry])
def read_customer_commissions(customer_id: int, db: Session = Depends(get_db)):
    if not crud_customer.get_customer(db, customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    return crud_commission.get_entries_by_customer(db, customer_id=customer_id)
