import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from commission_engine import schemas
from commission_engine.core import commission_triggers
from commission_engine.crud import crud_customer
from commission_engine.db.session import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

# Hooks for the customer/payment subsystem. Each is safe to deliver more than once.


def _result(customer_id: int, entry) -> schemas.EventResult:
    return schemas.EventResult(customer_id=customer_id, commissions=[entry] if entry is not None else [])


@router.post("/customer-created", response_model=schemas.EventResult)
async def customer_created(event_in: schemas.CustomerCreatedEvent, db: Session = Depends(get_db)):
    entry = await commission_triggers.process_event(
        db, event=commission_triggers.CUSTOMER_CREATED, customer_id=event_in.customer_id
    )
    return _result(event_in.customer_id, entry)


@router.post("/payment-recorded", response_model=schemas.EventResult)
async def payment_recorded(event_in: schemas.PaymentRecordedEvent, db: Session = Depends(get_db)):
    """
    Either pass the id of a stored payment, or the payment itself to store it first.
    """
    payment_id = event_in.payment_id
    if payment_id is None:
        if event_in.payment is None:
            raise HTTPException(status_code=422, detail="Either payment_id or payment is required")
        payment = crud_customer.record_payment(db, customer_id=event_in.customer_id, obj_in=event_in.payment)
        payment_id = payment.id
        logger.info(f"Stored payment ID: {payment_id} of {payment.payment_amount} for customer ID: {event_in.customer_id}")

    entry = await commission_triggers.process_event(
        db, event=commission_triggers.PAYMENT_RECORDED, customer_id=event_in.customer_id, payment_id=payment_id
    )
    return _result(event_in.customer_id, entry)


@router.post("/project-completed", response_model=schemas.EventResult)
async def project_completed(event_in: schemas.ProjectCompletedEvent, db: Session = Depends(get_db)):
    customer = crud_customer.get_customer(db, event_in.customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    if customer.status != "completed":
        crud_customer.update_customer_status(db, db_obj=customer, status="completed")

    entry = await commission_triggers.process_event(
        db, event=commission_triggers.PROJECT_COMPLETED, customer_id=event_in.customer_id
    )
    return _result(event_in.customer_id, entry)
