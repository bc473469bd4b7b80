import logging
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List

from commission_engine.core.exceptions import DuplicateEntryError, NotFoundError
from commission_engine.core.utils import to_naive_utc, utcnow
from commission_engine.crud import crud_influencer
from commission_engine.models.customer import Customer, CustomerPayment
from commission_engine.schemas.customer import CustomerCreate, CustomerPaymentCreate

logger = logging.getLogger(__name__)

# Thin accessors for records owned by the customer/payment subsystem.

def get_customer(db: Session, customer_id: int) -> Optional[Customer]:
    return db.query(Customer).filter(Customer.id == customer_id).first()


def create_customer(db: Session, *, obj_in: CustomerCreate) -> Customer:
    """
    Create a customer. A referral code matching an active influencer attributes
    the customer to that influencer; unknown codes are kept as entered.
    """
    data = obj_in.model_dump()
    influencer = crud_influencer.get_influencer_by_code(db, obj_in.referral_code) if obj_in.referral_code else None
    if influencer:
        data["referral_code"] = influencer.referral_code
        data["referred_by_influencer_id"] = influencer.id

    db_obj = Customer(**data)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update_customer_status(db: Session, *, db_obj: Customer, status: str) -> Customer:
    db_obj.status = status
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_payment_by_reference(db: Session, *, customer_id: int, transaction_reference: str) -> Optional[CustomerPayment]:
    return (
        db.query(CustomerPayment)
        .filter(
            CustomerPayment.customer_id == customer_id,
            CustomerPayment.transaction_reference == transaction_reference,
        )
        .first()
    )


def _matching_payment(db: Session, customer_id: int, obj_in: CustomerPaymentCreate) -> Optional[CustomerPayment]:
    existing = get_payment_by_reference(
        db, customer_id=customer_id, transaction_reference=obj_in.transaction_reference
    )
    if existing is None:
        return None
    if Decimal(existing.payment_amount) != obj_in.payment_amount:
        raise DuplicateEntryError(
            f"Transaction reference '{obj_in.transaction_reference}' is already recorded for customer "
            f"{customer_id} with amount {existing.payment_amount}"
        )
    logger.info(f"Payment {obj_in.transaction_reference} of customer ID: {customer_id} already stored as ID: {existing.id}")
    return existing


def record_payment(db: Session, *, customer_id: int, obj_in: CustomerPaymentCreate) -> CustomerPayment:
    """
    Store a customer payment. A payment with a transaction reference is stored
    once per customer; repeating it returns the stored row.
    """
    if not get_customer(db, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found")
    if obj_in.transaction_reference:
        existing = _matching_payment(db, customer_id, obj_in)
        if existing is not None:
            return existing

    db_obj = CustomerPayment(
        customer_id=customer_id,
        payment_amount=obj_in.payment_amount,
        payment_date=to_naive_utc(obj_in.payment_date) or utcnow(),
        payment_method=obj_in.payment_method,
        transaction_reference=obj_in.transaction_reference,
    )
    db.add(db_obj)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent delivery of the same payment
        db.rollback()
        existing = _matching_payment(db, customer_id, obj_in) if obj_in.transaction_reference else None
        if existing is not None:
            return existing
        raise DuplicateEntryError(f"Payment for customer {customer_id} could not be recorded")
    db.refresh(db_obj)
    return db_obj


def get_payment(db: Session, payment_id: int) -> Optional[CustomerPayment]:
    return db.query(CustomerPayment).filter(CustomerPayment.id == payment_id).first()


def get_payments(db: Session, *, customer_id: int) -> List[CustomerPayment]:
    """
    Payments of a customer in the order they were received.
    """
    return (
        db.query(CustomerPayment)
        .filter(CustomerPayment.customer_id == customer_id)
        .order_by(CustomerPayment.payment_date.asc(), CustomerPayment.id.asc())
        .all()
    )
