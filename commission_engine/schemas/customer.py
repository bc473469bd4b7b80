from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from commission_engine.schemas.commission import CommissionEntry


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    project_type: Optional[str] = Field(default=None, max_length=100)
    project_value: Decimal = Field(default=Decimal("0"), ge=0)
    status: str = Field(default="new", max_length=50)
    referral_code: Optional[str] = Field(default=None, max_length=50)


class Customer(BaseModel):
    id: int
    name: str
    email: EmailStr
    project_type: Optional[str] = None
    project_value: Decimal
    status: str
    referral_code: Optional[str] = None
    referred_by_influencer_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerPaymentCreate(BaseModel):
    payment_amount: Decimal = Field(..., gt=0)
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    transaction_reference: Optional[str] = Field(default=None, max_length=255)


class CustomerPayment(BaseModel):
    id: int
    customer_id: int
    payment_amount: Decimal
    payment_date: datetime
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None

    class Config:
        from_attributes = True


# Events emitted by the customer/payment subsystem

class CustomerCreatedEvent(BaseModel):
    customer_id: int


class PaymentRecordedEvent(BaseModel):
    """Either reference an already stored payment or supply one to store."""
    customer_id: int
    payment_id: Optional[int] = None
    payment: Optional[CustomerPaymentCreate] = None


class ProjectCompletedEvent(BaseModel):
    customer_id: int


class EventResult(BaseModel):
    customer_id: int
    commissions: List[CommissionEntry] = []
