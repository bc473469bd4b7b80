from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Any
from datetime import datetime
from decimal import Decimal


class CommissionNestedCustomer(BaseModel):
    """A simplified Customer schema for nesting within a commission entry."""
    id: int
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    project_type: Optional[str] = None

    class Config:
        from_attributes = True


class CommissionEntryBase(BaseModel):
    influencer_id: int
    customer_id: int
    trigger: str = Field(..., max_length=30)
    project_value: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = None
    fixed_rate: Optional[Decimal] = None
    commission_amount: Decimal = Field(..., ge=0)
    calculation_method_used: str = Field(..., max_length=30)
    calculation_details: Optional[Any] = None


class CommissionCancel(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class CommissionEntry(CommissionEntryBase):
    """Full schema for returning a ledger entry to the client."""
    id: int
    commission_status: str
    cancellation_reason: Optional[str] = None
    earned_date: datetime
    paid_date: Optional[datetime] = None
    payment_id: Optional[int] = None

    customer: Optional[CommissionNestedCustomer] = None

    class Config:
        from_attributes = True
