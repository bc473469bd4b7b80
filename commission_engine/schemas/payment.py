from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class CommissionPaymentCreate(BaseModel):
    """Payout request settling a set of pending commission entries."""
    entry_ids: List[int] = Field(..., min_length=1)
    payment_amount: Decimal = Field(..., ge=0)
    payment_method: str = Field(..., min_length=1, max_length=50)
    transaction_reference: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None


class CommissionPayment(BaseModel):
    id: int
    influencer_id: int
    payment_amount: Decimal
    payment_date: datetime
    payment_method: str
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None
    entry_ids: List[int] = []

    class Config:
        from_attributes = True
