from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ReferralClickCreate(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=50)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)


class ReferralConversionCreate(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=50)
    customer_id: int


class ReferralClick(BaseModel):
    id: int
    influencer_id: int
    referral_code: str
    clicked_at: datetime
    converted: bool
    converted_at: Optional[datetime] = None
    customer_id: Optional[int] = None

    class Config:
        from_attributes = True


class ReferralCodeValidation(BaseModel):
    valid: bool
    referral_code: Optional[str] = None
    influencer_id: Optional[int] = None
    referral_link: Optional[str] = None
