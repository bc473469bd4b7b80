from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from commission_engine.schemas.influencer import InfluencerRuleFields, _check_rule_fields


class CommissionOverrideCreate(InfluencerRuleFields):
    """
    A rule replacing an influencer's default for one customer, one referral code,
    or (with neither set) every referral of that influencer, optionally within
    a validity window.
    """
    influencer_id: int
    customer_id: Optional[int] = None
    referral_code: Optional[str] = Field(default=None, max_length=50)
    description: str = Field(default="", max_length=2000)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    @model_validator(mode="after")
    def check_scope_and_window(self):
        if self.customer_id is not None and self.referral_code:
            raise ValueError("An override is either customer-scoped or code-scoped, not both")
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ValueError("valid_from must not be after valid_until")
        return _check_rule_fields(self)


class CommissionOverride(BaseModel):
    id: int
    influencer_id: int
    customer_id: Optional[int] = None
    referral_code: Optional[str] = None
    scope: str
    commission_type: str
    commission_rate: Optional[Decimal] = None
    fixed_rate: Optional[Decimal] = None
    commission_calculation_method: str
    commission_trigger: str
    commission_cap: Optional[Decimal] = None
    commission_minimum: Optional[Decimal] = None
    description: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
