from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from commission_engine.schemas.rule import CommissionType, CalculationMethod, CommissionTrigger


def _check_rule_fields(values):
    """Shared checks for influencer defaults and overrides."""
    commission_type = getattr(values, "commission_type", None)
    if commission_type == "percentage" and getattr(values, "commission_rate", None) is None:
        raise ValueError("commission_rate is required for percentage commissions")
    if commission_type == "fixed" and getattr(values, "fixed_rate", None) is None:
        raise ValueError("fixed_rate is required for fixed commissions")
    cap = getattr(values, "commission_cap", None)
    minimum = getattr(values, "commission_minimum", None)
    if cap is not None and minimum is not None and cap < minimum:
        raise ValueError("commission_cap must not be lower than commission_minimum")
    return values


class InfluencerRuleFields(BaseModel):
    commission_type: CommissionType = "percentage"
    commission_rate: Optional[Decimal] = Field(default=Decimal("10"), ge=0)
    fixed_rate: Optional[Decimal] = Field(default=Decimal("100"), ge=0)
    commission_calculation_method: CalculationMethod = "payments_received"
    commission_trigger: CommissionTrigger = "first_payment"
    commission_cap: Optional[Decimal] = Field(default=None, ge=0)
    commission_minimum: Optional[Decimal] = Field(default=None, ge=0)


class InfluencerBase(InfluencerRuleFields):
    name: str = Field(..., min_length=1, max_length=255)
    social_handles: Optional[str] = None
    contact_info: Optional[str] = None


class InfluencerCreate(InfluencerBase):
    # Generated from the name when omitted
    referral_code: Optional[str] = Field(default=None, min_length=1, max_length=50)

    @model_validator(mode="after")
    def check_rule(self):
        return _check_rule_fields(self)


class InfluencerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    social_handles: Optional[str] = None
    contact_info: Optional[str] = None
    commission_type: Optional[CommissionType] = None
    commission_rate: Optional[Decimal] = Field(default=None, ge=0)
    fixed_rate: Optional[Decimal] = Field(default=None, ge=0)
    commission_calculation_method: Optional[CalculationMethod] = None
    commission_trigger: Optional[CommissionTrigger] = None
    commission_cap: Optional[Decimal] = Field(default=None, ge=0)
    commission_minimum: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_required_not_null(self):
        # Omitted fields are left alone; these columns cannot be cleared
        cleared = [
            field for field in ("name", "commission_type", "commission_calculation_method", "commission_trigger")
            if field in self.model_fields_set and getattr(self, field) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class InfluencerReferralCodeUpdate(BaseModel):
    referral_code: str = Field(..., max_length=50)


class Influencer(InfluencerBase):
    id: int
    referral_code: str
    total_referrals: int
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
