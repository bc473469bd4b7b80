from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Optional, Union, Literal
from decimal import Decimal

CommissionType = Literal["percentage", "fixed"]
CalculationMethod = Literal["project_value", "payments_received", "first_payment"]
CommissionTrigger = Literal["signup", "first_payment", "project_completion"]
CommissionStatus = Literal["pending", "paid", "cancelled"]
RuleSource = Literal["customer_override", "code_override", "influencer_override", "influencer_default"]


class _RuleBase(BaseModel):
    """Fields shared by every commission rule variant."""
    trigger: CommissionTrigger = "first_payment"
    cap: Optional[Decimal] = Field(default=None, ge=0)
    minimum: Optional[Decimal] = Field(default=None, ge=0)

    # Where the rule came from, for previews and ledger explanations
    source: RuleSource = "influencer_default"
    override_id: Optional[int] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_cap_not_below_minimum(self):
        if self.cap is not None and self.minimum is not None and self.cap < self.minimum:
            raise ValueError(f"cap ({self.cap}) must not be lower than minimum ({self.minimum})")
        return self


class PercentageRule(_RuleBase):
    commission_type: Literal["percentage"] = "percentage"
    rate: Decimal = Field(..., ge=0) # Percent, 10 means 10%
    calculation_method: CalculationMethod = "payments_received"


class FixedRule(_RuleBase):
    commission_type: Literal["fixed"] = "fixed"
    fixed_rate: Decimal = Field(..., ge=0)

    @property
    def calculation_method(self) -> str:
        return "fixed"


CommissionRule = Annotated[Union[PercentageRule, FixedRule], Field(discriminator="commission_type")]


class FinancialContext(BaseModel):
    """Snapshot of a customer's financials at the triggering event."""
    project_value: Decimal = Decimal("0")
    payments_received_total: Decimal = Decimal("0")
    first_payment_amount: Decimal = Decimal("0")


class CommissionResult(BaseModel):
    base_amount: Decimal
    final_amount: Decimal
    explanation: dict


class RulePreview(BaseModel):
    """What the admin sees before saving an override: the effective rule and an example payout."""
    rule: CommissionRule
    description: str
    commission: Optional[CommissionResult] = None
