from pydantic import BaseModel
from decimal import Decimal


class InfluencerSummary(BaseModel):
    influencer_id: int
    total_referrals: int
    active_projects: int
    total_commission_earned: Decimal
    unpaid_commission: Decimal
    total_paid_commission: Decimal
    average_project_value: Decimal
    conversion_rate: Decimal # Percent of clicks that converted


class ReferralMetrics(BaseModel):
    total_influencers: int
    total_referrals: int
    total_pending_commissions: Decimal
    total_paid_commissions: Decimal
