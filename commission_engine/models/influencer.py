from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Numeric, func
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

class Influencer(Base):
    __tablename__ = "influencer"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    social_handles = Column(Text, nullable=True)
    contact_info = Column(Text, nullable=True)
    referral_code = Column(String(50), nullable=False, unique=True, index=True) # Always stored upper-case

    # Default commission rule, used when no override applies
    commission_type = Column(String(20), nullable=False, default="percentage") # "percentage" or "fixed"
    commission_rate = Column(Numeric(7, 4), nullable=True) # Percent, e.g. 10 means 10%
    fixed_rate = Column(Numeric(12, 2), nullable=True)
    commission_calculation_method = Column(String(30), nullable=False, default="payments_received")
    commission_trigger = Column(String(30), nullable=False, default="first_payment")
    commission_cap = Column(Numeric(12, 2), nullable=True)
    commission_minimum = Column(Numeric(12, 2), nullable=True)

    total_referrals = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    deleted_at = Column(DateTime, nullable=True) # Soft delete keeps ledger history intact
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    overrides = relationship("CommissionOverride", back_populates="influencer")
    commission_entries = relationship("CommissionEntry", back_populates="influencer")
    commission_payments = relationship("CommissionPayment", back_populates="influencer")
    referral_clicks = relationship("ReferralClick", back_populates="influencer")

    def __repr__(self):
        return f"<Influencer(id={self.id}, name='{self.name}', referral_code='{self.referral_code}')>"
