from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

class CommissionOverride(Base):
    __tablename__ = "commission_override"
    __table_args__ = (
        CheckConstraint(
            "customer_id IS NULL OR referral_code IS NULL",
            name="ck_override_single_scope",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    influencer_id = Column(Integer, ForeignKey("influencer.id"), nullable=False, index=True)
    # Scope: customer_id set -> customer-scoped, referral_code set -> code-scoped, neither -> influencer-wide
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=True, index=True)
    referral_code = Column(String(50), nullable=True, index=True)

    commission_type = Column(String(20), nullable=False)
    commission_rate = Column(Numeric(7, 4), nullable=True)
    fixed_rate = Column(Numeric(12, 2), nullable=True)
    commission_calculation_method = Column(String(30), nullable=False, default="payments_received")
    commission_trigger = Column(String(30), nullable=False, default="first_payment")
    commission_cap = Column(Numeric(12, 2), nullable=True)
    commission_minimum = Column(Numeric(12, 2), nullable=True)

    description = Column(Text, nullable=True)
    valid_from = Column(DateTime, nullable=True) # Inclusive
    valid_until = Column(DateTime, nullable=True) # Inclusive
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    influencer = relationship("Influencer", back_populates="overrides")
    customer = relationship("Customer")

    @property
    def scope(self) -> str:
        if self.customer_id is not None:
            return "customer"
        if self.referral_code:
            return "code"
        return "influencer"

    def __repr__(self):
        return f"<CommissionOverride(id={self.id}, influencer_id={self.influencer_id}, scope='{self.scope}')>"
