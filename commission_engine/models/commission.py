from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

class CommissionEntry(Base):
    __tablename__ = "commission_entry"
    __table_args__ = (
        CheckConstraint("commission_amount >= 0", name="ck_commission_amount_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    influencer_id = Column(Integer, ForeignKey("influencer.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False, index=True)

    trigger = Column(String(30), nullable=False) # signup, first_payment, project_completion
    # "{influencer_id}:{customer_id}:{trigger}:{event_key}", one entry per triggering event
    dedup_key = Column(String(255), nullable=False, unique=True)

    project_value = Column(Numeric(12, 2), nullable=True) # Snapshot at earning time
    commission_rate = Column(Numeric(7, 4), nullable=True)
    fixed_rate = Column(Numeric(12, 2), nullable=True)
    commission_amount = Column(Numeric(12, 2), nullable=False)
    commission_status = Column(String(20), nullable=False, default="pending", index=True) # pending, paid, cancelled
    calculation_method_used = Column(String(30), nullable=False)
    calculation_details = Column(JSON, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    earned_date = Column(DateTime, nullable=False, index=True)
    paid_date = Column(DateTime, nullable=True)
    # An entry can be settled by at most one payment batch
    payment_id = Column(Integer, ForeignKey("commission_payment.id"), nullable=True, index=True)

    influencer = relationship("Influencer", back_populates="commission_entries")
    customer = relationship("Customer")
    payment = relationship("CommissionPayment", back_populates="entries")

    def __repr__(self):
        return f"<CommissionEntry(id={self.id}, influencer_id={self.influencer_id}, customer_id={self.customer_id}, amount={self.commission_amount}, status='{self.commission_status}')>"
