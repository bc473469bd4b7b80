from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

class CommissionPayment(Base):
    __tablename__ = "commission_payment"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    influencer_id = Column(Integer, ForeignKey("influencer.id"), nullable=False, index=True)
    payment_amount = Column(Numeric(12, 2), nullable=False) # Equals the sum of settled entries
    payment_date = Column(DateTime, nullable=False)
    payment_method = Column(String(50), nullable=False)
    transaction_reference = Column(String(255), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    influencer = relationship("Influencer", back_populates="commission_payments")
    entries = relationship("CommissionEntry", back_populates="payment", order_by="CommissionEntry.id")

    @property
    def entry_ids(self):
        return [entry.id for entry in self.entries]

    def __repr__(self):
        return f"<CommissionPayment(id={self.id}, influencer_id={self.influencer_id}, amount={self.payment_amount})>"
