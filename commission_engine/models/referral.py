from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

class ReferralClick(Base):
    __tablename__ = "referral_click"
    __table_args__ = (
        # A customer converts at most once per influencer; NULLs (unconverted clicks) don't collide
        UniqueConstraint("influencer_id", "customer_id", name="uq_referral_click_conversion"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    influencer_id = Column(Integer, ForeignKey("influencer.id"), nullable=False, index=True)
    referral_code = Column(String(50), nullable=False, index=True) # Code as used at click time
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    clicked_at = Column(DateTime, nullable=False, index=True)

    converted = Column(Boolean, default=False, nullable=False, index=True)
    converted_at = Column(DateTime, nullable=True)
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=True)

    influencer = relationship("Influencer", back_populates="referral_clicks")

    def __repr__(self):
        return f"<ReferralClick(id={self.id}, referral_code='{self.referral_code}', converted={self.converted})>"
