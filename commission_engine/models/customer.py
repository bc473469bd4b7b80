from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from commission_engine.db.base_class import Base

# Customer and payment rows are owned by the customer/payment subsystem.
# The commission engine only reads them (and stamps referral attribution).

class Customer(Base):
    __tablename__ = "customer"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    project_type = Column(String(100), nullable=True)
    project_value = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(50), nullable=False, default="new", index=True)
    # e.g., new, in_progress, completed, rejected
    referral_code = Column(String(50), nullable=True)
    referred_by_influencer_id = Column(Integer, ForeignKey("influencer.id"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    payments = relationship("CustomerPayment", back_populates="customer", order_by="CustomerPayment.payment_date")
    referred_by = relationship("Influencer")

    def __repr__(self):
        return f"<Customer(id={self.id}, email='{self.email}', status='{self.status}')>"


class CustomerPayment(Base):
    __tablename__ = "customer_payment"
    __table_args__ = (
        # Redelivered payment events carry the same reference
        UniqueConstraint("customer_id", "transaction_reference", name="uq_customer_payment_reference"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False, index=True)
    payment_amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime, server_default=func.now(), nullable=False)
    payment_method = Column(String(50), nullable=True)
    transaction_reference = Column(String(255), nullable=True)

    customer = relationship("Customer", back_populates="payments")

    def __repr__(self):
        return f"<CustomerPayment(id={self.id}, customer_id={self.customer_id}, amount={self.payment_amount})>"
