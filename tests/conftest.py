import os
import sys
import uuid
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

# Add project root to sys.path to allow imports from commission_engine
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Use a separate SQLite database for testing, also for the app's own engine
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_SQLALCHEMY_DATABASE_URL

from commission_engine.main import app
from commission_engine.db.base_class import Base
from commission_engine.db.session import get_db, make_engine
from commission_engine import models  # noqa: F401  (registers tables)
from commission_engine.crud import crud_customer, crud_influencer
from commission_engine.models.customer import Customer as CustomerModel, CustomerPayment as CustomerPaymentModel
from commission_engine.models.influencer import Influencer as InfluencerModel
from commission_engine.schemas.customer import CustomerCreate, CustomerPaymentCreate
from commission_engine.schemas.influencer import InfluencerCreate

engine = make_engine(TEST_SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.create_all(bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="session")
def test_engine():
    Base.metadata.create_all(bind=engine)
    yield engine

@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Provides a database session for each test function.
    Tables are dropped and recreated first so every test starts empty.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(scope="function")
def client(db_session: Session):
    # Depends on db_session so API tests also start from empty tables
    with TestClient(app) as c:
        yield c


# Factory helpers shared by the test modules

def create_influencer(db: Session, **overrides) -> InfluencerModel:
    data = {
        "name": f"Influencer {uuid.uuid4().hex[:6]}",
        "social_handles": "@someone",
        "contact_info": "someone@example.com",
        "commission_type": "percentage",
        "commission_rate": Decimal("10"),
        "commission_calculation_method": "payments_received",
        "commission_trigger": "first_payment",
    }
    data.update(overrides)
    return crud_influencer.create_influencer(db, obj_in=InfluencerCreate(**data))

def create_customer(db: Session, influencer: InfluencerModel = None, **overrides) -> CustomerModel:
    data = {
        "name": "Test Customer",
        "email": f"customer_{uuid.uuid4().hex[:6]}@example.com",
        "project_type": "website",
        "project_value": Decimal("1000"),
        "referral_code": influencer.referral_code if influencer is not None else None,
    }
    data.update(overrides)
    return crud_customer.create_customer(db, obj_in=CustomerCreate(**data))

def add_payment(db: Session, customer: CustomerModel, amount) -> CustomerPaymentModel:
    return crud_customer.record_payment(
        db, customer_id=customer.id, obj_in=CustomerPaymentCreate(payment_amount=Decimal(str(amount)))
    )

@pytest.fixture(scope="function")
def influencer(db_session: Session) -> InfluencerModel:
    return create_influencer(db_session)

@pytest.fixture(scope="function")
def referred_customer(db_session: Session, influencer: InfluencerModel) -> CustomerModel:
    return create_customer(db_session, influencer)
