import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session

from commission_engine.core.exceptions import CommissionValidationError, NotFoundError
from commission_engine.core.rule_resolution import resolve_rule
from commission_engine.crud import crud_influencer, crud_override
from commission_engine.models.influencer import Influencer as InfluencerModel
from commission_engine.schemas.override import CommissionOverrideCreate
from commission_engine.schemas.rule import FixedRule, PercentageRule
from tests.conftest import create_customer, create_influencer

pytestmark = pytest.mark.core


def _override(db: Session, influencer: InfluencerModel, **fields):
    data = {
        "influencer_id": influencer.id,
        "commission_type": "percentage",
        "commission_rate": Decimal("20"),
        "commission_calculation_method": "project_value",
        "commission_trigger": "first_payment",
        "description": "test override",
    }
    data.update(fields)
    return crud_override.create_override(db, obj_in=CommissionOverrideCreate(**data))


def test_default_rule_without_overrides(db_session: Session, influencer: InfluencerModel):
    rule = resolve_rule(db_session, influencer.id)
    assert isinstance(rule, PercentageRule)
    assert rule.rate == Decimal("10")
    assert rule.calculation_method == "payments_received"
    assert rule.source == "influencer_default"
    assert rule.override_id is None


def test_unknown_influencer_is_not_found(db_session: Session):
    with pytest.raises(NotFoundError):
        resolve_rule(db_session, 424242)


def test_soft_deleted_influencer_is_not_found(db_session: Session, influencer: InfluencerModel):
    crud_influencer.soft_delete_influencer(db_session, influencer_id=influencer.id)
    with pytest.raises(NotFoundError):
        resolve_rule(db_session, influencer.id)


def test_customer_override_beats_influencer_default(db_session: Session, influencer: InfluencerModel):
    customer = create_customer(db_session, influencer)
    override = _override(db_session, influencer, customer_id=customer.id, commission_rate=Decimal("15"))

    rule = resolve_rule(db_session, influencer.id, customer_id=customer.id)
    assert rule.source == "customer_override"
    assert rule.override_id == override.id
    assert rule.rate == Decimal("15")

    # Another customer still gets the default
    other = create_customer(db_session, influencer)
    assert resolve_rule(db_session, influencer.id, customer_id=other.id).source == "influencer_default"


def test_precedence_customer_over_code_over_influencer_wide(db_session: Session, influencer: InfluencerModel):
    customer = create_customer(db_session, influencer)
    wide = _override(db_session, influencer, commission_rate=Decimal("11"))
    code = _override(db_session, influencer, referral_code=influencer.referral_code.lower(), commission_rate=Decimal("12"))
    cust = _override(db_session, influencer, customer_id=customer.id, commission_rate=Decimal("13"))

    assert resolve_rule(db_session, influencer.id).override_id == wide.id
    assert resolve_rule(db_session, influencer.id, referral_code=influencer.referral_code).override_id == code.id
    assert resolve_rule(
        db_session, influencer.id, customer_id=customer.id, referral_code=influencer.referral_code
    ).override_id == cust.id


def test_latest_override_wins_within_same_scope(db_session: Session, influencer: InfluencerModel):
    _override(db_session, influencer, commission_rate=Decimal("11"))
    newer = _override(db_session, influencer, commission_rate=Decimal("14"))

    rule = resolve_rule(db_session, influencer.id)
    assert rule.override_id == newer.id
    assert rule.rate == Decimal("14")


def test_validity_window_is_respected(db_session: Session, influencer: InfluencerModel):
    start = datetime(2026, 1, 1)
    end = datetime(2026, 1, 31, 23, 59, 59)
    windowed = _override(db_session, influencer, valid_from=start, valid_until=end, commission_rate=Decimal("25"))

    assert resolve_rule(db_session, influencer.id, at=datetime(2026, 1, 15)).override_id == windowed.id
    # Both ends inclusive
    assert resolve_rule(db_session, influencer.id, at=start).override_id == windowed.id
    assert resolve_rule(db_session, influencer.id, at=end).override_id == windowed.id
    assert resolve_rule(db_session, influencer.id, at=start - timedelta(seconds=1)).source == "influencer_default"
    assert resolve_rule(db_session, influencer.id, at=end + timedelta(seconds=1)).source == "influencer_default"


def test_expired_customer_override_falls_back_to_code_override(db_session: Session, influencer: InfluencerModel):
    customer = create_customer(db_session, influencer)
    _override(
        db_session, influencer, customer_id=customer.id,
        valid_until=datetime(2020, 1, 1), commission_rate=Decimal("30"),
    )
    code = _override(db_session, influencer, referral_code=influencer.referral_code, commission_rate=Decimal("12"))

    rule = resolve_rule(db_session, influencer.id, customer_id=customer.id, referral_code=influencer.referral_code)
    assert rule.override_id == code.id


def test_fixed_override_carries_only_fixed_fields(db_session: Session, influencer: InfluencerModel):
    override = _override(
        db_session, influencer, commission_type="fixed", fixed_rate=Decimal("75"),
        commission_rate=Decimal("99"), commission_cap=Decimal("60"),
    )
    rule = resolve_rule(db_session, influencer.id)
    assert isinstance(rule, FixedRule)
    assert rule.fixed_rate == Decimal("75")
    assert rule.cap == Decimal("60")
    assert rule.override_id == override.id
    assert not hasattr(rule, "rate")


def test_malformed_stored_rule_is_a_validation_error(db_session: Session):
    influencer = create_influencer(db_session)
    # Bypass the schema to simulate a broken row
    influencer.commission_cap = Decimal("5")
    influencer.commission_minimum = Decimal("50")
    db_session.commit()

    with pytest.raises(CommissionValidationError):
        resolve_rule(db_session, influencer.id)


def test_override_for_unknown_influencer_is_not_found(db_session: Session):
    with pytest.raises(NotFoundError):
        crud_override.create_override(db_session, obj_in=CommissionOverrideCreate(
            influencer_id=999, commission_type="percentage", commission_rate=Decimal("5"),
        ))


def test_override_cannot_have_two_scopes():
    with pytest.raises(ValueError):
        CommissionOverrideCreate(influencer_id=1, customer_id=2, referral_code="ABC", commission_rate=Decimal("5"))
