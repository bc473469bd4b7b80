import pytest
import re
from decimal import Decimal
from sqlalchemy.orm import Session

from commission_engine.core.exceptions import CommissionValidationError, DuplicateEntryError, NotFoundError
from commission_engine.crud import crud_influencer
from commission_engine.schemas.influencer import InfluencerCreate, InfluencerUpdate
from tests.conftest import create_influencer

pytestmark = pytest.mark.crud


def test_generate_referral_code_format():
    code = crud_influencer.generate_referral_code("jo ann smith")
    assert re.fullmatch(r"JOAN[A-Z0-9]{4}", code)
    # Short names keep what they have
    assert re.fullmatch(r"AL[A-Z0-9]{4}", crud_influencer.generate_referral_code("Al"))


def test_create_influencer_generates_code(db_session: Session):
    influencer = create_influencer(db_session, name="Maria Lopez")
    assert influencer.id is not None
    assert influencer.referral_code.startswith("MARI")
    assert len(influencer.referral_code) == 8
    assert influencer.is_active is True
    assert influencer.total_referrals == 0
    assert influencer.commission_rate == Decimal("10")


def test_create_influencer_with_code_is_normalized(db_session: Session):
    influencer = create_influencer(db_session, referral_code="  summer24 ")
    assert influencer.referral_code == "SUMMER24"


def test_referral_codes_are_unique_case_insensitively(db_session: Session):
    create_influencer(db_session, referral_code="SUMMER24")
    with pytest.raises(DuplicateEntryError):
        create_influencer(db_session, referral_code="summer24")


def test_lookup_by_code_ignores_case(db_session: Session):
    influencer = create_influencer(db_session, referral_code="SUMMER24")
    assert crud_influencer.get_influencer_by_code(db_session, "Summer24").id == influencer.id
    assert crud_influencer.get_influencer_by_code(db_session, "") is None
    assert crud_influencer.get_influencer_by_code(db_session, "NOPE") is None


def test_soft_deleted_code_stays_reserved(db_session: Session):
    influencer = create_influencer(db_session, referral_code="GONE0001")
    crud_influencer.soft_delete_influencer(db_session, influencer_id=influencer.id)

    assert crud_influencer.get_influencer(db_session, influencer.id) is None
    assert crud_influencer.get_influencer(db_session, influencer.id, include_inactive=True).deleted_at is not None
    assert crud_influencer.get_influencer_by_code(db_session, "GONE0001") is None
    with pytest.raises(DuplicateEntryError):
        create_influencer(db_session, referral_code="gone0001")


def test_soft_delete_unknown_influencer(db_session: Session):
    with pytest.raises(NotFoundError):
        crud_influencer.soft_delete_influencer(db_session, influencer_id=777)


def test_update_referral_code(db_session: Session):
    influencer = create_influencer(db_session, referral_code="OLDCODE1")
    other = create_influencer(db_session, referral_code="TAKEN001")

    updated = crud_influencer.update_referral_code(db_session, db_obj=influencer, referral_code="newcode1")
    assert updated.referral_code == "NEWCODE1"
    assert crud_influencer.get_influencer_by_code(db_session, "OLDCODE1") is None

    # Keeping its own code is fine, taking another one is not
    crud_influencer.update_referral_code(db_session, db_obj=influencer, referral_code="NEWCODE1")
    with pytest.raises(DuplicateEntryError):
        crud_influencer.update_referral_code(db_session, db_obj=influencer, referral_code=other.referral_code)
    with pytest.raises(CommissionValidationError):
        crud_influencer.update_referral_code(db_session, db_obj=influencer, referral_code="   ")


def test_update_influencer_rule(db_session: Session):
    influencer = create_influencer(db_session)
    updated = crud_influencer.update_influencer(
        db_session, db_obj=influencer,
        obj_in=InfluencerUpdate(commission_type="fixed", fixed_rate=Decimal("150"), commission_cap=Decimal("200")),
    )
    assert updated.commission_type == "fixed"
    assert updated.fixed_rate == Decimal("150")
    assert updated.commission_cap == Decimal("200")


def test_update_influencer_rejects_broken_rule(db_session: Session):
    influencer = create_influencer(db_session, commission_minimum=Decimal("20"))
    with pytest.raises(CommissionValidationError):
        crud_influencer.update_influencer(
            db_session, db_obj=influencer, obj_in=InfluencerUpdate(commission_cap=Decimal("10")),
        )
    db_session.expire_all()
    assert crud_influencer.get_influencer(db_session, influencer.id).commission_cap is None


def test_create_schema_requires_fields_of_variant():
    with pytest.raises(ValueError):
        InfluencerCreate(name="No Rate", commission_type="percentage", commission_rate=None)
    with pytest.raises(ValueError):
        InfluencerCreate(name="No Fixed", commission_type="fixed", fixed_rate=None)
    with pytest.raises(ValueError):
        InfluencerCreate(name="Bad Bounds", commission_cap=Decimal("5"), commission_minimum=Decimal("10"))


def test_list_influencers_hides_inactive(db_session: Session):
    active = create_influencer(db_session)
    inactive = create_influencer(db_session)
    crud_influencer.soft_delete_influencer(db_session, influencer_id=inactive.id)

    assert [i.id for i in crud_influencer.get_influencers(db_session)] == [active.id]
    assert {i.id for i in crud_influencer.get_influencers(db_session, include_inactive=True)} == {active.id, inactive.id}


def test_update_schema_rejects_clearing_required_fields():
    with pytest.raises(ValueError):
        InfluencerUpdate(commission_type=None)
    with pytest.raises(ValueError):
        InfluencerUpdate(name=None, commission_trigger=None)
    # Omitted fields stay unset
    assert InfluencerUpdate(commission_cap=None).model_dump(exclude_unset=True) == {"commission_cap": None}
