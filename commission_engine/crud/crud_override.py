from sqlalchemy.orm import Session
from typing import Optional, List

from commission_engine.core.exceptions import CommissionValidationError, NotFoundError
from commission_engine.core.utils import to_naive_utc
from commission_engine.crud import crud_influencer
from commission_engine.models.customer import Customer
from commission_engine.models.override import CommissionOverride
from commission_engine.schemas.override import CommissionOverrideCreate


def create_override(db: Session, *, obj_in: CommissionOverrideCreate) -> CommissionOverride:
    if not crud_influencer.get_influencer(db, obj_in.influencer_id):
        raise NotFoundError(f"Influencer {obj_in.influencer_id} not found")
    if obj_in.customer_id is not None:
        customer = db.query(Customer).filter(Customer.id == obj_in.customer_id).first()
        if not customer:
            raise NotFoundError(f"Customer {obj_in.customer_id} not found")
        referrer_id = customer.referred_by_influencer_id
        if referrer_id is not None and referrer_id != obj_in.influencer_id:
            raise CommissionValidationError(
                f"Customer {obj_in.customer_id} is referred by influencer {referrer_id}, not {obj_in.influencer_id}"
            )

    data = obj_in.model_dump()
    if data.get("referral_code"):
        data["referral_code"] = crud_influencer.normalize_referral_code(data["referral_code"])
    else:
        data["referral_code"] = None
    data["valid_from"] = to_naive_utc(data.get("valid_from"))
    data["valid_until"] = to_naive_utc(data.get("valid_until"))

    db_obj = CommissionOverride(**data)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_override(db: Session, override_id: int) -> Optional[CommissionOverride]:
    return db.query(CommissionOverride).filter(CommissionOverride.id == override_id).first()


def get_overrides_for_influencer(db: Session, *, influencer_id: int) -> List[CommissionOverride]:
    """All overrides of an influencer, newest first."""
    return (
        db.query(CommissionOverride)
        .filter(CommissionOverride.influencer_id == influencer_id)
        .order_by(CommissionOverride.created_at.desc(), CommissionOverride.id.desc())
        .all()
    )


def delete_override(db: Session, *, override_id: int) -> CommissionOverride:
    db_obj = get_override(db, override_id)
    if not db_obj:
        raise NotFoundError(f"Commission override {override_id} not found")
    db.delete(db_obj)
    db.commit()
    return db_obj
