import logging
import re
import secrets
import string
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List

from commission_engine.core.config import REFERRAL_CODE_PREFIX_LENGTH, REFERRAL_CODE_SUFFIX_LENGTH
from commission_engine.core.exceptions import CommissionValidationError, DuplicateEntryError, NotFoundError
from commission_engine.core.utils import utcnow
from commission_engine.models.influencer import Influencer
from commission_engine.schemas.influencer import InfluencerCreate, InfluencerUpdate, _check_rule_fields

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_referral_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def generate_referral_code(name: str) -> str:
    """First letters of the name (whitespace removed) plus a random suffix, upper-cased."""
    prefix = re.sub(r"\s+", "", name).upper()[:REFERRAL_CODE_PREFIX_LENGTH]
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(REFERRAL_CODE_SUFFIX_LENGTH))
    return f"{prefix}{suffix}"


def get_influencer(db: Session, influencer_id: int, *, include_inactive: bool = False) -> Optional[Influencer]:
    """
    Get a single influencer by ID.
    Soft-deleted influencers are hidden unless include_inactive is True.
    """
    query = db.query(Influencer).filter(Influencer.id == influencer_id)
    if not include_inactive:
        query = query.filter(Influencer.is_active == True)
    return query.first()


def get_influencer_by_code(db: Session, code: str, *, include_inactive: bool = False) -> Optional[Influencer]:
    """Case-insensitive lookup by referral code."""
    normalized = normalize_referral_code(code)
    if not normalized:
        return None
    query = db.query(Influencer).filter(func.upper(Influencer.referral_code) == normalized)
    if not include_inactive:
        query = query.filter(Influencer.is_active == True)
    return query.first()


def get_influencers(
    db: Session, *, include_inactive: bool = False, skip: int = 0, limit: int = 100
) -> List[Influencer]:
    query = db.query(Influencer)
    if not include_inactive:
        query = query.filter(Influencer.is_active == True)
    return query.order_by(Influencer.created_at.desc(), Influencer.id.desc()).offset(skip).limit(limit).all()


def _ensure_code_available(db: Session, code: str, *, influencer_id: Optional[int] = None):
    if not code:
        raise CommissionValidationError("Referral code cannot be empty")
    # Soft-deleted influencers keep their code reserved so historical clicks stay attributable
    existing = get_influencer_by_code(db, code, include_inactive=True)
    if existing and existing.id != influencer_id:
        raise DuplicateEntryError(f"Referral code '{code}' is already in use")


def _unique_generated_code(db: Session, name: str) -> str:
    code = generate_referral_code(name)
    while get_influencer_by_code(db, code, include_inactive=True):
        code = generate_referral_code(name)
    return code


def create_influencer(db: Session, *, obj_in: InfluencerCreate) -> Influencer:
    """
    Create a new influencer. A referral code is generated from the name when none is given.
    """
    if obj_in.referral_code is not None:
        referral_code = normalize_referral_code(obj_in.referral_code)
        _ensure_code_available(db, referral_code)
    else:
        referral_code = _unique_generated_code(db, obj_in.name)

    data = obj_in.model_dump(exclude={"referral_code"})
    db_obj = Influencer(**data, referral_code=referral_code, total_referrals=0, is_active=True)
    db.add(db_obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEntryError(f"Referral code '{referral_code}' is already in use")
    db.refresh(db_obj)
    logger.info(f"Created influencer ID: {db_obj.id} with referral code {db_obj.referral_code}")
    return db_obj


def update_influencer(db: Session, *, db_obj: Influencer, obj_in: InfluencerUpdate) -> Influencer:
    """
    Update profile and default commission rule fields.
    The merged rule must still be valid (e.g. a fixed rule needs fixed_rate).
    """
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)

    try:
        _check_rule_fields(db_obj)
    except ValueError as exc:
        db.rollback()
        raise CommissionValidationError(str(exc))

    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    logger.info(f"Updated influencer ID: {db_obj.id} fields: {sorted(update_data)}")
    return db_obj


def update_referral_code(db: Session, *, db_obj: Influencer, referral_code: str) -> Influencer:
    """
    Replace an influencer's referral code. The new code goes live immediately;
    clicks already recorded keep the code they were made with.
    """
    normalized = normalize_referral_code(referral_code)
    _ensure_code_available(db, normalized, influencer_id=db_obj.id)

    old_code = db_obj.referral_code
    db_obj.referral_code = normalized
    db.add(db_obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEntryError(f"Referral code '{normalized}' is already in use")
    db.refresh(db_obj)
    logger.info(f"Influencer ID: {db_obj.id} referral code changed from {old_code} to {normalized}")
    return db_obj


def soft_delete_influencer(db: Session, *, influencer_id: int) -> Influencer:
    """
    Deactivate an influencer. Commission entries and payments are preserved for audit,
    pending entries remain payable.
    """
    db_obj = get_influencer(db, influencer_id, include_inactive=True)
    if not db_obj:
        raise NotFoundError(f"Influencer {influencer_id} not found")
    if db_obj.is_active:
        db_obj.is_active = False
        db_obj.deleted_at = utcnow()
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Soft-deleted influencer ID: {influencer_id}")
    return db_obj
