"""
Resolve the effective commission rule for an influencer.

Precedence, most specific first: customer-scoped override, code-scoped
override, influencer-wide override, the influencer's own default fields.
Within one level the most recently created override wins (ties on
``created_at`` go to the higher id). Only overrides whose validity window
contains the evaluation time are considered; both window ends are inclusive.
"""
import logging
from datetime import datetime
from typing import Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from commission_engine.core.exceptions import CommissionValidationError, NotFoundError
from commission_engine.core.utils import to_naive_utc, utcnow
from commission_engine.crud import crud_influencer, crud_override
from commission_engine.models.override import CommissionOverride
from commission_engine.schemas.rule import CommissionRule

logger = logging.getLogger(__name__)

_RULE_ADAPTER = TypeAdapter(CommissionRule)

_SCOPE_RANK = {"customer": 3, "code": 2, "influencer": 1}
_SCOPE_SOURCE = {
    "customer": "customer_override",
    "code": "code_override",
    "influencer": "influencer_override",
}


def rule_from_fields(obj, *, source: str = "influencer_default", override_id: Optional[int] = None) -> CommissionRule:
    """
    Build a typed rule from an Influencer or CommissionOverride row.
    Only the fields of the row's variant are carried over.
    """
    data = {
        "commission_type": obj.commission_type,
        "trigger": obj.commission_trigger,
        "cap": obj.commission_cap,
        "minimum": obj.commission_minimum,
        "source": source,
        "override_id": override_id,
    }
    if obj.commission_type == "fixed":
        data["fixed_rate"] = obj.fixed_rate
    else:
        data["rate"] = obj.commission_rate
        data["calculation_method"] = obj.commission_calculation_method

    try:
        return _RULE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise CommissionValidationError(f"Invalid commission rule ({source}): {exc}")


def _window_contains(override: CommissionOverride, at: datetime) -> bool:
    if override.valid_from is not None and at < override.valid_from:
        return False
    if override.valid_until is not None and at > override.valid_until:
        return False
    return True


def _applies_to(override: CommissionOverride, customer_id: Optional[int], referral_code: str) -> bool:
    scope = override.scope
    if scope == "customer":
        return customer_id is not None and override.customer_id == customer_id
    if scope == "code":
        return bool(referral_code) and crud_influencer.normalize_referral_code(override.referral_code) == referral_code
    return True


def select_override(overrides, *, customer_id: Optional[int], referral_code: Optional[str], at: datetime) -> Optional[CommissionOverride]:
    normalized_code = crud_influencer.normalize_referral_code(referral_code)
    candidates = [
        o for o in overrides
        if _window_contains(o, at) and _applies_to(o, customer_id, normalized_code)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda o: (_SCOPE_RANK[o.scope], o.created_at, o.id))


def resolve_rule(
    db: Session,
    influencer_id: int,
    *,
    customer_id: Optional[int] = None,
    referral_code: Optional[str] = None,
    at: Optional[datetime] = None,
) -> CommissionRule:
    influencer = crud_influencer.get_influencer(db, influencer_id)
    if not influencer:
        raise NotFoundError(f"Influencer {influencer_id} not found")

    at = to_naive_utc(at) or utcnow()
    overrides = crud_override.get_overrides_for_influencer(db, influencer_id=influencer_id)
    chosen = select_override(overrides, customer_id=customer_id, referral_code=referral_code, at=at)

    if chosen is not None:
        logger.debug(f"Influencer {influencer_id}: using {chosen.scope} override {chosen.id} for customer {customer_id}")
        return rule_from_fields(chosen, source=_SCOPE_SOURCE[chosen.scope], override_id=chosen.id)

    return rule_from_fields(influencer)
