import logging
from decimal import Decimal

from commission_engine.core.exceptions import CommissionValidationError
from commission_engine.core.utils import quantize_money
from commission_engine.schemas.rule import CommissionRule, FinancialContext, CommissionResult, FixedRule

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Which context field a percentage rule is computed against
_METHOD_TO_CONTEXT_FIELD = {
    "project_value": "project_value",
    "payments_received": "payments_received_total",
    "first_payment": "first_payment_amount",
}


def _check_context(context: FinancialContext):
    for field in ("project_value", "payments_received_total", "first_payment_amount"):
        value = getattr(context, field)
        if value is None or value < 0:
            raise CommissionValidationError(f"{field} must be a non-negative amount, got {value}")


def calculate_commission(rule: CommissionRule, context: FinancialContext) -> CommissionResult:
    """
    Compute the commission a rule yields for one financial snapshot.

    fixed rules pay ``fixed_rate`` regardless of the context; percentage rules pay
    ``rate`` percent of the quantity selected by ``calculation_method``. The minimum
    is applied first, then the cap, and the result is rounded half-up to the
    smallest currency unit. Pure: no database access, no logging side effects
    beyond debug output.
    """
    _check_context(context)

    details = {
        "commission_type": rule.commission_type,
        "method": rule.calculation_method,
        "trigger": rule.trigger,
        "rule_source": rule.source,
        "override_id": rule.override_id,
    }

    if isinstance(rule, FixedRule):
        base_amount = Decimal(rule.fixed_rate)
        details["fixed_rate"] = str(rule.fixed_rate)
    else:
        context_field = _METHOD_TO_CONTEXT_FIELD[rule.calculation_method]
        base_quantity = Decimal(getattr(context, context_field))
        base_amount = Decimal(rule.rate) * base_quantity / HUNDRED
        details["rate"] = str(rule.rate)
        details["base_quantity"] = str(base_quantity)

    final_amount = base_amount
    minimum_applied = False
    cap_applied = False

    if rule.minimum is not None and final_amount < rule.minimum:
        final_amount = Decimal(rule.minimum)
        minimum_applied = True
    # Cap wins over minimum
    if rule.cap is not None and final_amount > rule.cap:
        final_amount = Decimal(rule.cap)
        cap_applied = True

    final_amount = quantize_money(final_amount)

    details.update({
        "base_amount": str(base_amount),
        "minimum": str(rule.minimum) if rule.minimum is not None else None,
        "minimum_applied": minimum_applied,
        "cap": str(rule.cap) if rule.cap is not None else None,
        "cap_applied": cap_applied,
        "final_amount": str(final_amount),
    })
    logger.debug(f"Calculated commission {final_amount} ({rule.commission_type}/{rule.calculation_method})")

    return CommissionResult(base_amount=base_amount, final_amount=final_amount, explanation=details)


def describe_rule(rule: CommissionRule) -> str:
    """Human readable summary of a rule, as shown on the influencer dashboard."""
    if isinstance(rule, FixedRule):
        display = f"${_format_amount(rule.fixed_rate)} per referral"
    else:
        display = f"{_format_amount(rule.rate)}%"
        if rule.calculation_method == "project_value":
            display += " of project value"
        elif rule.calculation_method == "payments_received":
            display += " of payments"
        elif rule.calculation_method == "first_payment":
            display += " of first payment"

    if rule.cap is not None:
        display += f" (max ${_format_amount(rule.cap)})"
    if rule.minimum is not None:
        display += f" (min ${_format_amount(rule.minimum)})"
    return display


def _format_amount(value) -> str:
    # 10.0000 -> "10", 12.50 -> "12.5"
    normalized = Decimal(value).normalize()
    text = format(normalized, "f")
    return text
