"""
Typed failures raised by the commission engine.

Library functions raise these; the API layer maps them to HTTP responses
(see ``commission_engine.main``). Nothing in the engine retries on them.
"""


class CommissionError(Exception):
    """Base class for every engine failure."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(CommissionError):
    """An influencer, entry, payment or referral code does not exist."""
    status_code = 404


class InvalidTransitionError(CommissionError):
    """A ledger entry cannot move to the requested status."""
    status_code = 409


class AmountMismatchError(CommissionError):
    """A payout amount differs from the sum of the selected entries."""
    status_code = 422

    def __init__(self, expected, received):
        super().__init__(
            f"Payment amount {received} does not match the selected commissions total {expected}"
        )
        self.expected = expected
        self.received = received


class DuplicateEntryError(CommissionError):
    """A uniqueness guarantee (dedup key, referral code) was violated."""
    status_code = 409


class CommissionValidationError(CommissionError):
    """A commission rule or financial context is malformed."""
    status_code = 422
