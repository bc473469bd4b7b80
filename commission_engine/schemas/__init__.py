from .rule import (
    CommissionRule,
    PercentageRule,
    FixedRule,
    FinancialContext,
    CommissionResult,
    RulePreview,
)
from .influencer import (
    InfluencerBase,
    InfluencerCreate,
    InfluencerUpdate,
    InfluencerReferralCodeUpdate,
    Influencer,
)
from .override import (
    CommissionOverrideCreate,
    CommissionOverride,
)
from .commission import (
    CommissionEntryBase,
    CommissionEntry,
    CommissionCancel,
    CommissionNestedCustomer,
)
from .payment import (
    CommissionPaymentCreate,
    CommissionPayment,
)
from .referral import (
    ReferralClickCreate,
    ReferralConversionCreate,
    ReferralClick,
    ReferralCodeValidation,
)
from .metrics import (
    InfluencerSummary,
    ReferralMetrics,
)
from .customer import (
    CustomerCreate,
    Customer,
    CustomerPaymentCreate,
    CustomerPayment,
    CustomerCreatedEvent,
    PaymentRecordedEvent,
    ProjectCompletedEvent,
    EventResult,
)
