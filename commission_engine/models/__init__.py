from .influencer import Influencer
from .override import CommissionOverride
from .customer import Customer, CustomerPayment
from .commission import CommissionEntry
from .commission_payment import CommissionPayment
from .referral import ReferralClick
