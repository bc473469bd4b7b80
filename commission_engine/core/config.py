import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./commission_engine.db")
SQLALCHEMY_DATABASE_URI = DATABASE_URL
SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Currency amounts are rounded half-up to this quantum (smallest currency unit)
CURRENCY: str = os.getenv("CURRENCY", "USD")
CURRENCY_QUANTUM = Decimal("0.01")

# Referral codes look like "JANE7K2Q": name prefix + random suffix
REFERRAL_CODE_PREFIX_LENGTH: int = int(os.getenv("REFERRAL_CODE_PREFIX_LENGTH", 4))
REFERRAL_CODE_SUFFIX_LENGTH: int = int(os.getenv("REFERRAL_CODE_SUFFIX_LENGTH", 4))
REFERRAL_BASE_URL: str = os.getenv("REFERRAL_BASE_URL", "http://localhost:8000").rstrip("/")
