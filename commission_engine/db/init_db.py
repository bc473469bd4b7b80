import logging

from commission_engine.db.base_class import Base
from commission_engine.db.session import engine
# Import all models so they are registered on Base.metadata
from commission_engine import models  # noqa: F401

logger = logging.getLogger(__name__)

def init_db(bind=None):
    """Create all tables that do not exist yet."""
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database tables ensured on {target.url.render_as_string(hide_password=True)}")
