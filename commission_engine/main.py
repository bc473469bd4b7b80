import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from commission_engine.api.endpoints import commissions as commissions_api
from commission_engine.api.endpoints import customers as customers_api
from commission_engine.api.endpoints import events as events_api
from commission_engine.api.endpoints import influencers as influencers_api
from commission_engine.api.endpoints import overrides as overrides_api
from commission_engine.api.endpoints import referrals as referrals_api
from commission_engine.core.exceptions import CommissionError
from commission_engine.core.logging_config import setup_logging
from commission_engine.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    logger.info("Commission engine API started")
    yield


app = FastAPI(title="Commission Engine API", version="0.1.0", lifespan=lifespan)


async def commission_error_handler(request: Request, exc: CommissionError):
    """Map engine failures to JSON responses; nothing is retried here."""
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

app.add_exception_handler(CommissionError, commission_error_handler)

# Include API routers
app.include_router(influencers_api.router, prefix="/api/v1/influencers", tags=["Influencers"])
app.include_router(overrides_api.router, prefix="/api/v1/overrides", tags=["Commission Overrides"])
app.include_router(commissions_api.router, prefix="/api/v1/commissions", tags=["Commissions"])
app.include_router(referrals_api.router, prefix="/api/v1/referrals", tags=["Referrals"])
app.include_router(customers_api.router, prefix="/api/v1/customers", tags=["Customers"])
app.include_router(events_api.router, prefix="/api/v1/events", tags=["Events"])

@app.get("/ping", tags=["Health Check"])
async def ping():
    return {"message": "pong"}
