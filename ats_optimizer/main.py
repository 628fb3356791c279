import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from ats_optimizer.api.v1.account import router as account_router
from ats_optimizer.api.v1.admin import router as admin_router
from ats_optimizer.api.v1.billing import router as billing_router
from ats_optimizer.api.v1.developer import router as developer_router
from ats_optimizer.api.v1.health import router as health_router
from ats_optimizer.api.v1.profile import router as profile_router
from ats_optimizer.api.v1.resume import router as resume_router
from ats_optimizer.core.cors import cors_allow_origin_regex, cors_allowed_origins
from ats_optimizer.core.rate_limit import limiter
from ats_optimizer.core.config import settings
from ats_optimizer.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="ATS Optimizer API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_origin_regex=cors_allow_origin_regex(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(account_router, prefix="/v1", tags=["Account"])
app.include_router(resume_router, prefix="/v1", tags=["Resume"])
app.include_router(profile_router, prefix="/v1", tags=["Profile"])
app.include_router(billing_router, prefix="/v1", tags=["Billing"])
app.include_router(admin_router, prefix="/v1", tags=["Admin"])
app.include_router(developer_router, prefix="/v1", tags=["Developer API"])
