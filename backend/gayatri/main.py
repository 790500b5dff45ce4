from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.db import SessionLocal
from .core.errors import ServiceError
from .core.logging import configure_logging
from .api.routes_admin import router as admin_router
from .api.routes_auth import router as auth_router
from .api.routes_brands import router as brands_router
from .api.routes_campaigns import router as campaigns_router
from .api.routes_catalog import router as catalog_router
from .api.routes_influencers import router as influencers_router
from .api.routes_mou import router as mou_router
from .api.routes_notifications import router as notifications_router
from .api.routes_platforms import router as platforms_router
from .api.routes_users import router as users_router
from .services.users import seed_admin

configure_logging()
settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        seed_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(title="Gayatri Marketplace API", lifespan=lifespan)

# CORS:
# - In prod, FRONTEND_ORIGIN is required and we never fall back to "*".
# - In non-prod, wide-open CORS is only enabled if CORS_ALLOW_ALL_ORIGINS=True.
# - Credentials (the auth cookie) are only allowed for explicit origins.
if settings.ENV.lower() == "prod":
    if not settings.FRONTEND_ORIGIN:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production – refusing to start with wide-open CORS."
        )
    origins = [
        o.strip()
        for o in settings.FRONTEND_ORIGIN.split(",")
        if o.strip()
    ]
else:
    if settings.CORS_ALLOW_ALL_ORIGINS or not settings.FRONTEND_ORIGIN:
        origins = ["*"]
    else:
        origins = [
            o.strip()
            for o in settings.FRONTEND_ORIGIN.split(",")
            if o.strip()
        ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=origins != ["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(
            "Service error: %s",
            exc.message,
            extra={"step": request.url.path, "connector": exc.extra.get("provider")},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": message,
            "errors": [
                {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
                for e in errors
            ],
        },
    )


for router in (
    auth_router,
    users_router,
    brands_router,
    catalog_router,
    influencers_router,
    campaigns_router,
    mou_router,
    platforms_router,
    notifications_router,
    admin_router,
):
    app.include_router(router, prefix=settings.API_PREFIX)
