import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.endpoints import admin, ebooks, public, razorpay, subscription, videos, webinars
from app.core.database import engine, Base
from app.core.errors import install_error_handlers
from app.core.settings import settings
from app.models import ebook, payment, user, video, webinar  # noqa: F401
from app.models import subscription as subscription_model  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Webinar Subscription API")

install_error_handlers(app)

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    if settings.is_production and not settings.auth_secret:
        raise RuntimeError("AUTH_SECRET must be set in production")
    if not (settings.razorpay_key_id and settings.razorpay_key_secret):
        logger.warning("startup.razorpay_unconfigured payments will fail until RAZORPAY_KEY_ID/SECRET are set")
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)
    logger.info("startup.ready environment=%s razorpay_mode=%s", settings.environment, settings.razorpay_mode)


# API Routes
app.include_router(public.router, prefix="/api", tags=["public"])
app.include_router(subscription.router, prefix="/api", tags=["subscription"])
app.include_router(razorpay.router, prefix="/api", tags=["payments"])
app.include_router(webinars.router, prefix="/api", tags=["webinars"])
app.include_router(ebooks.router, prefix="/api", tags=["ebooks"])
app.include_router(videos.router, prefix="/api", tags=["videos"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
