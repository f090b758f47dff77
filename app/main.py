from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.api.routes import admin, auth, cart, catalogue, orders, payments
from app.core.config import get_settings
from app.core.dependencies import get_db
from app.core.errors import StoreError, register_exception_handlers
from app.core.logging_config import get_logger
from app.db.session import init_db

logger = get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="Activity Booking API",
    version="1.0.0",
    description="Activity bookings, DIY kit orders and payment reconciliation",
    lifespan=lifespan,
)

register_exception_handlers(app)


# Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {str(e)}")
        raise e


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS --------
app.include_router(auth.router)
app.include_router(cart.router)
app.include_router(catalogue.router)
app.include_router(payments.router)
app.include_router(orders.router)
app.include_router(admin.router)


@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}


@app.get("/health", tags=["Root"])
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.opt(exception=e).error("Health check failed")
        raise StoreError("Database unavailable")
    return {"status": "ok", "provider": settings.PAYMENT_PROVIDER}
