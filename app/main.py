import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .config import DEFAULT_CHALLENGE_CAPACITY, FRONTEND_URL
from .database import Base, SessionLocal, engine
from .domain.challenge import admin_router as challenge_admin_router
from .domain.challenge import router as challenge_router
from .domain.challenge.repository import ChallengeRepository
from .routes.meta_capi import router as meta_capi_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def ensure_challenge_settings() -> None:
    """Create the settings singleton on first start so registration has a capacity to check"""
    db = SessionLocal()
    try:
        if ChallengeRepository.get_settings(db) is None:
            ChallengeRepository.create_settings(db, capacity=DEFAULT_CHALLENGE_CAPACITY)
            logger.info(f"Created default challenge settings (capacity={DEFAULT_CHALLENGE_CAPACITY})")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    ensure_challenge_settings()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Fittrah Moms API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    f"{FRONTEND_URL},https://www.fittrahmoms.com,https://fittrahmoms.com",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(challenge_router.router)
app.include_router(challenge_admin_router.router)
app.include_router(meta_capi_router)


@app.get("/")
def root():
    return {"message": "Fittrah Moms API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
