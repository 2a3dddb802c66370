import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException
from app.api.v1.endpoints import books, health, user
from app.schemas.response import ApiResponse
from app.core.dependencies import limiter
from app.core.handler import (
    AppException,
    http_exception_handler,
    validation_exception_handler,
    app_exception_handler,
    general_exception_handler
)
from app.core.config import settings
from app.core.database import db_manager
from app.core.logging_config import configure_logging
from app.services.notification_service import get_notification_service

configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")

    try:
        db_manager.init(settings)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    notifier = get_notification_service()
    await notifier.start()

    yield

    logger.info("Shutting down application...")
    await notifier.stop()
    await db_manager.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


app.include_router(user.router, prefix="/api/v1/user", tags=["User"])
app.include_router(books.router, prefix="/api/v1/books", tags=["Books"])
app.include_router(health.router, prefix="/api/v1", tags=["Health"])


@app.get("/")
def root():
    return ApiResponse(
        success=True,
        message="System operational",
        data={"status": "ok"}
    )
