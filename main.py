"""Main FastAPI application"""
import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from routes import router as api_router
from utils.config import (
    ALLOWED_ORIGINS,
    DB_NAME,
    DISPLAY_TIMEZONE,
    LOG_LEVEL,
    MONGO_TIMEOUT_MS,
    MONGODB_URI,
    PORT,
    RATE_LIMIT,
    RATE_LIMIT_ENABLED,
)
from utils.database import MongoDatabase

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False,
        },
    },
    "loggers": {
        "uvicorn": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": {  # Root logger for our application
            "handlers": ["default"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)

# --- Rate Limiter Setup (in-memory storage) ---
limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT], enabled=RATE_LIMIT_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: connect eagerly; if MongoDB is down, requests retry the connection
    database = app.state.database
    logger.info(f"Configuration: DB_NAME = {DB_NAME}, DISPLAY_TIMEZONE = {DISPLAY_TIMEZONE}, RATE_LIMIT = {RATE_LIMIT if RATE_LIMIT_ENABLED else 'disabled'}")
    try:
        await database.connect()
        logger.info("MongoDB ping successful.")
    except ConnectionError as e:
        logger.error(f"MongoDB unavailable at startup, will retry on first request: {e}")

    yield  # Application runs here

    # Shutdown: Close MongoDB connection
    database.close()


app = FastAPI(
    title="Finance Tracker API",
    description="API for recording transactions, setting monthly budgets and comparing budgets against actual spend.",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.database = MongoDatabase(MONGODB_URI, DB_NAME, timeout_ms=MONGO_TIMEOUT_MS)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Renders every HTTP error as an {"error": ...} body."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning(f"Validation failed for {request.method} {request.url.path}: {details}")
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


# --- Middleware (order matters) ---
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api", tags=["api"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True,
    )
