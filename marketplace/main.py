import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.core.config import settings
from marketplace.core.logging_config import setup_logging
from marketplace.core.mongo import close_mongo, connect_mongo, ensure_indexes, get_mongo_db
from marketplace.middleware.request_logger import RequestLoggerMiddleware
from marketplace.routers.logs import router as logs_router
from marketplace.routers.orders import router as orders_router
from marketplace.routers.organizations import router as organizations_router
from marketplace.routers.products import router as products_router
from marketplace.routers.public import router as public_router
from marketplace.routers.search import router as search_router
from marketplace.services.activity_log_service import get_activity_log_service, reset_activity_log_service

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_mongo()
    try:
        await ensure_indexes(get_mongo_db())
    except Exception as e:
        logger.warning(f"Could not ensure MongoDB indexes: {e}")
    if not settings.OPENAI_API_KEY:
        logger.info("OPENAI_API_KEY not set, intelligent search will use the rule-based parser")
    yield
    # Shutdown: let pending activity writes finish before the client goes away
    await get_activity_log_service().drain()
    reset_activity_log_service()
    await close_mongo()


app = FastAPI(
    title=settings.APP_NAME,
    description="Charity marketplace product browsing and natural-language search API",
    version="1.0.0",
    lifespan=lifespan,
)

allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(RequestLoggerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

app.include_router(search_router, prefix=settings.API_PREFIX)
app.include_router(public_router, prefix=settings.API_PREFIX)
app.include_router(products_router, prefix=settings.API_PREFIX)
app.include_router(orders_router, prefix=settings.API_PREFIX)
app.include_router(organizations_router, prefix=settings.API_PREFIX)
app.include_router(logs_router, prefix=settings.API_PREFIX)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"Invalid request {request.method} {request.url.path}: {errors}")
    if any(error["loc"] and error["loc"][0] == "body" for error in errors):
        message = "Validation failed: " + ", ".join(error["msg"] for error in errors)
    else:
        message = "Invalid query parameters"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal Server Error"},
    )


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get(f"{settings.API_PREFIX}/health")
async def health_check():
    return {"status": "healthy", "ai_search_configured": bool(settings.OPENAI_API_KEY)}
