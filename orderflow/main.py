from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from orderflow.api.deps import Store
from orderflow.api.v1.router import api_router
from orderflow.config import settings
from orderflow.core.exceptions import OrderflowError, StoreUnavailableError
from orderflow.database import dispose_db, init_db
from orderflow.services.kv_store import close_store


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Stable codes for errors FastAPI raises itself (404 route not found, 405 ...)
HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create the kv_store table when the SQL backend is selected

    Shutdown:
    - Close the store and dispose of the engine
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} (store: {settings.KV_BACKEND})")
    if settings.KV_BACKEND == "sql":
        await init_db()
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down...")
    await close_store()
    if settings.KV_BACKEND == "sql":
        await dispose_db()


OPENAPI_TAGS = [
    {"name": "Orders", "description": "Place, claim, cancel and deliver orders"},
    {"name": "Analytics", "description": "Operator order rollups"},
    {"name": "Products", "description": "Product catalogue"},
    {"name": "Profile", "description": "The caller's own profile"},
    {"name": "Feedback", "description": "Order ratings and bug reports"},
    {"name": "Health", "description": "Liveness and store connectivity"},
]

API_DESCRIPTION = """
## Order lifecycle

`pending` → `on_the_way` → `delivered`, or `pending` → `cancelled`.

- Purchasers place orders and receive the hand-off OTP
- Fulfillment agents claim pending orders and confirm delivery with the OTP
- Operators cancel pending orders and read analytics

### Authentication

Include a bearer token in the Authorization header: `Bearer <token>`

### Errors

Every error body has the form `{"error": "<message>", "code": "<CODE>"}`.
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(OrderflowError)
async def orderflow_exception_handler(request: Request, exc: OrderflowError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=422,
        content={"error": message, "code": "VALIDATION_FAILED"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "code": HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
@app.get(f"{settings.API_PREFIX}/health", tags=["Health"], include_in_schema=False)
async def health_check(store: Store):
    """Health check endpoint with store validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "store": "unknown"
        }
    }

    try:
        await store.ping()
        health_status["checks"]["store"] = "connected"
    except StoreUnavailableError as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["store"] = f"error: {e.message}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
