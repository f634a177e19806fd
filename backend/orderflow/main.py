"""
ORDERFLOW — FastAPI ASGI Entry Point
"""
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from orderflow.api.v1.router import api_router
from orderflow.config import get_settings
from orderflow.core.logging import configure_logging, correlation_id_var
from orderflow.core.redis import close_redis
from orderflow.core.responses import register_exception_handlers
from orderflow.db.session import session_scope
from orderflow.services.system_config_service import SystemConfigService

settings = get_settings()
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and seed the configuration store; release the cache connection on shutdown."""
    configure_logging(settings.LOG_LEVEL)
    async with session_scope() as db:
        await SystemConfigService.ensure_defaults(db)
    logger.info("ORDERFLOW started (%s)", settings.ENVIRONMENT)
    yield
    await close_redis()


app = FastAPI(
    title="ORDERFLOW",
    description="Production order orchestration for the model factory",
    version="0.1.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    """Health check for load balancers and Docker."""
    return {"status": "ok", "service": "orderflow"}
