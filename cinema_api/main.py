from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette_exporter import PrometheusMiddleware, handle_metrics
import logging
from pythonjsonlogger import jsonlogger
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor

from cinema_api.api import auth, directors, movies, users
from cinema_api.core.config import get_settings
from cinema_api.core.database import init_db
from cinema_api.core.errors import ConfigurationError, StoreUnavailableError
from cinema_api.core.revocation import build_revocation_store
from cinema_api.core.security import ADMIN_ROLE, require_roles

logger = logging.getLogger(__name__)

settings = get_settings()

sentry_logging = LoggingIntegration(
    level=logging.INFO,
    event_level=logging.ERROR,
)

sentry_sdk.init(
    dsn=settings.sentry_dsn,
    integrations=[
        FastApiIntegration(),
        SqlalchemyIntegration(),
        sentry_logging,
    ],
    traces_sample_rate=1.0,
    environment=settings.environment,
    release=settings.release,
    send_default_pii=False,
)


handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter(
    '%(asctime)s %(levelname)s %(name)s %(message)s'
)
handler.setFormatter(formatter)
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.addHandler(handler)

resource = Resource.create({
    "service.name": "cinema-api",
    "service.version": "1.0.0",
    "deployment.environment": settings.environment,
})

provider = TracerProvider(resource=resource)

if settings.otlp_endpoint:
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
    )

trace.set_tracer_provider(provider)


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = settings.jwt.missing()
    if missing:
        logger.error("JWT configuration is incomplete, refusing to start", extra={"missing": missing})
        raise ConfigurationError("JWT configuration is not properly set.")
    init_db()
    logger.info("Database ready")
    yield
    await app.state.revocation_store.close()


app = FastAPI(title="Cinema API", lifespan=lifespan)
app.state.revocation_store = build_revocation_store(settings)

FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)

LoggingInstrumentor().instrument(set_logging_format=True)

RedisInstrumentor().instrument(tracer_provider=provider)

app.add_middleware(PrometheusMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Invalid request", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    sentry_sdk.capture_exception(exc)
    logger.error("Configuration error", exc_info=exc, extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server is not configured to issue or verify tokens."},
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Revocation store unavailable", exc_info=exc, extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Token revocation service is unavailable."},
    )


@app.get("/healthz", dependencies=[require_roles(ADMIN_ROLE)])
def _ping():
    return {"status": "ok"}


app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(directors.router)
app.include_router(movies.router)
app.include_router(users.router)

app.add_route(
    "/metrics/raw",
    handle_metrics,
    methods=["GET"],
    include_in_schema=False,
)


@app.get("/metrics", dependencies=[require_roles(ADMIN_ROLE)])
async def metrics(request: Request):
    """
    Return the metrics in a format that can be scraped by Prometheus.
    """
    return handle_metrics(request)
