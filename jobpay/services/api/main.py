"""HTTP surface for job payments, payouts and gateway callbacks.

`create_app` wires every component from one explicit `Settings` value; the
module-level `app` is what uvicorn serves.
"""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import httpx
import redis
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from jobpay.common.config import Settings
from jobpay.common.db import build_engine, build_session_factory
from jobpay.common.errors import PaymentError
from jobpay.common.logging import configure_logging, logger, trace_id_ctx
from jobpay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from jobpay.common.mpesa import MpesaGateway, TokenProvider
from jobpay.common.startup import log_startup_config
from jobpay.common.tracing import instrument_app, setup_tracing
from jobpay.services.callbacks.repository import UnmatchedCallbackRepository
from jobpay.services.callbacks.routes import router as callbacks_router
from jobpay.services.jobs.repository import JobRepository
from jobpay.services.jobs.routes import router as jobs_router
from jobpay.services.payments.repository import PaymentRepository
from jobpay.services.payments.routes import router as payments_router
from jobpay.services.payments.service import PaymentService
from jobpay.services.payouts.repository import PayoutRepository
from jobpay.services.payouts.routes import router as payouts_router
from jobpay.services.payouts.service import PayoutService


STARTUP_KEYS = [
    "database_url",
    "redis_url",
    "public_base_url",
    "mpesa_env",
    "mpesa_business_short_code",
    "mpesa_consumer_key",
    "mpesa_consumer_secret",
    "mpesa_passkey",
    "mpesa_security_credential",
    "mpesa_initiator_name",
    "mpesa_fixed_amount",
]


def create_app(
    settings: Settings | None = None,
    session_factory=None,
    http_client: httpx.Client | None = None,
    token_cache=None,
) -> FastAPI:
    """Build the FastAPI app and its payment components."""

    settings = settings or Settings()
    configure_logging(settings.service_name, settings.log_level)
    log_startup_config(settings, STARTUP_KEYS)

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings))
    owns_client = http_client is None
    if owns_client:
        http_client = httpx.Client(timeout=settings.mpesa_http_timeout_seconds)
    if token_cache is None and settings.redis_url:
        token_cache = redis.Redis.from_url(settings.redis_url, decode_responses=True)

    gateway = MpesaGateway(settings, http_client, TokenProvider(settings, http_client, cache=token_cache))
    unmatched = UnmatchedCallbackRepository(session_factory)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        if owns_client:
            http_client.close()

    app = FastAPI(title="Jobpay Marketplace Payments", lifespan=lifespan)
    app.state.settings = settings
    app.state.jobs = JobRepository(session_factory)
    app.state.payment_service = PaymentService(settings, PaymentRepository(session_factory), gateway, unmatched)
    app.state.payout_service = PayoutService(settings, PayoutRepository(session_factory), gateway, unmatched)

    if setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint):
        instrument_app(app)

    @app.middleware("http")
    async def observe_request(request: Request, call_next):
        """Bind a trace id and record request count and latency."""

        trace_token = trace_id_ctx.set(request.headers.get("x-trace-id") or str(uuid4()))
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            trace_id_ctx.reset(trace_token)

    @app.exception_handler(PaymentError)
    async def payment_error_handler(_: Request, exc: PaymentError):
        """Map payment failures to JSON error bodies."""

        logger.info("payment error code=%s detail=%s", exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(jobs_router)
    app.include_router(payments_router)
    app.include_router(payouts_router)
    app.include_router(callbacks_router)

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return app


app = create_app()
