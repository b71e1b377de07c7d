# main.py
from __future__ import annotations

import logging
import math
import time
from functools import lru_cache

from fastapi import FastAPI, Request, Response, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from errors import ErrorKind, GenerationError
from logging_config import setup_logging
from request_context import bind_request_id, get_request_id
from services.cost_normalizer import estimate_in_currency
from services.currency_service import CurrencyTable, default_table
from services.itinerary_service import ItineraryPipeline, build_pipeline
from services.request_validator import assess_completeness, validate_request

# Initialize logging BEFORE creating the app
setup_logging(settings.log_level)
log = logging.getLogger("app")

app = FastAPI(
    title="AI Trip Itinerary Generator",
    version="0.1.0",
    description="Validated, cost-annotated itineraries from LLM providers with fallback",
)


@app.on_event("startup")
async def on_startup():
    log.info("App starting", extra={
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "primary_model": settings.GROQ_MODEL,
        "fallback_enabled": settings.has_fallback,
        "cors_origins_count": len(settings.CORS_ALLOW_ORIGINS),
    })

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
    expose_headers=settings.CORS_EXPOSE_HEADERS,
    max_age=settings.CORS_MAX_AGE,
)


@app.middleware("http")
async def request_logging_mw(request: Request, call_next):
    rid = bind_request_id(request.headers.get("x-request-id"))
    start = time.perf_counter()
    response: Response | None = None

    if request.method in ("POST", "PUT", "PATCH"):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.MAX_REQUEST_BYTES:
            log.warning("Request too large", extra={
                "size": int(content_length),
                "client_ip": request.client.host if request.client else "unknown",
            })
            response = JSONResponse(
                status_code=413,
                content={"error": "request_too_large", "details": "Request body is too large"},
            )
            response.headers["X-Request-Id"] = rid
            return response

    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.perf_counter() - start) * 1000)
        if response is not None:
            response.headers["X-Request-Id"] = rid
        log.info(
            f"{request.method} {request.url.path} -> {getattr(response, 'status_code', '?')} in {dur_ms}ms",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status": getattr(response, "status_code", None),
                "duration_ms": dur_ms,
            },
        )


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    log.log(level, "Generation failed: %s", exc.detail, extra=exc.log_extra())
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "details": "An unexpected error occurred"},
    )


@lru_cache(maxsize=1)
def get_pipeline() -> ItineraryPipeline:
    return build_pipeline(settings)


def get_currency_table() -> CurrencyTable:
    return default_table


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise GenerationError(
            ErrorKind.REQUEST_INVALID,
            "request body is not valid JSON",
            public_details="Invalid JSON in request body",
        )


@app.get("/health")
def health():
    return {
        "status": "ok",
        "primary_configured": bool(settings.GROQ_API_KEY),
        "fallback_configured": settings.has_fallback,
        "primary_model": settings.GROQ_MODEL,
    }


@app.post("/generate")
async def generate_endpoint(request: Request, pipeline: ItineraryPipeline = Depends(get_pipeline)):
    body = await _json_body(request)
    trip = await run_in_threadpool(pipeline.generate, body)
    return JSONResponse(trip.to_payload())


@app.post("/validate")
async def validate_endpoint(request: Request):
    body = await _json_body(request)
    if not isinstance(body, dict):
        raise GenerationError(
            ErrorKind.REQUEST_INVALID,
            "request body is not an object",
            public_details="Request body must be a JSON object",
        )
    report = validate_request(body)
    payload = report.model_dump(mode="json")
    payload["completeness"] = assess_completeness(body).model_dump(by_alias=True)
    return payload


@app.get("/currencies")
def currencies(table: CurrencyTable = Depends(get_currency_table)):
    snap = table.snapshot()
    return {
        "base": "USD",
        "refreshedAt": snap.refreshed_at_iso,
        "ttlSeconds": table.ttl_s,
        "rates": dict(snap.rates),
    }


@app.get("/estimate")
def estimate(
    amount_usd: float = Query(..., ge=0, allow_inf_nan=False, alias="amountUSD"),
    currency: str = Query(..., pattern=r"^[A-Za-z]{3}$"),
    buffer: bool = Query(True),
    table: CurrencyTable = Depends(get_currency_table),
):
    est = estimate_in_currency(amount_usd, currency, include_buffer=buffer, table=table)
    if not math.isfinite(est.amount):
        raise GenerationError(
            ErrorKind.REQUEST_INVALID,
            f"estimate overflowed for {amount_usd} USD in {currency}",
            public_details="Amount is too large to convert",
        )
    return est.model_dump(by_alias=True)


# Production entry point
if __name__ == "__main__":
    import uvicorn

    log.info(f"Starting server on {settings.HOST}:{settings.PORT}", extra={"request_id": get_request_id()})

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=1,
        access_log=True,
        log_level="info" if settings.APP_ENV == "production" else "debug",
    )
