from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from giftpage.api.routes import gifts, rewrite, uploads
from giftpage.core.config import settings
from giftpage.core.errors import GiftError
from giftpage.core.logger import configure_logging, request_id_var


logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s environment=%s store=%s", settings.app_name, settings.environment, settings.gift_store_backend)
    yield
    service = getattr(app.state, "gift_service", None)
    if service is not None:
        await service.records.close()
        logger.info("Record store closed")


app = FastAPI(
    title=settings.app_name,
    description="Shareable digital gift pages",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = settings.backend_cors_origins
allow_any_origin = "*" in cors_origins

logger.info("CORS origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_any_origin else cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Edit-Key"],
    max_age=600,
)


@app.middleware("http")
async def tracing_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    token = request_id_var.set(request_id)
    start = perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (perf_counter() - start) * 1000.0
            logger.exception(
                "Request failed method=%s path=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                duration_ms,
            )
            raise

        duration_ms = (perf_counter() - start) * 1000.0
        logger.info(
            "Request completed method=%s path=%s status=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(GiftError)
async def gift_error_handler(request: Request, exc: GiftError):
    if exc.status_code >= 500:
        logger.error("Gift request failed %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info("Invalid request %s %s errors=%s", request.method, request.url.path, len(errors))
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"detail": f"{field}: {message}" if field else message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    response = JSONResponse(status_code=500, content={"detail": "Internal server error"})
    # this response bypasses CORSMiddleware
    origin = request.headers.get("origin")
    if origin and (allow_any_origin or origin in cors_origins):
        response.headers["Access-Control-Allow-Origin"] = "*" if allow_any_origin else origin
    return response


app.include_router(gifts.router, prefix=settings.api_prefix)
app.include_router(uploads.router, prefix=settings.api_prefix)
app.include_router(rewrite.router, prefix=settings.api_prefix)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
