"""FastAPI application entrypoint."""
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import draw
from app.core.logging import bind_request, get_logger, setup_logging, unbind_request
from app.core.config import Settings, settings
from app.domain.record import RecordNotFound
from app.infrastructure.redis import close_redis_client

# Initialize structured logging
setup_logging(level=settings.log_level, json_format=settings.is_production)
logger = get_logger(__name__)

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown."""
    logger.info("Application starting up", extra={"version": APP_VERSION})
    yield
    close_redis_client()
    logger.info("Application shutting down")


async def log_requests(request: Request, call_next):
    """Bind a request id, then log each request with timing and status code.

    An incoming ``X-Request-ID`` header is reused so ids can be traced across
    services.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = bind_request(request_id=request_id, method=request.method, path=request.url.path)
    start_time = time.perf_counter()

    try:
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={"client": request.client.host if request.client else None},
        )
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    "error_type": type(e).__name__,
                },
                exc_info=True
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            }
        )
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        unbind_request(token)


async def record_not_found(request: Request, exc: RecordNotFound):
    logger.info(str(exc), extra={"path": request.url.path})
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def create_app(config: Settings = None) -> FastAPI:
    """Build the application with middleware, error handlers and routes."""
    config = config or settings

    application = FastAPI(
        title=config.app_name,
        version=APP_VERSION,
        docs_url="/docs" if not config.is_production else None,
        redoc_url="/redoc" if not config.is_production else None,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    application.middleware("http")(log_requests)
    application.add_exception_handler(RecordNotFound, record_not_found)

    @application.get("/health", name="health")
    def health_check():
        """Liveness check."""
        return {"status": "healthy", "version": APP_VERSION}

    return draw(application, config)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
