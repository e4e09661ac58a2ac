# resume_assistant/main.py
import os
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from resume_assistant.api.routes import router
from resume_assistant.dependencies import Services, build_services
from resume_assistant.errors import ResumeAssistantError
from resume_assistant.observability.logger import (
    bind_request_id,
    get_logger,
    reset_request_id,
    setup_logging,
)

logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the API.

    With no services given they are built at startup from configuration.
    """

    app = FastAPI(
        title="Resume Assistant API",
        description="Document-grounded resume chat over per-user RAG",
        version=VERSION,
    )

    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every HTTP request with latency and record request metrics.
        """

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        token = bind_request_id(request_id)

        logger.info(
            "request_started",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None
            }
        )

        start_time = time.time()

        try:

            response = await call_next(request)

            latency = time.time() - start_time

            metrics = app.state.services.metrics if app.state.services else None

            if metrics is not None:
                if response.status_code < 400:
                    metrics.record_success(latency, request.url.path)
                else:
                    metrics.record_failure(request.url.path)

            logger.info(
                "request_completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_seconds": round(latency, 3)
                }
            )

            response.headers["X-Request-ID"] = request_id

            return response

        except Exception as e:

            if app.state.services is not None:
                app.state.services.metrics.record_failure(request.url.path)

            logger.error(
                "request_failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "latency_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )

            raise

        finally:

            reset_request_id(token)

    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():

        if app.state.services is None:

            setup_logging()

            if not os.getenv("OPENAI_API_KEY") and not os.getenv("GEMINI_API_KEY"):
                logger.warning(
                    "missing_api_key",
                    extra={
                        "warning_detail":
                        "Neither OPENAI_API_KEY nor GEMINI_API_KEY is set. "
                        "Provider calls will fail."
                    }
                )

            app.state.services = build_services()

        logger.info("application_startup", extra={"version": VERSION})

    @app.on_event("shutdown")
    async def shutdown_event():

        if app.state.services is not None:
            app.state.services.analytics.shutdown()

        logger.info("application_shutdown")

    @app.exception_handler(ResumeAssistantError)
    async def pipeline_error_handler(request: Request, exc: ResumeAssistantError):

        logger.warning(
            "pipeline_error",
            extra={
                "path": request.url.path,
                "stage": exc.stage,
                "error": exc.message,
                "error_type": type(exc).__name__,
            },
        )

        if app.state.services is not None and exc.status_code >= 500:
            app.state.services.analytics.track_error(
                distinct_id=getattr(request.state, "request_id", "unknown"),
                error_type=type(exc).__name__,
                error_message=exc.message,
                endpoint=request.url.path,
            )

        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Invalid request",
                "details": "; ".join(
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__
            },
            exc_info=exc
        )

        if app.state.services is not None:
            app.state.services.analytics.track_error(
                distinct_id=request_id,
                error_type=type(exc).__name__,
                error_message=str(exc),
                endpoint=request.url.path,
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "An internal error occurred. Please try again.",
                "details": request_id,
            }
        )

    @app.get("/")
    async def root():

        return {
            "message": "Resume Assistant API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }

    return app


app = create_app()
