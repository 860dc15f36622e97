"""
Trip Analysis API - FastAPI Application
"""

import logging
import threading
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import LogLevel, get_global_settings
from app.core.error_handler import ErrorCode, error_handler
from app.models.requests import TripRequest
from app.models.responses import AnalysisResult
from app.services.session_store import make_session_id
from app.services.trip_analysis_service import TripAnalysisService

settings = get_global_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, LogLevel(settings.LOG_LEVEL).value))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION} ({settings.ENVIRONMENT})")
    logger.debug(f"Configuration: {settings.mask_sensitive_data()}")
    app.state.analysis_service = TripAnalysisService(settings)
    yield
    service = getattr(app.state, "analysis_service", None)
    if service is not None:
        try:
            await service.close()
        except Exception as cleanup_error:
            logger.warning(f"Error during analyzer cleanup: {cleanup_error}")
    app.state.analysis_service = None


# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description="Trip risk analysis: travel time, venue hours, flight buffers and practical suggestions",
    lifespan=lifespan
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency injection for TripAnalysisService
_service_lock = threading.Lock()


def get_analysis_service(request: Request) -> TripAnalysisService:
    """
    Dependency to provide the application's TripAnalysisService.

    Normally created at startup; runs in the threadpool, so a lazy creation
    is serialized to keep a single cache per application.
    """
    service = getattr(request.app.state, "analysis_service", None)
    if service is None:
        with _service_lock:
            service = getattr(request.app.state, "analysis_service", None)
            if service is None:
                service = TripAnalysisService(settings)
                request.app.state.analysis_service = service
    return service


def get_session_id(request: Request) -> str:
    """Anonymous session id for the caller."""
    client_ip = request.client.host if request.client else None
    return make_session_id(client_ip, request.headers.get("user-agent"))


# Global exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")
    return error_handler.create_json_response(
        error_handler.error_code_for_status(exc.status_code),
        message=str(exc.detail),
        status_code=exc.status_code
    )


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle Starlette HTTP exceptions with consistent error response format."""
    logger.error(f"Starlette HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")
    return error_handler.create_json_response(
        error_handler.error_code_for_status(exc.status_code),
        message=str(exc.detail),
        status_code=exc.status_code
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with consistent error response format."""
    return error_handler.handle_validation_error(exc, request)


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors with consistent error response format."""
    return error_handler.handle_validation_error(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions with consistent error response format."""
    error_handler.log_error(
        ErrorCode.INTERNAL_SERVER_ERROR,
        f"Unhandled Exception: {type(exc).__name__}: {str(exc)}",
        request=request,
        exception=exc
    )
    return error_handler.create_json_response(ErrorCode.INTERNAL_SERVER_ERROR)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check(service: TripAnalysisService = Depends(get_analysis_service)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "trip-analysis",
        "analyzer": service.analyzer_name,
        "cache": service.cache.available
    }


@app.post(
    "/api/agent/analyze-plan",
    response_model=AnalysisResult,
    response_model_by_alias=True,
    response_model_exclude_none=True
)
async def analyze_plan(
    trip: TripRequest,
    session_id: str = Depends(get_session_id),
    service: TripAnalysisService = Depends(get_analysis_service)
):
    """
    Analyze a trip plan and return risks, suggestions and an overall status.

    Args:
        trip: Trip request (camelCase JSON body)
        session_id: Anonymous caller id (injected dependency)
        service: Analysis service (injected dependency)

    Returns:
        AnalysisResult: Trip context with the analysis
    """
    logger.info(f"Processing trip analysis for {trip.destination_name} ({trip.flight_mode.value})")
    return await service.analyze_trip(trip, session_id)


@app.get("/api/cache-status")
async def cache_status(service: TripAnalysisService = Depends(get_analysis_service)):
    """Cache availability and statistics"""
    return service.get_cache_status()


@app.get("/api/agent-memory")
async def agent_memory(
    session_id: str = Depends(get_session_id),
    service: TripAnalysisService = Depends(get_analysis_service)
):
    """Session context and agent state remembered for the caller"""
    return await service.get_memory(session_id)


@app.get("/cache/stats")
async def get_cache_stats(service: TripAnalysisService = Depends(get_analysis_service)):
    """Get cache statistics"""
    return service.cache.get_stats()


@app.get("/cache/info")
async def get_cache_info(service: TripAnalysisService = Depends(get_analysis_service)):
    """Get detailed cache information including entries"""
    return service.cache.get_cache_info()


@app.post("/cache/cleanup")
async def cleanup_cache(service: TripAnalysisService = Depends(get_analysis_service)):
    """Remove expired cache entries"""
    removed = await service.cache.cleanup_expired()
    return {"message": f"Cleaned up {removed} expired cache entries", "removed": removed}


@app.delete("/cache/clear")
async def clear_cache(service: TripAnalysisService = Depends(get_analysis_service)):
    """Clear all cache entries"""
    cleared = await service.cache.clear()
    return {"message": f"Cache cleared: {cleared} entries removed", "cleared": cleared}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT)
