"""Main FastAPI application for Nudgeable."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nudgeable.config import settings
from nudgeable.db import init_db
from nudgeable.errors import ModelQuotaError, NudgeableError
from nudgeable.api import router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    print("🚀 Starting Nudgeable Backend...")
    init_db()
    print(f"✅ All systems ready (rubric {settings.rubric_version})")

    yield

    # Shutdown
    print("🛑 Shutdown complete")


app = FastAPI(
    title="Nudgeable",
    description="Practice platform for writing and grading customer-support system prompts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NudgeableError)
async def nudgeable_error_handler(request: Request, exc: NudgeableError):
    """Map core errors onto HTTP responses."""
    headers = {}
    if isinstance(exc, ModelQuotaError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code, "retryable": exc.retryable},
        headers=headers,
    )


# Include API routes
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Nudgeable",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "nudgeable.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
