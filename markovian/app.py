"""
Markovian HTTP service
Main application entry point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from markovian.config import settings
from markovian.utils.logger import log_error, log_info, setup_logger

# One handler on the package logger; service loggers propagate to it
setup_logger("markovian")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    log_info("[BOOT] Starting service", service=settings.SERVICE_NAME, version=settings.SERVICE_VERSION)
    log_info(
        "[BOOT] Chain defaults",
        memory=settings.MARKOV_MEMORY,
        max_tokens=settings.MARKOV_MAX_TOKENS,
        counter_workers=settings.COUNTER_WORKERS,
        tensor_max_cells=settings.TENSOR_MAX_CELLS,
    )
    yield
    from markovian.api.routers.markov_router import MODEL_CACHE
    log_info("[SHUTDOWN] Dropping cached chains", count=len(MODEL_CACHE))
    MODEL_CACHE.clear()


# Create FastAPI app
app = FastAPI(
    title="Markovian Service",
    description="Variable-order Markov chains over dense probability tensors",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log_error("[ERR] Unhandled exception", exc_info=True, path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "MARKOVIAN_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "ok": True,
        "data": {
            "status": "healthy",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "markov": "/markov/*",
        },
    }


from markovian.api.routers import markov_router  # noqa: E402

app.include_router(markov_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "markovian.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
