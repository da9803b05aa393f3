"""
Visual-Scout FastAPI Application
Visual supplier search service backed by a long-lived headless browser
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scout import __version__
from scout.browser_session import get_session_manager
from scout.config import settings
from scout.models import HealthResponse
from scout.routes import router
from scout.visual_search import close_bot, init_bot

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Starting Visual-Scout service on {settings.host}:{settings.port}")
    try:
        await init_bot()
        logger.info("Browser pre-warmed")
    except Exception as e:
        logger.error(f"Failed to pre-warm browser: {e}")

    yield

    # Shutdown (uvicorn routes SIGINT/SIGTERM here)
    logger.info("Shutting down Visual-Scout service")
    await close_bot()


app = FastAPI(
    title="Visual-Scout",
    description="Image-based supplier search",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check endpoint"""
    return HealthResponse(
        status="healthy",
        service="visual-scout",
        version=__version__,
        browser_connected=get_session_manager().is_connected,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "scout.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
