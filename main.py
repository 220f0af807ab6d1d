from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from grant_portal.routers import (
    auth,
    grant_applications,
    consent,
    agricultural_returns,
    documents,
    admin,
)
from grant_portal.core.config import settings as app_settings
from grant_portal.core.db import init_models, engine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    # Startup
    logger.info("Starting Grant Portal API...")
    await init_models()
    logger.info(f"Templates served from {app_settings.TEMPLATES_DIR} ({app_settings.TIMEZONE})")

    yield

    # Shutdown
    logger.info("Shutting down Grant Portal API...")
    await engine.dispose()


app = FastAPI(
    title="Grant Portal API",
    description="Grant applications, agricultural returns and consent forms",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": "grant-portal",
        "timezone": app_settings.TIMEZONE,
    }


app.include_router(auth.router)
app.include_router(grant_applications.router)
app.include_router(consent.router)
app.include_router(agricultural_returns.router)
app.include_router(documents.router)
app.include_router(admin.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8008, reload=True)
