import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging
from app.api.routes import auth, users

# Register models on Base.metadata before create_all
from app.models import category, product, user  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging and create tables if they don't exist.
    In production, use migrations instead of create_all.
    """
    setup_logging()
    Base.metadata.create_all(bind=engine)
    logger.info(f"Marketplace API started (environment={settings.ENVIRONMENT})")
    yield
    logger.info("Marketplace API stopped")


app = FastAPI(
    title="Marketplace API",
    description="Profiles, phone verification and seller listings",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows frontend to make requests to backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "Marketplace API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
