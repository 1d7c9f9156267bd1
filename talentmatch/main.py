from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from talentmatch.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    HealthCheckMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
)
from talentmatch.routers import analysis, matches
from talentmatch.utils.logging_config import configure_for_environment, get_logger

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: owns the model client and the analysis pipeline"""
    from talentmatch.services.db import ProfileStore, init_indexes, notifications_coll
    from talentmatch.services.graph import AnalysisPipeline
    from talentmatch.services.llm_client import OllamaClient
    from talentmatch.services.notifications import MongoNotificationSink, NotificationEmitter
    from talentmatch.utils.utils import load_settings

    logger.info("Talent matching API starting up...")
    settings = load_settings()

    try:
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")

    client = OllamaClient(settings.llm_settings, settings.processing_settings)
    app.state.pipeline = AnalysisPipeline(
        client,
        ProfileStore(),
        settings=settings,
        emitter=NotificationEmitter(MongoNotificationSink(notifications_coll)),
    )
    logger.info(f"Using model {settings.llm_settings.model_name} at {settings.llm_settings.base_url}")

    yield

    logger.info("Talent matching API shutting down...")
    client.close()


app = FastAPI(title="Talent Matching API", version="1.0.0", lifespan=lifespan)

# Add middleware in order (LIFO - Last In, First Out)
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=30.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(HealthCheckMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    return {"message": "Welcome to the Talent Matching API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(analysis.router, prefix="/api/analysis", tags=["analysis"])
app.include_router(matches.router, prefix="/api/matches", tags=["matches"])

logger.info("Talent matching API initialized successfully")
