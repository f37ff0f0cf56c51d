import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from timecard_server.core.config import ServerConfig, TimecardConfig
from timecard_server.core.database import get_store
from timecard_server.api.endpoints import general, timecards

# Configure logging
log_level = getattr(logging, ServerConfig.LOG_LEVEL.upper())
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    logger.info("=" * 60)
    logger.info(f"{ServerConfig.APP_NAME.upper()}")
    logger.info(f"Version: {ServerConfig.APP_VERSION}")
    logger.info("=" * 60)

    store = get_store()
    store.init_database()

    if ServerConfig.SEED_TEST_DATA:
        store.seed_test_data()

    logger.info(f"Break grace period by default: {'ENABLED' if TimecardConfig.APPLY_BREAK_GRACE_PERIOD else 'DISABLED'}")
    logger.info(f"Default break: {TimecardConfig.DEFAULT_BREAK_MINUTES} minutes")
    if not ServerConfig.API_SECRET:
        logger.warning("API key check is DISABLED - identity headers are trusted as-is")

    logger.info(f"Database: {ServerConfig.DATABASE_PATH}")
    logger.info("=" * 60)
    logger.info("Timecard Server started successfully!")

    yield  # Server is running

    logger.info("Shutting down Timecard Server...")


app = FastAPI(
    title=ServerConfig.APP_NAME,
    version=ServerConfig.APP_VERSION,
    description=ServerConfig.APP_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs" if ServerConfig.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if ServerConfig.ENABLE_API_DOCS else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ServerConfig.CORS_ORIGINS,
    allow_credentials=ServerConfig.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(general.router, tags=["General"])
app.include_router(timecards.router, tags=["Timecards"])
