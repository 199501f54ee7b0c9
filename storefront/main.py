import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI

from storefront.config import settings
from storefront.database import engine, create_tables
from storefront.presentation.api import router
from storefront.presentation.admin_api import admin_router
from storefront.presentation.errors import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_tables()
        logger.info("Tables created")

    yield

    await engine.dispose()
    logger.info("Application stopped")


app = FastAPI(
    title="Storefront Order Service",
    description="Grocery storefront: carts, orders, stock and admin views",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)
app.include_router(router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Storefront order service is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
