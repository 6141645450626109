"""
Blood Buddy API
Connects patients and hospitals who need blood with compatible donors.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bloodbuddy.config import LOG_LEVEL, CORS_ORIGINS
from bloodbuddy.database import db, ensure_indexes
from bloodbuddy.middleware import register_error_handlers
from bloodbuddy.routers import requests, donations, users, dashboard

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(db)
    logger.info("Blood Buddy API started")
    yield


def create_app(init_database: bool = True) -> FastAPI:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    app = FastAPI(title="Blood Buddy API", lifespan=lifespan if init_database else None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(dashboard.router, prefix="/api")
    app.include_router(requests.router, prefix="/api")
    app.include_router(donations.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    return app


app = create_app()
