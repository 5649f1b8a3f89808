"""
Restaurant Waitlist - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
import uvicorn

from app.core.config import Settings, settings
from app.core.db import Base, create_db_engine, create_session_factory, engine
from app.api import routes_public, routes_waitlist, ws
from app.api.ws import WebSocketManager
from app.services.repositories import PartyRepo
from app.services.waitlist_service import WaitlistService

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def create_app(db_engine: Optional[Engine] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around a database engine and settings"""
    app_settings = app_settings or settings
    if db_engine is None:
        db_engine = engine if app_settings is settings else create_db_engine(app_settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        # Create database tables
        Base.metadata.create_all(bind=db_engine)
        logger.info("Database tables created")

        app.state.websocket_manager = WebSocketManager()
        app.state.waitlist_service = WaitlistService(
            repo=PartyRepo(create_session_factory(db_engine)),
            publisher=app.state.websocket_manager,
            app_settings=app_settings,
        )
        # Seats and timers must be restored before the first request is served
        await app.state.waitlist_service.initialize()
        yield
        app.state.waitlist_service.shutdown()
        logger.info("Application shutdown")

    app = FastAPI(
        title="Restaurant Waitlist",
        description="Waitlist queue, check-in and seating capacity service",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(routes_public.router, tags=["public"])
    app.include_router(routes_waitlist.router, prefix="/waitlist", tags=["waitlist"])
    app.include_router(ws.router, prefix="/ws", tags=["websocket"])

    return app

app = create_app()

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. The engine keeps
# its queue in memory, so run a single worker process.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
