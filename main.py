import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import MongoClient

from config import Settings, get_settings
from database import connect, ensure_indexes
from errors import install_error_handlers
from routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None, client: Optional[MongoClient] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if client is None:
        client = connect(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s starting (%s)", settings.app_name, settings.environment)
        ensure_indexes(app.state.db)
        yield
        app.state.mongo_client.close()
        logger.info("MongoDB client closed")

    app = FastAPI(
        title=settings.app_name,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
    )
    app.state.settings = settings
    app.state.mongo_client = client
    app.state.db = client[settings.database_name]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    register_routes(app)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
