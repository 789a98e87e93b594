# server.py
"""Todo API entrypoint.

Startup runs strictly in sequence: load configuration, build the MongoDB
URI, connect, and only then bind the HTTP listener. A failed connection
ends startup with a non-zero exit status; nothing is retried.

Run with::

    python server.py
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import ValidationError
from pymongo.errors import PyMongoError

import todo_routes
from config import AppConfig, load_config
from logging_config import setup_logging
from middleware import build_middleware
from mongo_connection import MongoConnection, build_connection_string, connect

logger = logging.getLogger(__name__)

# ListeningServer logs the only startup line
UVICORN_LOG_LEVEL = "warning"


def create_app(connection: MongoConnection, routers: Optional[Iterable[APIRouter]] = None) -> FastAPI:
    """Build the FastAPI app around an already open connection.

    Route handlers reach the database through ``app.state.mongo``; the
    connection is closed when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            app.state.mongo.close()

    app = FastAPI(title="Todo API", lifespan=lifespan, middleware=build_middleware())
    app.state.mongo = connection

    for router in routers if routers is not None else [todo_routes.router]:
        app.include_router(router)

    @app.get("/health")
    async def health():
        try:
            await app.state.mongo.ping()
        except PyMongoError as e:
            raise HTTPException(status_code=503, detail=f"Database unavailable: {str(e)}")
        return {"status": "ok"}

    return app


class ListeningServer(uvicorn.Server):
    """uvicorn server that announces itself once its socket is bound."""

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info("Server running on http://localhost:%d", self.config.port)


async def serve(app: FastAPI, config: AppConfig) -> None:
    server = ListeningServer(uvicorn.Config(app, host=config.host, port=config.port, log_config=None, log_level=UVICORN_LOG_LEVEL))
    await server.serve()


@dataclass(frozen=True)
class StartupResult:
    ok: bool
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "StartupResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str, error: Optional[BaseException] = None) -> "StartupResult":
        return cls(ok=False, reason=reason, error=error)


async def start(
    config: AppConfig,
    connector: Callable[[str], Awaitable[MongoConnection]] = connect,
    serve: Callable[[FastAPI, AppConfig], Awaitable[None]] = serve,
) -> StartupResult:
    """Connect to MongoDB, then serve HTTP until shutdown.

    ``serve`` is never called unless ``connector`` has returned a
    connection.
    """
    uri = build_connection_string(config.mongo_user, config.mongo_password, config.mongo_db)

    try:
        connection = await connector(uri)
    except PyMongoError as e:
        return StartupResult.failure(f"could not connect to MongoDB: {e}", e)

    app = create_app(connection)
    await serve(app, config)
    return StartupResult.success()


def main() -> int:
    load_dotenv()

    try:
        config = load_config()
    except ValidationError as e:
        setup_logging()
        logger.error("Startup failed: invalid configuration: %s", e)
        return 1

    setup_logging(config.log_level)
    result = asyncio.run(start(config))
    if not result.ok:
        logger.error("Startup failed: %s", result.reason, exc_info=result.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
