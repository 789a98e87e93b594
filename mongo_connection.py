# mongo_connection.py
import logging
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient

logger = logging.getLogger(__name__)

CLUSTER_HOST = "cluster0.it3jg.mongodb.net"

# Fixed driver options applied to every client
CLIENT_OPTIONS = {
    "appname": "todo-api",
    "uuidRepresentation": "standard",
}


def build_connection_string(user: Optional[str], password: Optional[str], db_name: Optional[str]) -> str:
    """Format the Atlas connection URI.

    Credentials are interpolated verbatim: a user or password containing
    ``:``, ``@`` or ``/`` yields a malformed URI, which the driver rejects
    when connecting.
    """
    return (
        f"mongodb+srv://{user}:{password}@{CLUSTER_HOST}/{db_name}"
        "?retryWrites=true&w=majority"
    )


class MongoConnection:
    """An open client plus the database named in its URI."""

    def __init__(self, client: Any, db: Any):
        self.client = client
        self.db = db

    async def ping(self) -> None:
        await self.client.admin.command("ping")

    def close(self) -> None:
        self.client.close()


async def connect(uri: str, client_factory: Callable[..., Any] = AsyncIOMotorClient) -> MongoConnection:
    """Open a client for ``uri`` and confirm the server answers a ping.

    Any failure (bad URI, DNS, auth, server selection timeout) propagates to
    the caller after the client is closed. Nothing is retried.
    """
    client = client_factory(uri, **CLIENT_OPTIONS)
    try:
        connection = MongoConnection(client, client.get_default_database())
        await connection.ping()
    except Exception:
        client.close()
        raise

    logger.info("Connected to MongoDB database %r", connection.db.name)
    return connection
