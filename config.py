"""Process configuration read from environment variables.

Values are read once at startup and held for the lifetime of the process.
Database credentials are passed through as-is; a missing or wrong value only
surfaces when the connection is attempted.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

DEFAULT_PORT = 4000
DEFAULT_HOST = "0.0.0.0"


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    mongo_user: Optional[str] = None
    mongo_password: Optional[str] = None
    mongo_db: Optional[str] = None
    log_level: str = "INFO"


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an AppConfig from ``environ`` (defaults to ``os.environ``).

    An unset or empty ``PORT`` falls back to 4000. A non-numeric ``PORT``
    raises ``pydantic.ValidationError``.
    """
    env = os.environ if environ is None else environ

    return AppConfig(
        port=env.get("PORT") or DEFAULT_PORT,
        host=env.get("HOST") or DEFAULT_HOST,
        mongo_user=env.get("MONGO_USER"),
        mongo_password=env.get("MONGO_PASSWORD"),
        mongo_db=env.get("MONGO_DB"),
        log_level=env.get("LOG_LEVEL") or "INFO",
    )
