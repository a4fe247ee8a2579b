from sqlalchemy.ext.asyncio import create_async_engine

from conduit.config import settings
from conduit.db import Session
from conduit.middleware import install_query_counter
from conduit.models import metadata

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

# Root session shared by every request for the lifetime of the process.
session = Session(
    engine,
    timeout=settings.QUERY_TIMEOUT_SECONDS,
    metadata=metadata,
)


def get_session() -> Session:
    return session
