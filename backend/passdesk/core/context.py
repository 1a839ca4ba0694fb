"""
Application context: every long-lived resource the handlers need, built once
in the lifespan hook and injected through FastAPI dependencies.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from passdesk.core.config import Settings
from passdesk.core.singleflight import SingleFlight
from passdesk.db.session import create_engine, create_session_factory
from passdesk.infrastructure.catalog_client import CatalogClient
from passdesk.infrastructure.payment_client import PaymentVerificationClient
from passdesk.infrastructure.redis_client import connect_redis, close_redis
from passdesk.services.event_sync import EventCatalogSync


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http: httpx.AsyncClient
    payments: PaymentVerificationClient
    event_sync: EventCatalogSync
    redis: Optional[aioredis.Redis] = None
    flights: SingleFlight = field(default_factory=SingleFlight)

    async def aclose(self) -> None:
        await self.http.aclose()
        await close_redis(self.redis)
        await self.engine.dispose()


def assemble_context(
    settings: Settings,
    engine: AsyncEngine,
    http: httpx.AsyncClient,
    redis_client: Optional[aioredis.Redis] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AppContext:
    session_factory = session_factory or create_session_factory(engine)
    catalog = None
    if settings.EVENTS_API_URL:
        catalog = CatalogClient(
            http,
            settings.EVENTS_API_URL,
            timeout=settings.EVENTS_API_TIMEOUT_SECONDS,
            max_retries=settings.SYNC_MAX_RETRIES,
            base_delay=settings.SYNC_BASE_DELAY_SECONDS,
        )
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        http=http,
        payments=PaymentVerificationClient(
            http,
            settings.PAYMENT_SERVICE_URL,
            settings.PAYMENT_SERVICE_SECRET,
            timeout=settings.PAYMENT_SERVICE_TIMEOUT_SECONDS,
        ),
        event_sync=EventCatalogSync(session_factory, catalog, settings, redis=redis_client),
        redis=redis_client,
    )


async def build_context(settings: Settings) -> AppContext:
    engine = create_engine(settings)
    http = httpx.AsyncClient(follow_redirects=True)
    redis_client = await connect_redis(settings)
    return assemble_context(settings, engine, http, redis_client)
