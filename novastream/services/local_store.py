"""Key/value persistence used as the local copy of the catalog."""

from __future__ import annotations

import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import StoredValue

logger = logging.getLogger(__name__)


class LocalStore:
    """Store text values under string keys in the local database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def read(self, key: str) -> str | None:
        """Return the value stored under ``key`` or ``None`` when absent."""

        async with self._session_factory() as session:
            record = await session.get(StoredValue, key)
            if record is None:
                return None
            return record.value

    async def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

        async with self._session_factory() as session:
            record = await session.get(StoredValue, key)
            if record is None:
                session.add(StoredValue(key=key, value=value))
            else:
                record.value = value
            await session.commit()
        logger.debug("Persisted %d characters under %s", len(value), key)

    async def remove(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(StoredValue).where(StoredValue.key == key))
            await session.commit()
