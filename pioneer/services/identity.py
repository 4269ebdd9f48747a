"""Stable per-user Pioneer identifier, persisted in a preference store."""

import asyncio
import logging
import uuid
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pioneer.core.config import settings
from pioneer.models.preference import Preference

logger = logging.getLogger(__name__)

UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class PreferenceStore(Protocol):
    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class MemoryPreferenceStore:
    """Dict-backed preference store. Values live as long as the instance."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    async def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class SqlPreferenceStore:
    """Preference store backed by the ``preferences`` table.

    Each call runs in its own short-lived session. ``set`` is a single
    upsert statement, so concurrent writers never collide on the key.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from pioneer.core.database import async_session

            session_factory = async_session
        self._session_factory = session_factory

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._session_factory() as db:
            result = await db.execute(select(Preference).where(Preference.key == key))
            pref = result.scalar_one_or_none()
        if pref is None or pref.value is None:
            return default
        return pref.value

    async def set(self, key: str, value: Any) -> None:
        async with self._session_factory() as db:
            dialect = db.get_bind().dialect.name
            insert = UPSERT_INSERTS.get(dialect)
            if insert is None:
                await db.merge(Preference(key=key, value=value))
            else:
                stmt = insert(Preference).values(key=key, value=value)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Preference.key],
                    set_={"value": stmt.excluded["value"], "updated_at": func.now()},
                )
                await db.execute(stmt)
            await db.commit()


class IdentityProvider:
    """Hands out the Pioneer ID, generating and storing it on first access.

    First access is serialized so concurrent callers all see the one ID
    that ends up stored.
    """

    def __init__(self, preferences: PreferenceStore, pref_name: str | None = None) -> None:
        self.preferences = preferences
        self.pref_name = pref_name or settings.ID_PREF
        self._lock = asyncio.Lock()

    async def get_id(self) -> str:
        pioneer_id = await self.preferences.get(self.pref_name, "")
        if pioneer_id:
            return pioneer_id

        async with self._lock:
            pioneer_id = await self.preferences.get(self.pref_name, "")
            if not pioneer_id:
                pioneer_id = str(uuid.uuid4())
                await self.preferences.set(self.pref_name, pioneer_id)
                logger.debug("Generated new Pioneer ID under pref %s", self.pref_name)
        return pioneer_id
