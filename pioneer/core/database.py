from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pioneer.core.config import settings
from pioneer.models import Base

engine = create_async_engine(settings.DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
