# nodo360/db/session.py
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nodo360.core.settings import settings

# ✅ Engine async
engine = create_async_engine(
    settings.DATABASE_ASYNC_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
)

# ✅ Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,  # mantener atributos cargados tras commit
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
