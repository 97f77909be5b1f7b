from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from agenda.models import PendingSelection
from agenda.cores.db import Base

# Base de datos de prueba (en memoria)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def create_test_engine():
    # StaticPool: todas las sesiones comparten la misma conexión en memoria
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def create_test_sessionmaker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# Crea todas las tablas en memoria
async def init_test_db(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
