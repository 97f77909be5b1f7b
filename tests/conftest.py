import pytest
from httpx import AsyncClient, ASGITransport

from agenda.main import app
from agenda.apis.deps import get_backend_client, get_db
from agenda.cores.rate_limiter import limiter
from tests.factories import FakeBackendClient, MONDAY_SLOTS
from tests.test_db import create_test_engine, create_test_sessionmaker, init_test_db


@pytest.fixture
async def session_factory():
    engine = create_test_engine()
    await init_test_db(engine)
    yield create_test_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def backend():
    return FakeBackendClient(slots=MONDAY_SLOTS)


@pytest.fixture
async def client(session_factory, backend):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_backend_client():
        yield backend

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_backend_client] = override_get_backend_client
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": "Bearer token-docente"},
    ) as http_client:
        yield http_client

    app.dependency_overrides.clear()
    limiter.enabled = True
