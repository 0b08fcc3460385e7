import pytest
from sqlalchemy.pool import StaticPool

from storefront.models import create_backend


@pytest.fixture
async def backend():
    backend = create_backend("sqlite+aiosqlite://", poolclass=StaticPool)
    await backend.init_db()
    yield backend
    await backend.dispose()


@pytest.fixture
async def bare_backend():
    """A backend whose schema was never created; every query fails."""
    backend = create_backend("sqlite+aiosqlite://", poolclass=StaticPool)
    yield backend
    await backend.dispose()


@pytest.fixture
def add(backend):
    async def _add(*rows):
        async with backend.session() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows
    return _add


@pytest.fixture
async def unreachable_backend():
    """A Postgres backend pointed at a port nothing listens on."""
    backend = create_backend("postgresql+asyncpg://shop:pw@127.0.0.1:1/shop")
    yield backend
    await backend.dispose()
