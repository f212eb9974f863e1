import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel.pool import StaticPool
from datetime import datetime, timezone, timedelta

from offline_sync.core.clock import SequenceGenerator
from offline_sync.database.engine import build_session_factory, create_db_and_tables
from offline_sync.models import OfflineEntity


class TodoItem(OfflineEntity, table=True):
    """Entity used to exercise offline tables."""
    __tablename__ = "todo_items"

    title: str
    done: bool = False
    version: int = 0


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# Test database setup
@pytest_asyncio.fixture(name="engine")
async def engine_fixture():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(engine):
    async with build_session_factory(engine)() as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock(datetime(2022, 12, 25, 3, 0, tzinfo=timezone.utc))


@pytest.fixture(name="sequence")
def sequence_fixture(clock):
    return SequenceGenerator(clock)
