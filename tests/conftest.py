import itertools
from datetime import datetime, timedelta

import pytest

from sessionstore.database import Store
from sessionstore.schemas.company import CompanyCreate
from sessionstore.schemas.user import UserCreate
from sessionstore.service import SessionStoreService


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def store(tmp_path):
    store = Store(
        f"sqlite:///{tmp_path / 'sessions.db'}",
        max_open_conns=20,
        max_idle_conns=5,
        transaction_timeout_ms=0,
    )
    store.init_schema()
    yield store
    store.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 10, 30))


@pytest.fixture
def service(store, clock):
    return SessionStoreService(store, instance="east", clock=clock)


@pytest.fixture
def make_company(service):
    counter = itertools.count(1)

    def _make(**kwargs) -> int:
        n = next(counter)
        data = {"name": f"company-{n}", "token": f"company-token-{n}", **kwargs}
        return service.sessions.create_company(CompanyCreate(**data))

    return _make


@pytest.fixture
def company_id(make_company):
    return make_company()


@pytest.fixture
def make_user(service):
    counter = itertools.count(1)

    def _make(instance: str = "east", company_id: int | None = None, connected: bool = False, **kwargs) -> int:
        n = next(counter)
        user_id = service.sessions.create_user(
            UserCreate(
                name=f"user-{n}",
                token=f"user-token-{n}",
                instance=instance,
                company_id=company_id,
                **kwargs,
            )
        )
        if connected:
            service.sessions.set_connected(user_id)
        return user_id

    return _make
