# tests/conftest.py
from datetime import datetime, timedelta, timezone
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from yapluca.db import init_db
from yapluca.auth import AuthService
from yapluca.consent import ConsentManager
from yapluca.identity import DocumentStore, IdentityProvider
from yapluca.storage import LocalStorage, StorageError


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class BrokenStorage(LocalStorage):
    """Every read and write fails, like a corrupted device store."""

    def get_item(self, key):
        raise StorageError(f"could not read {key!r}")

    def set_item(self, key, value):
        raise StorageError(f"could not write {key!r}")

    def multi_remove(self, keys):
        raise StorageError(f"could not remove {keys!r}")


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def storage(session_factory):
    return LocalStorage(session_factory)


@pytest.fixture
def provider(session_factory):
    return IdentityProvider(session_factory)


@pytest.fixture
def documents(session_factory):
    return DocumentStore(session_factory)


@pytest.fixture
def auth_service(provider, documents, storage):
    return AuthService(provider, documents, storage)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def consents(storage, clock):
    return ConsentManager(storage, clock=clock)


@pytest.fixture
def broken_storage(session_factory):
    return BrokenStorage(session_factory)
