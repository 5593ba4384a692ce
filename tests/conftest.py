import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kimai_import.config import Settings
from kimai_import.database import Base
from kimai_import.models import Customer, Project, User
from kimai_import.models.user import PREFERENCE_TIMEZONE, ROLE_USER
from kimai_import.services.store import KimaiStore

# In-memory destination store, created fresh for every test
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestingSession = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def store(db) -> KimaiStore:
    return KimaiStore(db)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        default_country="DE",
        default_currency="EUR",
        default_timezone="UTC",
        default_language="en",
        max_rows=1000,
        legacy_batch_size=2,
    )


@pytest.fixture
def existing_user(db) -> User:
    user = User(
        username="alice",
        email="alice@example.com",
        alias="Alice A.",
        enabled=True,
        roles=[ROLE_USER],
        password="x",
    )
    user.set_preference_value(PREFERENCE_TIMEZONE, "Europe/Berlin")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def existing_project(db) -> Project:
    customer = Customer(name="Acme", country="DE", currency="EUR", timezone="UTC")
    project = Project(name="Website", customer=customer)
    db.add_all([customer, project])
    db.commit()
    return project
