"""
Test fixtures shared by every test module.

Provides the SQLite in-memory database, a deterministic clock, the
application config and the ServiceContext the services are built from.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from rental_core.config import (
    AIConfig,
    AppConfig,
    DatabaseSettings,
    FeatureFlags,
    LineConfig,
    SecurityConfig,
)
from rental_core.context.service_context import ServiceContext
from rental_core.db import Base, DatabaseManager, get_development_config, import_all_models
from rental_core.exceptions import clear_correlation_id
from tests.fixtures.factories import configure_factories

NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
OWNER_LINE_ID = "U-owner-0001"


class TickingClock:
    """Starts at a fixed instant and advances one second per reading."""

    def __init__(self, start: datetime = NOW, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value

    def set(self, value: datetime) -> None:
        self.current = value


@pytest.fixture(scope="session")
def db_manager() -> DatabaseManager:
    """Create the in-memory database manager with all models registered."""
    import_all_models()
    manager = DatabaseManager(get_development_config(":memory:"))
    yield manager
    manager.close()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Fresh tables and a session for each test.

    Factories are bound to this session; services open their own sessions
    on the same in-memory database.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.get_session()
    configure_factories(session)

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(db_manager.engine)
    clear_correlation_id()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        environment="test",
        app_url="https://rent.example.com",
        database=DatabaseSettings(connection_string="sqlite:///:memory:"),
        features=FeatureFlags(enable_logs_queue=False, strict_inflation_coverage=False),
        line=LineConfig(
            channel_access_token="line-access-token",
            channel_secret="line-channel-secret",
            owner_line_ids=[OWNER_LINE_ID],
        ),
        ai=AIConfig(openai_api_key=None),
        security=SecurityConfig(signing_secret="test-signing-secret", cron_secret="cron-secret"),
    )


@pytest.fixture
def context(app_config: AppConfig, db_manager: DatabaseManager, db_session, clock) -> ServiceContext:
    return ServiceContext(config=app_config, db_manager=db_manager, clock=clock)
