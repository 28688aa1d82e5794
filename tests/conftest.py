"""Configuration for pytest testing framework."""

import pytest
from _pytest.python import Function
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from revrepo.config import RepositorySettings
from revrepo.repository import RevisionRepositoryFactory
from tests.models import Base


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as exercising a database end to end"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[Function]) -> None:
    """Mark tests that need a database session as integration tests."""
    for item in items:
        if "session" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def reset_dependency_container():
    """Reset the dependency container before each test to ensure test isolation."""
    from revrepo.depends import depends
    from revrepo.repository.registry import reset_registry

    # Clear the dependency container to ensure test isolation
    depends.clear()
    reset_registry()


@pytest.fixture
def engine():
    """In-memory SQLite database with the versioned schema."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings() -> RepositorySettings:
    return RepositorySettings()


@pytest.fixture
def factory(session, settings) -> RevisionRepositoryFactory:
    return RevisionRepositoryFactory(session, settings=settings)
