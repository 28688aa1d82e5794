"""Tests for the repository registry."""

import pytest

from revrepo.config_errors import RevisionTypeMismatchError
from revrepo.depends import depends
from revrepo.repository import (
    RepositoryRegistryError,
    RevisionRepositoryRegistry,
    get_registry,
)
from tests import repositories
from tests.models import (
    AuditRevision,
    CityRepository,
    CountryRepository,
    CountryRevisionRepository,
    CountryStringRevisionRepository,
    StringRevision,
)


class CountryQueries:
    def describe(self) -> str:
        return f"{self.entity_name} repository"


@pytest.fixture
def registry(session, settings) -> RevisionRepositoryRegistry:
    return RevisionRepositoryRegistry(session, settings=settings)


class TestRevisionRepositoryRegistry:
    """Test registering and looking up repositories."""

    def test_register_and_get(self, registry):
        repository = registry.register(CountryRepository)

        assert isinstance(repository, CountryRepository)
        assert registry.get(CountryRepository) is repository
        assert registry.is_registered(CountryRepository)

    def test_register_publishes_repository(self, registry):
        repository = registry.register(CountryRepository)

        assert depends.get_sync(CountryRepository) is repository

    def test_register_twice_returns_same_instance(self, registry):
        first = registry.register(CountryRepository)

        assert registry.register(CountryRepository) is first

    def test_register_with_other_custom_implementation(self, registry):
        registry.register(CountryRepository)

        with pytest.raises(RepositoryRegistryError, match="different custom implementation"):
            registry.register(CountryRepository, CountryQueries)

    def test_custom_implementation(self, registry):
        repository = registry.register(CountryRevisionRepository, CountryQueries)

        assert repository.describe() == "Country repository"

    def test_mismatch_fails_at_registration(self, registry):
        with pytest.raises(RevisionTypeMismatchError):
            registry.register(CountryStringRevisionRepository)

        assert not registry.is_registered(CountryStringRevisionRepository)

    def test_get_unregistered(self, registry):
        with pytest.raises(RepositoryRegistryError):
            registry.get(CityRepository)

        assert registry.try_get(CityRepository) is None

    def test_list_registrations(self, registry):
        registry.register(CountryRepository)
        registry.register(CityRepository)

        registrations = registry.list_registrations()

        assert registrations["CountryRepository"]["domain_type"] == "Country"
        assert registrations["CountryRepository"]["revision_repository"] is True
        assert registrations["CountryRepository"]["predicate_executor"] is True
        assert registrations["CityRepository"]["revision_repository"] is False
        assert registrations["CityRepository"]["custom_implementation"] is None

    def test_auto_register_repositories(self, registry):
        count = registry.auto_register_repositories(repositories)

        assert count == 2
        assert registry.is_registered(repositories.CountryHistory)
        assert registry.is_registered(repositories.SearchableCountryHistory)
        assert not registry.is_registered(repositories.IntRevisionHistory)
        assert registry.auto_register_repositories(repositories) == 0


class TestRevisionEntityConfiguration:
    """Test configuring the revision entity class on a registry."""

    def test_custom_revision_entity(self, registry):
        registry.set_revision_entity_class(StringRevision)

        repository = registry.register(CountryStringRevisionRepository)

        assert repository.revision_entity_information.revision_entity_class is StringRevision

    def test_cannot_change_after_registration(self, registry):
        registry.register(CountryRepository)

        with pytest.raises(RepositoryRegistryError):
            registry.set_revision_entity_class(AuditRevision)


class TestGlobalRegistry:
    """Test the process-wide registry."""

    def test_requires_session_on_first_use(self):
        with pytest.raises(RepositoryRegistryError):
            get_registry()

    def test_created_once(self, session):
        registry = get_registry(session)

        assert get_registry() is registry
        assert depends.get_sync(RevisionRepositoryRegistry) is registry
