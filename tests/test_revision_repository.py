"""End-to-end tests for revision repositories."""

from datetime import datetime

import pytest

from revrepo.config import RepositorySettings
from revrepo.repository import (
    PaginationInfo,
    RepositoryError,
    RevisionDoesNotExistError,
    RevisionRepositoryFactory,
    RevisionType,
    SortDirection,
)
from tests.models import AuditRevision, Country, CountryRepository, CountryRevisionRepository


@pytest.fixture
def repository(factory) -> CountryRepository:
    return factory.get_repository(CountryRepository)


@pytest.fixture
def germany(repository) -> Country:
    """Country saved as "Deutschland" and renamed to "Germany"."""
    country = repository.save(Country(code="de", name="Deutschland"))
    country.name = "Germany"
    return repository.save(country)


class TestRevisionHistory:
    """Test revision listing and lookup."""

    def test_save_and_update_yield_two_revisions(self, repository, germany):
        revisions = repository.find_revisions(germany.id)

        assert len(revisions) == 2
        first, second = revisions
        assert first.required_revision_number < second.required_revision_number
        assert first.entity.name == "Deutschland"
        assert second.entity.name == "Germany"
        assert first.revision_type is RevisionType.INSERT
        assert second.revision_type is RevisionType.UPDATE
        assert revisions.latest_revision is second

    def test_revision_metadata(self, repository, germany):
        revision = repository.find_revisions(germany.id)[0]

        assert isinstance(revision.required_revision_number, int)
        assert isinstance(revision.revision_date, datetime)
        assert revision.metadata.delegate is not None

    def test_snapshots_are_not_attached(self, repository, germany, session):
        revision = repository.find_revisions(germany.id)[0]

        assert isinstance(revision.entity, Country)
        assert revision.entity not in session
        assert revision.entity.id == germany.id
        assert revision.entity.code == "de"

    def test_find_revision_returns_content_at_revision(self, repository, germany):
        first, second = repository.find_revisions(germany.id)

        at_first = repository.find_revision(germany.id, first.required_revision_number)
        at_second = repository.find_revision(germany.id, second.required_revision_number)

        assert at_first is not None
        assert at_first.entity.name == "Deutschland"
        assert at_first.revision_type is RevisionType.INSERT
        assert at_second is not None
        assert at_second.entity.name == "Germany"
        assert at_second.required_revision_number == second.required_revision_number

    def test_find_revision_between_changes(self, repository, germany):
        other = repository.save(Country(code="fr", name="France"))
        revision_of_other = repository.find_last_change_revision(other.id)
        assert revision_of_other is not None

        revision = repository.find_revision(
            germany.id, revision_of_other.required_revision_number
        )

        assert revision is not None
        assert revision.entity.name == "Germany"
        assert revision.revision_type is RevisionType.UNKNOWN
        assert revision.required_revision_number == revision_of_other.required_revision_number

    def test_find_revision_before_entity_existed(self, repository, germany):
        first = repository.find_revisions(germany.id)[0]
        later = repository.save(Country(code="at", name="Austria"))

        assert repository.find_revision(later.id, first.required_revision_number) is None

    def test_find_unknown_revision_raises(self, repository, germany):
        with pytest.raises(RevisionDoesNotExistError) as exc_info:
            repository.find_revision(germany.id, 9999)

        assert exc_info.value.revision_number == 9999
        assert isinstance(exc_info.value, RepositoryError)

    def test_last_change_revision(self, repository, germany):
        revision = repository.find_last_change_revision(germany.id)

        assert revision is not None
        assert revision.entity.name == "Germany"
        assert revision.revision_type is RevisionType.UPDATE

    def test_lookups_of_the_same_revision_are_equal(self, repository, germany):
        first, second = repository.find_revisions(germany.id)

        assert repository.find_revisions(germany.id)[0] == first
        assert repository.find_revision(germany.id, second.required_revision_number) == second
        assert repository.find_last_change_revision(germany.id) == second
        assert first != second
        assert len({first, repository.find_revisions(germany.id)[0]}) == 1

    def test_no_history(self, repository):
        assert repository.find_last_change_revision(42) is None
        revisions = repository.find_revisions(42)
        assert len(revisions) == 0
        assert revisions.latest_revision is None


class TestDeletedEntities:
    """Test revisions of deleted entities."""

    def test_delete_adds_delete_revision(self, repository, germany):
        entity_id = germany.id
        repository.delete(germany)

        revisions = repository.find_revisions(entity_id)
        assert len(revisions) == 3
        assert revisions.latest_revision.revision_type is RevisionType.DELETE
        assert repository.find_by_id(entity_id) is None

    def test_find_revision_after_delete(self, repository, germany):
        entity_id = germany.id
        repository.delete_by_id(entity_id)
        revisions = repository.find_revisions(entity_id)

        deleted_at = revisions.latest_revision.required_revision_number
        assert repository.find_revision(entity_id, deleted_at) is None
        before = repository.find_revision(entity_id, revisions[1].required_revision_number)
        assert before is not None
        assert before.entity.name == "Germany"


class TestRevisionPages:
    """Test paging through revisions."""

    @pytest.fixture
    def renamed(self, repository) -> Country:
        country = repository.save(Country(code="nl", name="Name 0"))
        for index in range(1, 5):
            country.name = f"Name {index}"
            country = repository.save(country)
        return country

    def test_first_page(self, repository, renamed):
        page = repository.find_revisions_page(renamed.id, PaginationInfo(page=1, page_size=2))

        assert [revision.entity.name for revision in page] == ["Name 0", "Name 1"]
        assert page.total_items == 5
        assert page.total_pages == 3
        assert page.has_next

    def test_last_page(self, repository, renamed):
        page = repository.find_revisions_page(renamed.id, PaginationInfo(page=3, page_size=2))

        assert [revision.entity.name for revision in page] == ["Name 4"]
        assert not page.has_next

    def test_descending(self, repository, renamed):
        page = repository.find_revisions_page(
            renamed.id, PaginationInfo(page=1, page_size=2), direction=SortDirection.DESC
        )

        assert [revision.entity.name for revision in page] == ["Name 4", "Name 3"]

    def test_page_size_limit(self, session, renamed):
        settings = RepositorySettings(max_page_size=3, default_page_size=3)
        repository = RevisionRepositoryFactory(session, settings=settings).get_repository(
            CountryRepository
        )

        with pytest.raises(ValueError, match="max_page_size"):
            repository.find_revisions_page(renamed.id, PaginationInfo(page=1, page_size=4))


class TestCustomRevisionEntity:
    """Test reading revision metadata through a custom revision entity."""

    def test_revisions_use_custom_entity(self, session):
        factory = RevisionRepositoryFactory(session, AuditRevision)
        repository = factory.get_repository(CountryRevisionRepository)

        country = repository.save(Country(code="it", name="Italia"))
        country.name = "Italy"
        repository.save(country)

        revisions = repository.find_revisions(country.id)
        assert [revision.entity.name for revision in revisions] == ["Italia", "Italy"]
        assert all(isinstance(r.metadata.delegate, AuditRevision) for r in revisions)
        assert all(isinstance(r.revision_date, datetime) for r in revisions)


class TestCrudOperations:
    """Test the CRUD side of the revision repository."""

    def test_save_and_find(self, repository):
        saved = repository.save(Country(code="es", name="Spain"))

        assert saved.id is not None
        assert repository.find_by_id(saved.id).name == "Spain"
        assert repository.exists_by_id(saved.id)
        assert repository.count() == 1

    def test_save_detached_entity_merges(self, repository, session):
        saved = repository.save(Country(code="pt", name="Portugal"))
        entity_id = saved.id
        session.expunge(saved)

        merged = repository.save(Country(id=entity_id, code="pt", name="Portuguese Republic"))

        assert merged.name == "Portuguese Republic"
        assert repository.count() == 1
        assert len(repository.find_revisions(entity_id)) == 2

    def test_find_all_by_id(self, repository):
        first = repository.save(Country(code="be", name="Belgium"))
        repository.save(Country(code="lu", name="Luxembourg"))

        found = repository.find_all_by_id([first.id, 999])

        assert [country.name for country in found] == ["Belgium"]
        assert repository.find_all_by_id([]) == []

    def test_delete_all(self, repository):
        repository.save_all(
            [Country(code="dk", name="Denmark"), Country(code="se", name="Sweden")]
        )

        assert repository.delete_all() == 2
        assert repository.count() == 0

    def test_delete_by_id_missing(self, repository):
        assert repository.delete_by_id(12345) is False

    def test_delete_unknown_entity_is_a_no_op(self, repository):
        repository.save(Country(code="at", name="Austria"))

        repository.delete(Country(id=777, code="zz", name="Nowhere"))

        assert repository.count() == 1
        operations = repository.get_metrics()["operations"]
        assert operations["delete_success"] == 1
        assert "delete_error" not in operations

    def test_delete_detached_entity(self, repository, session):
        saved = repository.save(Country(code="ie", name="Ireland"))
        entity_id = saved.id
        session.expunge(saved)

        repository.delete(Country(id=entity_id, code="ie", name="Ireland"))

        assert repository.count() == 0
        assert repository.find_revisions(entity_id)[-1].revision_type is RevisionType.DELETE

    def test_delete_all_skips_unknown_entities(self, repository):
        known = repository.save(Country(code="nl", name="Netherlands"))

        deleted = repository.delete_all([known, Country(id=888, code="zz", name="Nowhere")])

        assert deleted == 1
        assert repository.count() == 0

    def test_flush_mode(self, session):
        settings = RepositorySettings(auto_commit=False)
        repository = RevisionRepositoryFactory(session, settings=settings).get_repository(
            CountryRepository
        )

        saved = repository.save(Country(code="no", name="Norway"))
        assert saved.id is not None
        assert session.in_transaction()

        session.rollback()
        assert repository.count() == 0

    def test_metrics(self, repository):
        repository.save(Country(code="fi", name="Finland"))
        repository.count()

        metrics = repository.get_metrics()
        assert metrics["entity_type"] == "Country"
        assert metrics["operations"]["save_success"] == 1
        assert metrics["operations"]["count_success"] == 1

    def test_database_errors_are_translated(self, repository):
        with pytest.raises(RepositoryError) as exc_info:
            repository.save(Country(code="xx", name=None))

        assert exc_info.value.operation == "save"
        assert repository.get_metrics()["operations"]["save_error"] == 1
        assert repository.count() == 0
