"""Tests for predicate queries on revision repositories."""

import pytest

from revrepo.repository import (
    IncorrectResultSizeError,
    PaginationInfo,
    SortCriteria,
    SortDirection,
)
from revrepo.repository.specifications import equals, like, starts_with
from tests.models import City, CityRepository, Country, CountryRepository


@pytest.fixture
def repository(factory) -> CountryRepository:
    return factory.get_repository(CountryRepository)


@pytest.fixture
def countries(repository) -> list[Country]:
    return repository.save_all(
        [
            Country(code="de", name="Deutschland"),
            Country(code="dk", name="Denmark"),
            Country(code="fr", name="France"),
        ]
    )


class TestPredicateQueries:
    """Test predicate queries over the current state."""

    def test_exact_match_after_save(self, repository):
        saved = repository.save(Country(code="de", name="Deutschland"))

        found = repository.find_all_by(Country.name == "Deutschland")

        assert len(found) == 1
        assert found[0].id == saved.id

    def test_no_match_is_empty(self, repository):
        repository.save(Country(code="de", name="Deutschland"))

        assert repository.find_all_by(Country.name == "Germany") == []
        assert repository.find_one(Country.name == "Germany") is None

    def test_find_one_with_specification(self, repository, countries):
        found = repository.find_one(equals("code", "fr"))

        assert found is not None
        assert found.name == "France"

    def test_find_one_with_several_matches_raises(self, repository, countries):
        with pytest.raises(IncorrectResultSizeError):
            repository.find_one(starts_with("code", "d"))

    def test_find_all_by_sorted(self, repository, countries):
        found = repository.find_all_by(
            like("code", "d%"), sort=[SortCriteria("name", SortDirection.DESC)]
        )

        assert [country.name for country in found] == ["Deutschland", "Denmark"]

    def test_find_page_by(self, repository, countries):
        page = repository.find_page_by(
            ~equals("code", "xx"),
            PaginationInfo(page=2, page_size=2),
            sort=[SortCriteria("code")],
        )

        assert [country.code for country in page] == ["fr"]
        assert page.total_items == 3
        assert page.total_pages == 2

    def test_count_and_exists(self, repository, countries):
        assert repository.count_by(starts_with("code", "d")) == 2
        assert repository.exists_by(Country.code == "fr")
        assert not repository.exists_by(Country.code == "it")

    def test_unsupported_predicate(self, repository):
        with pytest.raises(TypeError):
            repository.find_all_by("name = 'Deutschland'")  # type: ignore[arg-type]

    def test_unknown_field(self, repository):
        with pytest.raises(ValueError, match="no mapped attribute"):
            repository.find_all_by(equals("population", 1))

    def test_queries_and_revisions_see_same_data(self, repository):
        country = repository.save(Country(code="de", name="Deutschland"))
        country.name = "Germany"
        repository.save(country)

        current = repository.find_one(Country.code == "de")
        revisions = repository.find_revisions(current.id)

        assert current.name == "Germany"
        assert [revision.entity.name for revision in revisions] == ["Deutschland", "Germany"]


class TestPlainPredicateRepository:
    """Test predicate queries on a repository without history."""

    def test_city_queries(self, factory):
        repository = factory.get_repository(CityRepository)
        repository.save_all([City(name="Berlin"), City(name="Bonn"), City(name="Paris")])

        assert repository.count_by(starts_with("name", "B")) == 2
        assert repository.find_one(City.name == "Paris") is not None
        assert not hasattr(repository, "find_revisions")
