"""Repository interfaces discovered by registry auto-registration tests."""

from typing import Generic, TypeVar

from revrepo.repository import PredicateExecutor, VersionedRepository
from tests.models import Country

E = TypeVar("E")


class CountryHistory(VersionedRepository[Country, int, int]):
    pass


class SearchableCountryHistory(VersionedRepository[Country, int, int], PredicateExecutor[Country]):
    pass


class IntRevisionHistory(VersionedRepository[E, int, int], Generic[E]):
    """Generic intermediate interface; not registrable on its own."""
