"""Tests for mapper-derived entity information."""

import pytest
from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from revrepo.config_errors import RepositoryConfigurationError
from revrepo.repository import SQLAlchemyEntityInformation
from revrepo.versioning import is_versioned
from tests.models import City, Country


class LocalBase(DeclarativeBase):
    pass


class Membership(LocalBase):
    __tablename__ = "membership"

    group: Mapped[str] = mapped_column(String(20), primary_key=True)
    member: Mapped[int] = mapped_column(primary_key=True)


@pytest.mark.unit
class TestSQLAlchemyEntityInformation:
    def test_single_id(self) -> None:
        information = SQLAlchemyEntityInformation(Country)

        assert information.entity_name == "Country"
        assert information.id_attribute_names == ("id",)
        assert information.id_type is int
        assert not information.has_composite_id

    def test_get_id_and_is_new(self) -> None:
        information = SQLAlchemyEntityInformation(Country)

        assert information.is_new(Country(code="de", name="Deutschland"))
        assert information.get_id(Country(id=5)) == 5
        assert not information.is_new(Country(id=5))

    def test_composite_id(self) -> None:
        information = SQLAlchemyEntityInformation(Membership)

        assert information.has_composite_id
        assert information.id_type is tuple
        assert information.get_id(Membership(group="admins", member=3)) == ("admins", 3)
        assert information.id_values(("admins", 3)) == ("admins", 3)

    def test_composite_id_arity(self) -> None:
        with pytest.raises(ValueError):
            SQLAlchemyEntityInformation(Membership).id_values(("admins",))

    def test_id_criteria(self) -> None:
        clause = SQLAlchemyEntityInformation(Country).id_criteria(Country, 7)

        assert str(clause.compile(compile_kwargs={"literal_binds": True})) == "country.id = 7"

    def test_versioned(self) -> None:
        assert SQLAlchemyEntityInformation(Country).is_versioned
        assert not SQLAlchemyEntityInformation(City).is_versioned
        assert is_versioned(Country)

    def test_unmapped_class(self) -> None:
        with pytest.raises(RepositoryConfigurationError):
            SQLAlchemyEntityInformation(object)
