"""Tests for option signature resolution."""

import pytest

from catalog_service.application.signatures import OptionLattice, find_duplicate
from catalog_service.catalog.models import ProductOption, ProductOptionValue
from catalog_service.domain.exceptions import InvalidOptionError


@pytest.fixture
def lattice() -> OptionLattice:
    """color {red=11, blue=12} and size {s=21, m=22}."""
    color = ProductOption(id=1, product_id=100, name="color", display_name="Color", position=0)
    size = ProductOption(id=2, product_id=100, name="size", display_name="Size", position=1)
    values = {
        1: [
            ProductOptionValue(id=11, option_id=1, value="red", display_name="Red", position=0),
            ProductOptionValue(id=12, option_id=1, value="blue", display_name="Blue", position=1),
        ],
        2: [
            ProductOptionValue(id=21, option_id=2, value="s", display_name="S", position=0),
            ProductOptionValue(id=22, option_id=2, value="m", display_name="M", position=1),
        ],
    }
    return OptionLattice(options=[color, size], values=values)


class TestOptionLattice:
    """Tests for OptionLattice lookups and resolve."""

    def test_lookup_is_normalised(self, lattice: OptionLattice) -> None:
        option = lattice.option_named(" Color ")
        assert option is not None and option.id == 1
        assert lattice.value_of(option, "RED").id == 11
        assert lattice.value_of(option, "green") is None

    def test_values_by_id(self, lattice: OptionLattice) -> None:
        assert set(lattice.values_by_id) == {11, 12, 21, 22}

    def test_resolve_complete_selection(self, lattice: OptionLattice) -> None:
        assert lattice.resolve({"color": "blue", "Size": "M"}) == {1: 12, 2: 22}

    def test_missing_option(self, lattice: OptionLattice) -> None:
        with pytest.raises(InvalidOptionError) as exc_info:
            lattice.resolve({"color": "red"})
        assert exc_info.value.errors[0]["field"] == "options.size"

    def test_unknown_option(self, lattice: OptionLattice) -> None:
        with pytest.raises(InvalidOptionError):
            lattice.resolve({"color": "red", "size": "s", "material": "wool"})

    def test_unknown_value(self, lattice: OptionLattice) -> None:
        with pytest.raises(InvalidOptionError):
            lattice.resolve({"color": "green", "size": "s"})

    def test_option_selected_twice(self, lattice: OptionLattice) -> None:
        with pytest.raises(InvalidOptionError):
            lattice.resolve({"color": "red", "Color": "blue", "size": "s"})


def test_find_duplicate() -> None:
    others = {5: {1: 11, 2: 21}, 6: {1: 12, 2: 22}}
    assert find_duplicate({2: 22, 1: 12}, others) == 6
    assert find_duplicate({1: 11, 2: 22}, others) is None
    assert find_duplicate({1: 11}, {}) is None
