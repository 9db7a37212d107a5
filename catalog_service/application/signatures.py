"""Option signatures: resolving ``option name -> value`` selections.

A variant's option signature is the mapping ``option_id -> option_value_id``
with exactly one entry per live option of its product.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from catalog_service.catalog.models import ProductOption, ProductOptionValue
from catalog_service.catalog.repositories import OptionRepository
from catalog_service.domain.exceptions import InvalidOptionError
from catalog_service.domain.normalization import normalize_option_name, normalize_option_value

Signature = dict[int, int]


@dataclass
class OptionLattice:
    """The live options of one product and their values, indexed for lookup."""

    options: list[ProductOption]
    values: dict[int, list[ProductOptionValue]] = field(default_factory=dict)

    @classmethod
    async def load(cls, repository: OptionRepository, product_id: int) -> "OptionLattice":
        options = await repository.list_for_product(product_id)
        values = await repository.values_for_options([option.id for option in options])
        return cls(options=options, values=dict(values))

    @property
    def values_by_id(self) -> dict[int, ProductOptionValue]:
        return {value.id: value for rows in self.values.values() for value in rows}

    def option_named(self, name: str) -> ProductOption | None:
        key = normalize_option_name(name)
        return next((option for option in self.options if option.name == key), None)

    def value_of(self, option: ProductOption, raw: str) -> ProductOptionValue | None:
        key = normalize_option_value(raw)
        return next((value for value in self.values.get(option.id, []) if value.value == key), None)

    def resolve(self, selections: Mapping[str, str]) -> Signature:
        """Resolve a complete selection into a signature.

        Args:
            selections: ``option name -> value`` as sent by the client.

        Returns:
            Signature covering every option of the product.

        Raises:
            InvalidOptionError: Unknown option or value, an option selected
                twice, or an option left without a value.
        """
        signature: Signature = {}
        for name, raw in selections.items():
            option = self.option_named(name)
            if option is None:
                raise InvalidOptionError(f"Unknown option '{name}'", option_name=name)
            if option.id in signature:
                raise InvalidOptionError(f"Option '{option.name}' selected more than once", option_name=name)
            value = self.value_of(option, raw)
            if value is None:
                raise InvalidOptionError(f"Unknown value '{raw}' for option '{option.name}'", option_name=name)
            signature[option.id] = value.id

        missing = [option.name for option in self.options if option.id not in signature]
        if missing:
            raise InvalidOptionError(
                f"A value is required for every option; missing: {', '.join(missing)}",
                option_name=missing[0],
            )
        return signature


def find_duplicate(signature: Mapping[int, int], others: Mapping[int, Mapping[int, int]]) -> int | None:
    """Return the id of another variant with the same signature, if any."""
    target = dict(signature)
    for variant_id, other in others.items():
        if dict(other) == target:
            return variant_id
    return None
