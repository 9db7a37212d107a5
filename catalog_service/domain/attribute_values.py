"""Typed attribute values.

Product attribute values are persisted as strings, but each definition
declares a data type. Values are parsed into a tagged union at the edge and
written back in a canonical string form.
"""

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from catalog_service.domain.exceptions import InvalidAttributeValueError


class AttributeDataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


@dataclass(frozen=True)
class StringValue:
    value: str

    def to_storage(self) -> str:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    value: Decimal

    def to_storage(self) -> str:
        return format(self.value.normalize(), "f")


@dataclass(frozen=True)
class BooleanValue:
    value: bool

    def to_storage(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class ArrayValue:
    value: tuple[str, ...]

    def to_storage(self) -> str:
        return json.dumps(list(self.value))


AttributeValue = StringValue | NumberValue | BooleanValue | ArrayValue


def parse_attribute_value(raw: str, data_type: AttributeDataType) -> AttributeValue:
    """Parse a raw string into the value type declared by a definition.

    Args:
        raw: Value as sent by the client or read from the store.
        data_type: Declared type of the attribute definition.

    Returns:
        Parsed value.

    Raises:
        ValueError: If the string does not follow the type's convention.
    """
    text = raw.strip()
    if data_type == AttributeDataType.NUMBER:
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValueError("expected a decimal number") from None
        if not number.is_finite():
            raise ValueError("expected a finite decimal number")
        return NumberValue(number)

    if data_type == AttributeDataType.BOOLEAN:
        lowered = text.lower()
        if lowered not in ("true", "false"):
            raise ValueError("expected 'true' or 'false'")
        return BooleanValue(lowered == "true")

    if data_type == AttributeDataType.ARRAY:
        try:
            items = json.loads(text)
        except ValueError:
            raise ValueError("expected a JSON array of strings") from None
        if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
            raise ValueError("expected a JSON array of strings")
        return ArrayValue(tuple(items))

    if not text:
        raise ValueError("value cannot be empty")
    return StringValue(text)


def validate_attribute_value(
    key: str,
    data_type: AttributeDataType,
    allowed_values: list[str] | None,
    raw: str,
) -> str:
    """Validate a raw value against a definition and canonicalise it.

    When ``allowed_values`` is non-empty every scalar value (or every array
    element) must belong to it.

    Args:
        key: Definition key, used in error reporting.
        data_type: Declared data type.
        allowed_values: Optional closed set of permitted values.
        raw: Value to validate.

    Returns:
        Canonical string form for storage.

    Raises:
        InvalidAttributeValueError: If the value breaks the type or the set.
    """
    try:
        parsed = parse_attribute_value(raw, data_type)
    except ValueError as e:
        raise InvalidAttributeValueError(key, str(e)) from e

    if allowed_values:
        if isinstance(parsed, ArrayValue):
            rejected = [item for item in parsed.value if item not in allowed_values]
        else:
            rejected = [] if raw.strip() in allowed_values or parsed.to_storage() in allowed_values else [raw.strip()]
        if rejected:
            raise InvalidAttributeValueError(
                key, f"{', '.join(rejected)} not in allowed values ({', '.join(allowed_values)})"
            )

    return parsed.to_storage()
