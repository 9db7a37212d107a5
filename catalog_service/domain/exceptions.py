"""Catalog error taxonomy.

Every business-rule violation is raised as a CatalogError subclass. Each
carries a stable ``error_code``, an ``ErrorKind`` telling the transport
layer which class of failure occurred, and optional field-level ``errors``.
Only the API layer turns a kind into an HTTP status.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Class of failure, mapped to a status code at the transport edge."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHENTICATED = "unauthenticated"
    CONFLICT = "conflict"
    UNPROCESSABLE = "unprocessable"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


class CatalogError(Exception):
    """Base class for all catalog errors.

    Subclasses set ``kind`` and ``default_code``; callers may override the
    code per raise site.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        errors: list[dict[str, str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize catalog error.

        Args:
            message: Human-readable error message.
            error_code: Stable machine-readable code.
            errors: Optional field-level issues as ``{field, message}``.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.errors = errors or []
        self.details = details or {}


# ============================================================================
# Taxonomy
# ============================================================================


class ValidationError(CatalogError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION
    default_code = "VALIDATION_ERROR"

    @classmethod
    def for_field(cls, field: str, message: str, error_code: str | None = None) -> "ValidationError":
        return cls(message, error_code=error_code, errors=[{"field": field, "message": message}])


class NotFoundError(CatalogError):
    """Absent, or present but outside the caller's tenant scope."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"


class ForbiddenError(CatalogError):
    """Authenticated and in scope, but the role is insufficient."""

    kind = ErrorKind.FORBIDDEN
    default_code = "FORBIDDEN"


class UnauthenticatedError(CatalogError):
    kind = ErrorKind.UNAUTHENTICATED
    default_code = "AUTH_REQUIRED"


class ConflictError(CatalogError):
    """Uniqueness violation or stale state."""

    kind = ErrorKind.CONFLICT
    default_code = "CONFLICT"


class UnprocessableError(CatalogError):
    """Well-formed request that breaks a business rule."""

    kind = ErrorKind.UNPROCESSABLE
    default_code = "UNPROCESSABLE_ENTITY"


class DependencyError(CatalogError):
    """The target still has dependents that block the operation."""

    kind = ErrorKind.DEPENDENCY
    default_code = "DEPENDENCY_EXISTS"


class InternalError(CatalogError):
    kind = ErrorKind.INTERNAL
    default_code = "INTERNAL_ERROR"


# ============================================================================
# Request shape
# ============================================================================


class NoFieldsProvidedError(ValidationError):
    """Raised when an update payload carries no fields at all."""

    def __init__(self) -> None:
        super().__init__("At least one field must be provided", error_code="NO_FIELDS_PROVIDED")


# ============================================================================
# Category Errors
# ============================================================================


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: int) -> None:
        super().__init__(
            f"Category {category_id} not found",
            error_code="CATEGORY_NOT_FOUND",
            details={"category_id": category_id},
        )


class CategoryExistsError(ConflictError):
    """Raised when a live sibling with the same name exists in the same scope."""

    def __init__(self, name: str, parent_id: int | None) -> None:
        super().__init__(
            f"Category '{name}' already exists under this parent",
            error_code="CATEGORY_EXISTS",
            details={"name": name, "parent_id": parent_id},
        )


class ParentNotFoundError(ValidationError):
    def __init__(self, parent_id: int) -> None:
        super().__init__(
            f"Parent category {parent_id} not found",
            error_code="PARENT_NOT_FOUND",
            errors=[{"field": "parentId", "message": "Parent category not found"}],
            details={"parent_id": parent_id},
        )


class MaxNestingExceededError(ValidationError):
    def __init__(self, max_depth: int) -> None:
        super().__init__(
            f"Category nesting cannot exceed {max_depth} levels",
            error_code="MAX_NESTING_EXCEEDED",
            errors=[{"field": "parentId", "message": f"Maximum depth is {max_depth}"}],
            details={"max_depth": max_depth},
        )


class CategoryCycleError(ValidationError):
    """Raised when a category would become its own ancestor."""

    def __init__(self, category_id: int, parent_id: int) -> None:
        super().__init__(
            f"Category {category_id} cannot be moved under its own descendant {parent_id}",
            error_code="CATEGORY_CYCLE",
            errors=[{"field": "parentId", "message": "Parent cannot be a descendant"}],
            details={"category_id": category_id, "parent_id": parent_id},
        )


class CategoryHasChildrenError(DependencyError):
    def __init__(self, category_id: int) -> None:
        super().__init__(
            f"Category {category_id} has subcategories",
            error_code="CATEGORY_HAS_CHILDREN",
            details={"category_id": category_id},
        )


class CategoryHasProductsError(DependencyError):
    def __init__(self, category_id: int) -> None:
        super().__init__(
            f"Category {category_id} has products",
            error_code="CATEGORY_HAS_PRODUCTS",
            details={"category_id": category_id},
        )


# ============================================================================
# Attribute Errors
# ============================================================================


class AttributeNotFoundError(NotFoundError):
    def __init__(self, attribute_id: int) -> None:
        super().__init__(
            f"Attribute {attribute_id} not found",
            error_code="ATTRIBUTE_NOT_FOUND",
            details={"attribute_id": attribute_id},
        )


class AttributeExistsError(ConflictError):
    def __init__(self, key: str) -> None:
        super().__init__(
            f"Attribute with key '{key}' already exists",
            error_code="ATTRIBUTE_EXISTS",
            details={"key": key},
        )


class AttributeInUseError(DependencyError):
    """Raised when deleting a definition still linked or valued somewhere."""

    def __init__(self, attribute_id: int, reason: str) -> None:
        super().__init__(
            f"Attribute {attribute_id} is in use: {reason}",
            error_code="ATTRIBUTE_IN_USE",
            details={"attribute_id": attribute_id, "reason": reason},
        )


class AttributeAlreadyLinkedError(ConflictError):
    def __init__(self, category_id: int, attribute_id: int) -> None:
        super().__init__(
            f"Attribute {attribute_id} is already linked to category {category_id}",
            error_code="ATTRIBUTE_ALREADY_LINKED",
            details={"category_id": category_id, "attribute_id": attribute_id},
        )


class AttributeNotLinkedError(NotFoundError):
    def __init__(self, category_id: int, attribute_id: int) -> None:
        super().__init__(
            f"Attribute {attribute_id} is not linked to category {category_id}",
            error_code="ATTRIBUTE_NOT_LINKED",
            details={"category_id": category_id, "attribute_id": attribute_id},
        )


# ============================================================================
# Product Errors
# ============================================================================


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int) -> None:
        super().__init__(
            f"Product {product_id} not found",
            error_code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class ProductSkuExistsError(ConflictError):
    def __init__(self, base_sku: str) -> None:
        super().__init__(
            f"Product with base SKU '{base_sku}' already exists",
            error_code="PRODUCT_SKU_EXISTS",
            details={"base_sku": base_sku},
        )


class InvalidCategoryError(ValidationError):
    """Raised when a product points at a missing or invisible category."""

    def __init__(self, category_id: int) -> None:
        super().__init__(
            f"Category {category_id} does not exist or is not available",
            error_code="INVALID_CATEGORY",
            errors=[{"field": "categoryId", "message": "Category not found"}],
            details={"category_id": category_id},
        )


# ============================================================================
# Option Errors
# ============================================================================


class OptionNotFoundError(NotFoundError):
    def __init__(self, option_id: int) -> None:
        super().__init__(
            f"Option {option_id} not found",
            error_code="OPTION_NOT_FOUND",
            details={"option_id": option_id},
        )


class OptionNameExistsError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Option '{name}' already exists on this product",
            error_code="OPTION_NAME_EXISTS",
            details={"name": name},
        )


class OptionInUseError(DependencyError):
    def __init__(self, option_id: int) -> None:
        super().__init__(
            f"Option {option_id} is used by existing variants",
            error_code="OPTION_IN_USE",
            details={"option_id": option_id},
        )


class OptionValueNotFoundError(NotFoundError):
    def __init__(self, value_id: int) -> None:
        super().__init__(
            f"Option value {value_id} not found",
            error_code="OPTION_VALUE_NOT_FOUND",
            details={"value_id": value_id},
        )


class OptionValueExistsError(ConflictError):
    def __init__(self, value: str) -> None:
        super().__init__(
            f"Option value '{value}' already exists on this option",
            error_code="OPTION_VALUE_EXISTS",
            details={"value": value},
        )


class OptionValueInUseError(DependencyError):
    def __init__(self, value_id: int) -> None:
        super().__init__(
            f"Option value {value_id} is used by existing variants",
            error_code="OPTION_VALUE_IN_USE",
            details={"value_id": value_id},
        )


class InvalidOptionError(ValidationError):
    """Raised when a variant references an unknown option or value."""

    def __init__(self, message: str, option_name: str | None = None) -> None:
        super().__init__(
            message,
            error_code="INVALID_OPTION",
            errors=[{"field": f"options.{option_name}" if option_name else "options", "message": message}],
            details={"option": option_name} if option_name else None,
        )


# ============================================================================
# Variant Errors
# ============================================================================


class VariantNotFoundError(NotFoundError):
    def __init__(self, variant_id: int) -> None:
        super().__init__(
            f"Variant {variant_id} not found",
            error_code="VARIANT_NOT_FOUND",
            details={"variant_id": variant_id},
        )


class VariantSkuExistsError(ConflictError):
    def __init__(self, sku: str) -> None:
        super().__init__(
            f"Variant with SKU '{sku}' already exists",
            error_code="VARIANT_SKU_EXISTS",
            details={"sku": sku},
        )


class VariantOptionCombinationExistsError(ConflictError):
    def __init__(self, product_id: int, existing_variant_id: int | None = None) -> None:
        super().__init__(
            "A variant with this option combination already exists",
            error_code="VARIANT_OPTION_COMBINATION_EXISTS",
            details={"product_id": product_id, "existing_variant_id": existing_variant_id},
        )


class LastVariantDeleteNotAllowedError(DependencyError):
    def __init__(self, variant_id: int) -> None:
        super().__init__(
            "Cannot delete the last variant of a product",
            error_code="LAST_VARIANT_DELETE_NOT_ALLOWED",
            details={"variant_id": variant_id},
        )


class DefaultVariantRequiredError(UnprocessableError):
    """Raised when an update would leave a product without a default variant."""

    def __init__(self, product_id: int) -> None:
        super().__init__(
            "A product must keep exactly one default variant",
            error_code="DEFAULT_VARIANT_REQUIRED",
            details={"product_id": product_id},
        )


class AmbiguousSelectionError(UnprocessableError):
    def __init__(self, match_count: int) -> None:
        super().__init__(
            f"Selection matches {match_count} variants; choose more options",
            error_code="AMBIGUOUS_SELECTION",
            details={"match_count": match_count},
        )


class VariantNotFoundWithOptionsError(NotFoundError):
    def __init__(self, selections: dict[str, str]) -> None:
        super().__init__(
            "No variant matches the selected options",
            error_code="VARIANT_NOT_FOUND_WITH_OPTIONS",
            details={"selections": selections},
        )


# ============================================================================
# Product Attribute Errors
# ============================================================================


class ProductAttributeNotFoundError(NotFoundError):
    def __init__(self, product_attribute_id: int) -> None:
        super().__init__(
            f"Product attribute {product_attribute_id} not found",
            error_code="PRODUCT_ATTRIBUTE_NOT_FOUND",
            details={"product_attribute_id": product_attribute_id},
        )


class ProductAttributeExistsError(ConflictError):
    def __init__(self, attribute_id: int) -> None:
        super().__init__(
            f"Attribute {attribute_id} is already set on this product",
            error_code="PRODUCT_ATTRIBUTE_EXISTS",
            details={"attribute_id": attribute_id},
        )


class InvalidAttributeValueError(ValidationError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for attribute '{key}': {reason}",
            error_code="INVALID_ATTRIBUTE_VALUE",
            errors=[{"field": key, "message": reason}],
            details={"key": key},
        )


class RequiredAttributeMissingError(UnprocessableError):
    def __init__(self, keys: list[str]) -> None:
        super().__init__(
            f"Required category attributes missing: {', '.join(keys)}",
            error_code="REQUIRED_ATTRIBUTE_MISSING",
            errors=[{"field": key, "message": "Required attribute is missing"} for key in keys],
            details={"keys": keys},
        )


# ============================================================================
# Package Option Errors
# ============================================================================


class PackageOptionNotFoundError(NotFoundError):
    def __init__(self, package_option_id: int) -> None:
        super().__init__(
            f"Package option {package_option_id} not found",
            error_code="PACKAGE_OPTION_NOT_FOUND",
            details={"package_option_id": package_option_id},
        )


# ============================================================================
# Query Errors
# ============================================================================


class InvalidStrategyError(ValidationError):
    def __init__(self, strategy: str, allowed: list[str]) -> None:
        super().__init__(
            f"Unknown related-products strategy '{strategy}'",
            error_code="INVALID_STRATEGY",
            errors=[{"field": "strategies", "message": f"Allowed: {', '.join(allowed)}"}],
            details={"strategy": strategy},
        )
