"""Principals and tenant scope.

A Principal is the authenticated caller decoded from a bearer token. An
Actor is what services receive: the caller's role (None when anonymous)
and the seller scope the call is restricted to.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Self


class RoleLevel(IntEnum):
    """Role levels; lower is more privileged."""

    ADMIN = 1
    SELLER = 2
    CUSTOMER = 3


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Attributes:
        user_id: Account identifier.
        email: Account email.
        role_level: Role level from the token.
        seller_id: Seller the account belongs to, if any.
    """

    user_id: int
    email: str
    role_level: RoleLevel
    seller_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role_level == RoleLevel.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role_level == RoleLevel.SELLER

    @property
    def can_write_catalog(self) -> bool:
        return self.role_level <= RoleLevel.SELLER


@dataclass(frozen=True)
class Actor:
    """Caller role plus tenant scope.

    ``seller_id`` is the scope every read and write is narrowed to. It is
    None only for an admin acting across all tenants.

    Example:
        actor = Actor.seller(7)
        actor.can_see(category.seller_id)
    """

    role: RoleLevel | None
    seller_id: int | None = None

    @classmethod
    def admin(cls, seller_id: int | None = None) -> Self:
        return cls(role=RoleLevel.ADMIN, seller_id=seller_id)

    @classmethod
    def seller(cls, seller_id: int) -> Self:
        return cls(role=RoleLevel.SELLER, seller_id=seller_id)

    @classmethod
    def public(cls, seller_id: int | None) -> Self:
        return cls(role=None, seller_id=seller_id)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleLevel.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role == RoleLevel.SELLER

    @property
    def unscoped(self) -> bool:
        """True when the caller sees every tenant."""
        return self.is_admin and self.seller_id is None

    def can_see(self, owner_seller_id: int | None) -> bool:
        """Visibility of a row owned by ``owner_seller_id`` (None = global)."""
        if self.is_admin or not owner_seller_id:
            return True
        return owner_seller_id == self.seller_id

    def owns(self, owner_seller_id: int | None) -> bool:
        """Whether the caller may see a tenant-owned row such as a product."""
        if self.unscoped:
            return True
        return owner_seller_id is not None and owner_seller_id == self.seller_id
