"""Shared pydantic base for request payloads and read records."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model exposed over the wire with camelCase field names.

    Accepts both ``parent_id`` and ``parentId`` on input and reads from ORM
    attributes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def present_fields(self) -> dict:
        """Fields the client actually sent, including explicit nulls.

        Distinguishes "absent" from "present and empty" for partial updates.
        """
        return self.model_dump(exclude_unset=True)
