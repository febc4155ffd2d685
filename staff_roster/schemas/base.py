"""Shared schema base: snake_case in Python, camelCase on the wire."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CamelModel(BaseModel):
    """Base for every request/response DTO.

    Accepts either ``shiftName`` or ``shift_name`` on input and always emits
    camelCase when dumped with ``by_alias=True``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def provided(self) -> set:
        """Names of the fields the client explicitly sent (null included)."""
        return set(self.model_fields_set)
