"""Base Pydantic model configuration for Polaris wire models.

All wire models inherit from PolarisBaseModel to ensure consistent behavior:
- Immutability (frozen=True) so envelopes can be logged and returned safely
- Strict validation (extra="forbid") to catch typos and invalid fields
- camelCase aliases on the wire, snake_case attributes in Python
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PolarisBaseModel(BaseModel):
    """Base model for all Polaris protocol entities.

    Example:
        >>> class Sample(PolarisBaseModel):
        ...     first_name: str
        >>> Sample(first_name="rest").to_wire()
        {'firstName': 'rest'}
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        # Wire format is camelCase; Python code uses field names
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON-compatible dict sent over the WebSocket."""
        return self.model_dump(mode="json", by_alias=True)
