"""
Shared pydantic base for records that travel as camelCase JSON.

Model output, the state store and exports all use camelCase keys
(``companyName``, ``lboModel``); Python code uses the snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys, tolerating unvalidated leaf values."""
        return self.model_dump(mode='json', by_alias=True, warnings=False)
