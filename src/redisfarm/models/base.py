"""Base model configuration for all Pydantic models."""

from pydantic import BaseModel, ConfigDict


class FarmBaseModel(BaseModel):
    """Base model with common configuration.

    Conventions:
    - Field names are lowercase snake_case
    - Models describe transient values and are immutable once built
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        frozen=True,
    )
