from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema for immutable value types shared across the workflows."""

    model_config = ConfigDict(from_attributes=True, frozen=True, populate_by_name=True)
