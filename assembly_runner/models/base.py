"""Base model configuration for the runner's data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model; instances compare structurally."""

    model_config = ConfigDict(frozen=True, extra="forbid")
