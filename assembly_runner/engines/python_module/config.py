"""Configuration for the Python module engine."""

from pydantic import BaseModel, ConfigDict


class PythonModuleConfig(BaseModel):
    """Configuration for the Python module engine."""

    model_config = ConfigDict(extra="forbid")

    function_prefix: str = "test"
    class_prefix: str = "Test"
