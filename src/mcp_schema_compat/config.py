"""Schema simplifier configuration read from environment variables."""

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError

from mcp_schema_compat.schema_utils import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

MAX_DEPTH_ENV_VAR = "SCHEMA_SIMPLIFIER_MAX_DEPTH"
ENABLED_ENV_VAR = "SCHEMA_SIMPLIFIER_ENABLED"


class SimplifierConfig(BaseModel):
    """Settings for tools/list schema simplification."""

    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=0,
        description="Deepest nesting level kept before falling back to a permissive object",
    )
    enabled: bool = Field(
        default=True,
        description="Whether tools/list responses are simplified at all",
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SimplifierConfig":
        """
        Build the configuration from environment variables.

        Unset or empty variables keep their defaults.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        if environ is None:
            environ = os.environ

        values = {}
        if environ.get(MAX_DEPTH_ENV_VAR):
            values["max_depth"] = environ[MAX_DEPTH_ENV_VAR].strip()
        if environ.get(ENABLED_ENV_VAR):
            values["enabled"] = environ[ENABLED_ENV_VAR].strip()

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ValueError(f"Invalid schema simplifier configuration: {e}") from e

        logger.debug(f"Schema simplifier configuration: {config}")
        return config
