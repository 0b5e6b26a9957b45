import os
from unittest.mock import patch

import pytest

from mcp_schema_compat.config import ENABLED_ENV_VAR, MAX_DEPTH_ENV_VAR


@pytest.fixture(autouse=True)
def mock_env_vars():
    """Automatically isolate the simplifier environment variables for all tests."""
    with patch.dict(os.environ):
        for name in (MAX_DEPTH_ENV_VAR, ENABLED_ENV_VAR, "MCP_PORT", "MCP_HOST"):
            os.environ.pop(name, None)
        yield


@pytest.fixture
def point_schema():
    """A root schema referencing a shared Point definition."""
    return {
        "type": "object",
        "properties": {
            "origin": {"$ref": "#/$defs/Point"},
            "label": {"type": "string"},
        },
        "required": ["origin"],
        "$defs": {
            "Point": {
                "type": "object",
                "properties": {
                    "x": {"type": "number"},
                    "y": {"type": "number"},
                },
            }
        },
    }


@pytest.fixture
def nested_schema():
    """Return a builder for object schemas nested `levels` deep through a `child` property."""

    def build(levels: int) -> dict:
        schema = {"type": "string"}
        for _ in range(levels):
            schema = {"type": "object", "properties": {"child": schema}}
        return schema

    return build
