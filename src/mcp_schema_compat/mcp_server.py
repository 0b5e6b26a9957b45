"""FastMCP server whose tools/list responses use simplified input schemas."""

import logging
import os

from fastmcp import FastMCP

from mcp_schema_compat import configure_mcp_logging
from mcp_schema_compat.config import SimplifierConfig
from mcp_schema_compat.transport import install_schema_simplification

# Configure logger
logger = logging.getLogger(__name__)


class CompatFastMCP(FastMCP):
    """FastMCP extension that simplifies tool input schemas for restricted clients."""

    def __init__(self, *args, **kwargs):
        # Extract our custom parameters before passing to parent
        max_depth = kwargs.pop("max_depth", None)
        simplify_schemas = kwargs.pop("simplify_schemas", None)

        config = SimplifierConfig.from_env()
        overrides = {}
        if max_depth is not None:
            overrides["max_depth"] = max_depth
        if simplify_schemas is not None:
            overrides["enabled"] = simplify_schemas
        if overrides:
            # Keyword arguments go through the same validation as the environment
            config = SimplifierConfig.model_validate({**config.model_dump(), **overrides})

        super().__init__(*args, **kwargs)

        self._simplifier_config = config

        if config.enabled:
            # Every transport hands its write stream to the low-level server's run()
            install_schema_simplification(self._mcp_server, config.max_depth)
            logger.debug(f"Schema simplification enabled (max_depth={config.max_depth})")
        else:
            logger.info("Schema simplification disabled, tools/list responses are sent as is")

    @property
    def simplifier_config(self) -> SimplifierConfig:
        """Return the schema simplification settings in use."""
        return self._simplifier_config


def get_mcp_server(name: str, **kwargs) -> CompatFastMCP:
    """Create a CompatFastMCP server, failing early on invalid configuration."""
    try:
        return CompatFastMCP(name, **kwargs)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        logger.error("Please check your SCHEMA_SIMPLIFIER_* environment variables")
        raise


def run_mcp_server(mcp: FastMCP) -> None:
    """Run the server over stdio, or over HTTP when MCP_PORT is set."""
    configure_mcp_logging()

    # Check if HTTP transport is requested via environment variables
    mcp_port = os.environ.get("MCP_PORT")
    mcp_host = os.environ.get("MCP_HOST", "127.0.0.1")

    if mcp_port:
        import uvicorn

        logger.info(f"Starting MCP server with HTTP transport on {mcp_host}:{mcp_port}")
        uvicorn.run(mcp.http_app(), host=mcp_host, port=int(mcp_port))
    else:
        # Use default stdio transport
        logger.info("Starting MCP server with stdio transport (default)")
        mcp.run()
