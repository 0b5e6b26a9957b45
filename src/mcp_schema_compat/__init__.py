"""JSON-Schema simplification for MCP tools/list responses."""

import logging
import sys

__version__ = "0.1.0"


def configure_mcp_logging(level: int = logging.INFO) -> None:
    """
    Configure logging to use stderr (stdout is reserved for MCP JSON-RPC protocol).

    The mcp and fastmcp loggers are set to WARNING, and so is uvicorn, which
    logs every request at INFO when the server runs over HTTP (MCP_PORT set).
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )
    # Reduce noise from library loggers
    for name in ("mcp", "fastmcp", "uvicorn"):
        logging.getLogger(name).setLevel(logging.WARNING)
