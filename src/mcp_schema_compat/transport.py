"""Interception of outgoing MCP messages to simplify tools/list schemas.

Clients that can't parse the full JSON-Schema vocabulary choke on the
`inputSchema` of tools/list responses. The helpers here rewrite those schemas
on their way out, right before the message reaches the transport, and leave
every other message untouched.
"""

import logging
from collections.abc import Mapping
from typing import Any

from mcp.shared.message import SessionMessage
from mcp.types import JSONRPCMessage, JSONRPCResponse

from mcp_schema_compat.schema_utils import DEFAULT_MAX_DEPTH, simplify_tool_input_schema

logger = logging.getLogger(__name__)


def is_tools_list_request(message: Any) -> bool:
    """Check if a JSON-RPC message is a tools/list request."""
    if not isinstance(message, Mapping):
        return False
    return message.get("method") == "tools/list"


def is_tools_list_response(message: Any) -> bool:
    """
    Check if a JSON-RPC message is a tools/list response.

    A response has a `result` and no `method`; the result must hold a list of tools.
    """
    if not isinstance(message, Mapping):
        return False

    if "method" in message:
        return False

    result = message.get("result")
    if not isinstance(result, Mapping):
        return False

    return isinstance(result.get("tools"), (list, tuple))


def simplify_tools_list_response(message: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Transform a tools/list response to use simplified input schemas.

    The message, its result and each tool are shallow-copied; only `inputSchema`
    changes. Anything that isn't a tools/list response is returned as is.
    """
    if not is_tools_list_response(message):
        return message

    result = message["result"]
    simplified_tools = [_simplify_tool(tool, max_depth) for tool in result["tools"]]
    logger.debug(f"Simplified input schemas of {len(simplified_tools)} tools")

    return {
        **message,
        "result": {
            **result,
            "tools": simplified_tools,
        },
    }


def _simplify_tool(tool: Any, max_depth: int) -> Any:
    if not isinstance(tool, Mapping):
        return tool

    return {
        **tool,
        "inputSchema": simplify_tool_input_schema(tool.get("inputSchema"), max_depth),
    }


def intercept_message(message: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Return the message to forward to the transport.

    Accepts plain JSON-RPC mappings as well as the MCP SDK's `SessionMessage`
    and `JSONRPCMessage` wrappers. Tools/list responses come back as new
    objects; every other message is returned as the very same object.
    """
    if isinstance(message, SessionMessage):
        rewritten = intercept_message(message.message, max_depth)
        if rewritten is message.message:
            return message
        return SessionMessage(message=rewritten, metadata=message.metadata)

    if isinstance(message, JSONRPCMessage):
        response = message.root
        if not isinstance(response, JSONRPCResponse):
            return message
        envelope = {"result": response.result}
        rewritten = _rewrite(envelope, max_depth)
        if rewritten is envelope:
            return message
        return JSONRPCMessage(response.model_copy(update={"result": rewritten["result"]}))

    return _rewrite(message, max_depth)


def _rewrite(message: Any, max_depth: int) -> Any:
    try:
        return simplify_tools_list_response(message, max_depth)
    except Exception as e:
        logger.exception(f"Failed to simplify tools/list response: {str(e)}")
        # Forward the original message if simplification fails
        return message


def wrap_transport(transport: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Wrap a transport's `send` to simplify tools/list responses.

    The wrapper is installed on the instance only, so each transport (and each
    client session using it) is wrapped independently.

    Args:
        transport: Any object exposing an async `send(message)` method
        max_depth: Nesting limit used when simplifying input schemas

    Returns:
        The same transport, with `send` replaced
    """
    original_send = transport.send

    async def send(message: Any, *args: Any, **kwargs: Any) -> Any:
        return await original_send(intercept_message(message, max_depth), *args, **kwargs)

    transport.send = send
    return transport


class SchemaSimplifyingSendStream:
    """Send stream wrapper that simplifies tools/list responses before sending them."""

    def __init__(self, stream: Any, max_depth: int = DEFAULT_MAX_DEPTH):
        self._stream = stream
        self._max_depth = max_depth

    async def send(self, item: Any) -> None:
        await self._stream.send(intercept_message(item, self._max_depth))

    def send_nowait(self, item: Any) -> None:
        self._stream.send_nowait(intercept_message(item, self._max_depth))

    def clone(self) -> "SchemaSimplifyingSendStream":
        return SchemaSimplifyingSendStream(self._stream.clone(), self._max_depth)

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def __aenter__(self) -> "SchemaSimplifyingSendStream":
        await self._stream.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        return await self._stream.__aexit__(exc_type, exc_value, traceback)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


def install_schema_simplification(server: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Simplify tools/list responses of every session a low-level MCP server runs.

    All MCP transports (stdio, SSE, streamable HTTP and in-memory) hand their
    write stream to `Server.run`, so wrapping `run` on the server instance
    covers each of them. Installing twice on the same server is a no-op.

    Args:
        server: A low-level `mcp.server.lowlevel.Server` instance
        max_depth: Nesting limit used when simplifying input schemas

    Returns:
        The same server
    """
    if getattr(server, "_schema_simplification_installed", False):
        logger.debug("Schema simplification already installed on this server")
        return server

    original_run = server.run

    async def run(read_stream: Any, write_stream: Any, *args: Any, **kwargs: Any) -> Any:
        logger.debug("Starting session with schema simplification")
        return await original_run(
            read_stream,
            SchemaSimplifyingSendStream(write_stream, max_depth),
            *args,
            **kwargs,
        )

    server.run = run
    server._schema_simplification_installed = True
    logger.debug(f"Installed schema simplification (max_depth={max_depth})")
    return server
