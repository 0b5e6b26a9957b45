import asyncio
import json
import os

import click
from dotenv import load_dotenv
from fastmcp import Client

from mcp_schema_compat.schema_utils import find_forbidden_constructs

load_dotenv()


async def list_tools(url: str, show_schemas: bool) -> int:
    client = Client(url, auth=os.getenv("MCP_AUTH_TOKEN"))

    problems = 0
    async with client:
        tools = await client.list_tools()
        print(f"{len(tools)} tools listed by {url}")

        for tool in tools:
            findings = find_forbidden_constructs(tool.inputSchema)
            status = "ok" if not findings else f"{len(findings)} problem(s)"
            print(f"- {tool.name}: {status}")
            for finding in findings:
                print(f"    {finding}")
            if show_schemas:
                print(json.dumps(tool.inputSchema, indent=2))
            problems += len(findings)

    return problems


@click.command()
@click.argument("url", default="http://127.0.0.1:8000/mcp")
@click.option("--show-schemas", is_flag=True, help="Print each tool's input schema")
def main(url, show_schemas):
    """List the tools of a running MCP server and check their input schemas."""
    problems = asyncio.run(list_tools(url, show_schemas))
    raise SystemExit(1 if problems else 0)


if __name__ == "__main__":
    main()
