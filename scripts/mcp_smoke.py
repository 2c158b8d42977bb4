from __future__ import annotations

import argparse
import sys

import anyio
from mcp.client.session import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MCP stdio smoke test")
    parser.add_argument("--graph", default="lspgraph.json", help="Path to graph JSON")
    parser.add_argument("--query", default=None, help="Optional search query to run")
    return parser.parse_args()


def _payload(result) -> object:
    if result.structuredContent is not None:
        return result.structuredContent
    return [item.model_dump() for item in result.content]


async def run() -> None:
    args = parse_args()
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "lspgraph.mcp_server", "--graph", args.graph, "--transport", "stdio"],
    )

    async with stdio_client(params) as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()
            tools = await session.list_tools()
            meta = await session.call_tool("metadata")
            stats = await session.call_tool("stats", {"limit": 5})
            search = None
            if args.query:
                search = await session.call_tool("search", {"query": args.query, "limit": 5})

    print({
        "tools": [tool.name for tool in tools.tools],
        "metadata": _payload(meta),
        "stats": _payload(stats),
        "search": _payload(search) if search else None,
    })


if __name__ == "__main__":
    anyio.run(run)
