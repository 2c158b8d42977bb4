"""MCP server exposing graph query tools."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .mcp_graph import GraphService


def create_server(service: GraphService) -> FastMCP:
    mcp = FastMCP(
        name="LSP Knowledge Graph",
        instructions=(
            "Query the project knowledge graph. Use search() to find nodes, "
            "node_details() to inspect one, then get_dependencies(), "
            "impact_analysis(), or graph_path() to explore relationships."
        ),
        json_response=True,
    )

    @mcp.tool()
    def metadata() -> dict:
        """Return snapshot metadata about the loaded graph."""
        return service.metadata()

    @mcp.tool()
    def search(
        query: str,
        node_types: list[str] | None = None,
        limit: int = 20,
    ) -> dict:
        """Search nodes by partial id, name, path, or signature."""
        return service.search(query, node_types=node_types, limit=limit)

    @mcp.tool()
    def node_details(query: str) -> dict:
        """Return a node with its description, children, and connections."""
        return service.node_details(query)

    @mcp.tool()
    def get_dependencies(
        query: str,
        direction: str = "both",
        hops: int = 1,
        edge_types: list[str] | None = None,
        limit: int = 200,
    ) -> dict:
        """Return incoming/outgoing connections around a node."""
        return service.get_dependencies(
            query,
            direction=direction,
            hops=hops,
            edge_types=edge_types,
            limit=limit,
        )

    @mcp.tool()
    def impact_analysis(
        query: str,
        hops: int = 2,
        edge_types: list[str] | None = None,
        limit: int = 200,
    ) -> dict:
        """Return nodes that depend on a node, transitively."""
        return service.impact_analysis(query, hops=hops, edge_types=edge_types, limit=limit)

    @mcp.tool()
    def graph_path(
        source: str,
        target: str,
        edge_types: list[str] | None = None,
        directed: bool = False,
    ) -> dict:
        """Find the shortest path between two nodes."""
        return service.graph_path(source, target, edge_types=edge_types, directed=directed)

    @mcp.tool()
    def stats(edge_types: list[str] | None = None, limit: int = 10) -> dict:
        """Return node/edge counts, hubs, clusters, and directory breakdowns."""
        return service.stats(edge_types=edge_types, limit=limit)

    return mcp


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run MCP server for a knowledge graph")
    parser.add_argument("--graph", default="lspgraph.json", help="Path to graph JSON")
    parser.add_argument(
        "--transport",
        default="stdio",
        choices=["stdio", "sse", "streamable-http"],
        help="Transport type",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host for HTTP transports")
    parser.add_argument("--port", type=int, default=8001, help="Port for HTTP transports")
    parser.add_argument("--validate", action="store_true", help="Load the graph and exit")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper())
    graph_path = Path(args.graph)
    if not graph_path.exists():
        raise SystemExit(f"Graph not found: {graph_path}")

    service = GraphService.from_json(graph_path)

    if args.validate:
        print(service.metadata())
        return 0

    mcp = create_server(service)
    mcp.settings.host = args.host
    mcp.settings.port = args.port
    mcp.run(transport=args.transport)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
