"""End-to-end pipeline for building a graph from a project."""

from __future__ import annotations

import argparse
import logging
from contextlib import closing
from pathlib import Path

from .client import HttpServiceClient, ServiceClient
from .config import ParserConfig, resolve_parser_config, resolve_service_config
from .graph import Graph
from .parser import LspGraphParser
from .progress import ServiceReporter
from .storage import save_graph


logger = logging.getLogger(__name__)


def create_service_client(root: str | Path, service_url: str | None = None) -> ServiceClient:
    return HttpServiceClient(resolve_service_config(root, service_url))


def build_graph_from_root(
    root: str | Path,
    output_path: str | Path | None = None,
    client: ServiceClient | None = None,
    max_files: int | None = None,
    config: ParserConfig | None = None,
) -> Graph:
    root_path = Path(root)
    if client is None:
        with closing(create_service_client(root_path)) as owned:
            return build_graph_from_root(root_path, output_path, owned, max_files, config)

    parser = LspGraphParser(
        root_path,
        client,
        config=config or resolve_parser_config(),
        reporter=ServiceReporter(client),
    )
    graph = parser.parse_project(max_files=max_files)

    if output_path:
        save_graph(graph, output_path)
        logger.info("Wrote graph to %s", output_path)

    return graph


def main() -> int:
    parser = argparse.ArgumentParser(description="Build a knowledge graph from a project")
    parser.add_argument("--root", default=".", help="Root directory of the project")
    parser.add_argument("--output", default="lspgraph.json", help="Output JSON path")
    parser.add_argument("--service-url", default=None, help="Code-intelligence service URL")
    parser.add_argument(
        "--max-files",
        type=int,
        default=None,
        help="Limit number of files parsed (for quick checks)",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    root = Path(args.root)
    if not root.is_dir():
        raise SystemExit(f"Project root not found: {root}")

    with closing(create_service_client(root, args.service_url)) as client:
        graph = build_graph_from_root(root, args.output, client=client, max_files=args.max_files)
    print(len(graph.nodes), len(graph.connections))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
