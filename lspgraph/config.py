"""Configuration for the service connection and the parser passes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .hashing import LocalitySensitiveHasher, create_hasher
from .models import DEFAULT_PACKAGE


CONNECTION_VERSION = "1.0.0"
PORT_FILE = Path(".lspgraph") / "port"


@dataclass(frozen=True)
class ServiceConfig:
    base_url: str
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class ParserConfig:
    default_package: str = DEFAULT_PACKAGE
    symbol_batch_size: int = 500
    connection_batch_size: int = 100
    retry_chunk_size: int = 100
    line_limit: int = 500_000
    connection_version: str = CONNECTION_VERSION
    bulk_discovery: bool = True
    inbound_references: bool = False
    create_dangling: bool = True
    max_resolution_iterations: int = 10
    external_markers: tuple[str, ...] = ("node_modules", "site-packages")
    hasher: str = "exact"

    def make_hasher(self) -> LocalitySensitiveHasher:
        return create_hasher(self.hasher)


def resolve_service_config(
    project_root: str | Path | None = None,
    service_url: str | None = None,
) -> ServiceConfig:
    base_url = service_url or os.getenv("LSPGRAPH_SERVICE_URL")
    if not base_url and project_root is not None:
        port_file = Path(project_root) / PORT_FILE
        if port_file.is_file():
            port = port_file.read_text(encoding="utf-8").strip()
            if port:
                base_url = f"http://127.0.0.1:{port}"
    if not base_url:
        raise RuntimeError("LSPGRAPH_SERVICE_URL is not set and no port file was found")

    timeout_seconds = float(os.getenv("LSPGRAPH_TIMEOUT_SECONDS", "60"))
    return ServiceConfig(base_url=base_url, timeout_seconds=timeout_seconds)


def resolve_parser_config() -> ParserConfig:
    defaults = ParserConfig()
    return ParserConfig(
        line_limit=int(os.getenv("LSPGRAPH_LINE_LIMIT", str(defaults.line_limit))),
        inbound_references=os.getenv("LSPGRAPH_INBOUND_REFERENCES", "").lower()
        in {"1", "true", "yes"},
        hasher=os.getenv("LSPGRAPH_HASHER") or defaults.hasher,
    )
