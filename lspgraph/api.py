"""FastAPI service to build and update graph JSON for a project on disk."""

from __future__ import annotations

import argparse
from contextlib import closing
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import pipeline
from .client import ServiceClient, ServiceError
from .config import resolve_parser_config
from .parser import LspGraphParser
from .progress import ServiceReporter
from .storage import graph_from_json, graph_to_json
from .updater import GraphUpdater


app = FastAPI(title="LSP Graph API")


class UpdateRequest(BaseModel):
    root: str
    graph: dict[str, Any]
    service_url: str | None = None
    added: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    changed: list[str] = Field(default_factory=list)


def _project_root(root: str) -> Path:
    path = Path(root)
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Project root not found: {root}")
    return path


def _client(root: Path, service_url: str | None) -> ServiceClient:
    try:
        return pipeline.create_service_client(root, service_url)
    except RuntimeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/parse")
def parse_project(
    root: str = Query(...),
    service_url: str | None = Query(default=None),
    max_files: int | None = None,
) -> JSONResponse:
    project_root = _project_root(root)
    try:
        with closing(_client(project_root, service_url)) as client:
            graph = pipeline.build_graph_from_root(
                project_root, client=client, max_files=max_files
            )
    except ServiceError as exc:
        raise HTTPException(
            status_code=502, detail=f"Code-intelligence service failed ({exc.status_code})."
        ) from exc
    return JSONResponse(content=graph_to_json(graph))


@app.post("/update")
def update_graph(request: UpdateRequest) -> JSONResponse:
    project_root = _project_root(request.root)
    try:
        graph = graph_from_json(request.graph)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid graph JSON.") from exc

    try:
        with closing(_client(project_root, request.service_url)) as client:
            parser = LspGraphParser(
                project_root,
                client,
                config=resolve_parser_config(),
                reporter=ServiceReporter(client),
            )
            updater = GraphUpdater(parser)
            if request.deleted:
                graph = updater.delete_files(request.deleted, graph)
            if request.changed:
                graph = updater.reparse_files(request.changed, graph)
            if request.added:
                graph = updater.add_files(request.added, graph)
    except ServiceError as exc:
        raise HTTPException(
            status_code=502, detail=f"Code-intelligence service failed ({exc.status_code})."
        ) from exc
    return JSONResponse(content=graph_to_json(graph))


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the LSP graph API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    parser.add_argument("--port", type=int, default=9000, help="Bind port")
    args = parser.parse_args()

    import uvicorn

    uvicorn.run("lspgraph.api:app", host=args.host, port=args.port, reload=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
