from __future__ import annotations

import json

import httpx
import pytest

from lspgraph.client import HttpServiceClient, ServiceError
from lspgraph.config import ServiceConfig
from lspgraph.models import Position, Range, SymbolKind
from lspgraph.protocol import (
    DEFINITION,
    BatchLocationsResponse,
    DocumentSymbolResponse,
    LocationResponse,
    MalformedResponseError,
    SymbolInformationResponse,
    decode_response,
    definition,
    document_symbols,
    progress_update,
    response_locations,
)


RANGE = {"startLine": 1, "startCharacter": 2, "endLine": 3, "endCharacter": 4}


def test_decode_nested_document_symbols():
    payload = {
        "documentSymbols": [
            {
                "name": "Foo",
                "detail": "",
                "kind": 4,
                "range": RANGE,
                "selectionRange": RANGE,
                "children": [
                    {"name": "bar", "kind": "Method", "range": RANGE, "children": []},
                    {"name": "x", "kind": "EnumMember", "range": RANGE},
                ],
            }
        ]
    }

    response = decode_response(payload)

    assert isinstance(response, DocumentSymbolResponse)
    flat = response.symbols[0].flatten()
    assert [symbol.name for symbol in flat] == ["Foo", "bar", "x"]
    assert [symbol.kind for symbol in flat] == [
        SymbolKind.CLASS,
        SymbolKind.METHOD,
        SymbolKind.ENUM_MEMBER,
    ]
    assert flat[1].selection_range == Range.of(1, 2, 3, 4)


def test_decode_by_field_names():
    location = {"filePath": "/p/a.kt", "range": RANGE}

    matches = decode_response(
        {"symbolMatches": [{"name": "Foo", "kind": 4, "location": location}]}
    )
    locations = decode_response({"locations": [location]})
    grouped = decode_response({"locationsList": [[location], [location, location]]})

    assert isinstance(matches, SymbolInformationResponse)
    assert isinstance(locations, LocationResponse)
    assert isinstance(grouped, BatchLocationsResponse)
    assert len(response_locations(grouped)) == 3
    assert response_locations(locations)[0].file_path == "/p/a.kt"


def test_unknown_kind_decodes_to_none():
    response = decode_response(
        {"documentSymbols": [{"name": "x", "kind": 99, "range": RANGE}]}
    )

    assert response.symbols[0].kind is None


@pytest.mark.parametrize(
    "payload",
    [{"unexpected": []}, "text", {"locations": [{"filePath": "/a"}]}],
)
def test_malformed_payloads_raise(payload):
    with pytest.raises(MalformedResponseError):
        decode_response(payload)


def test_definition_command_payload():
    command = definition("/p/a.kt", Position(3, 7))

    assert command.to_payload() == {
        "command": DEFINITION,
        "arguments": [
            {
                "filePath": "/p/a.kt",
                "range": {"startLine": 3, "startCharacter": 7, "endLine": 3, "endCharacter": 7},
            }
        ],
    }


def test_http_client_round_trip():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        if request.url.path == "/notify":
            return httpx.Response(200, json={})
        return httpx.Response(200, json={"commands": [{"locations": []}]})

    client = HttpServiceClient(
        ServiceConfig(base_url="http://service.test"), transport=httpx.MockTransport(handler)
    )
    result = client.send([document_symbols("/p/a.kt")])
    client.notify(progress_update(40))
    client.close()

    assert result == [{"locations": []}]
    assert seen[0][0] == "/commands"
    assert seen[0][1]["commands"][0]["arguments"] == ["/p/a.kt"]
    assert seen[1] == ("/notify", {"command": "progressUpdate", "arguments": [40]})


def test_http_client_raises_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    client = HttpServiceClient(
        ServiceConfig(base_url="http://service.test"), transport=httpx.MockTransport(handler)
    )

    with pytest.raises(ServiceError) as excinfo:
        client.send([document_symbols("/p/a.kt")])

    assert excinfo.value.status_code == 500
    assert excinfo.value.payload == {"error": "boom"}


def test_http_client_rejects_missing_commands():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": []})

    client = HttpServiceClient(
        ServiceConfig(base_url="http://service.test"), transport=httpx.MockTransport(handler)
    )

    with pytest.raises(MalformedResponseError):
        client.send([document_symbols("/p/a.kt")])
