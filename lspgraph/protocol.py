"""Commands sent to the code-intelligence service and decoders for its answers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import Location, Position, Range, SymbolKind


DOCUMENT_SYMBOLS = "vscode.executeDocumentSymbolProvider"
DEFINITION = "vscode.executeDefinitionProvider"
REFERENCES = "vscode.executeReferenceProvider"
PROGRESS_UPDATE = "progressUpdate"
SHOW_WARNING = "showWarningMessage"
SHOW_ERROR = "showErrorMessage"


class MalformedResponseError(ValueError):
    pass


@dataclass(frozen=True)
class Command:
    command: str
    arguments: tuple[Any, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {"command": self.command, "arguments": list(self.arguments)}


def document_symbols(absolute_path: str) -> Command:
    return Command(DOCUMENT_SYMBOLS, (absolute_path,))


def definition(absolute_path: str, position: Position) -> Command:
    return Command(DEFINITION, (Location(absolute_path, Range(position, position)).to_dict(),))


def references(absolute_path: str, span: Range) -> Command:
    return Command(REFERENCES, (Location(absolute_path, span).to_dict(),))


def progress_update(percent: int) -> Command:
    return Command(PROGRESS_UPDATE, (percent,))


def show_warning(message: str) -> Command:
    return Command(SHOW_WARNING, (message,))


def show_error(message: str) -> Command:
    return Command(SHOW_ERROR, (message,))


@dataclass(frozen=True)
class DocumentSymbol:
    name: str
    kind: SymbolKind | None
    range: Range
    selection_range: Range
    detail: str = ""
    children: tuple[DocumentSymbol, ...] = ()

    def flatten(self) -> list[DocumentSymbol]:
        flat = [self]
        for child in self.children:
            flat.extend(child.flatten())
        return flat


@dataclass(frozen=True)
class SymbolInformation:
    name: str
    kind: SymbolKind | None
    location: Location
    container_name: str = ""


@dataclass(frozen=True)
class DocumentSymbolResponse:
    symbols: tuple[DocumentSymbol, ...]


@dataclass(frozen=True)
class SymbolInformationResponse:
    symbols: tuple[SymbolInformation, ...]


@dataclass(frozen=True)
class LocationResponse:
    locations: tuple[Location, ...]


@dataclass(frozen=True)
class BatchLocationsResponse:
    locations: tuple[tuple[Location, ...], ...]


Response = (
    DocumentSymbolResponse | SymbolInformationResponse | LocationResponse | BatchLocationsResponse
)


def response_locations(response: Response) -> list[Location]:
    if isinstance(response, LocationResponse):
        return list(response.locations)
    if isinstance(response, BatchLocationsResponse):
        return [location for group in response.locations for location in group]
    return []


def decode_response(payload: Any) -> Response:
    """Deduce the response type from its field names."""
    try:
        if isinstance(payload, list):
            return LocationResponse(tuple(_location(item) for item in payload))
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Unexpected response payload: {payload!r}")
        if "documentSymbols" in payload:
            return DocumentSymbolResponse(
                tuple(_document_symbol(item) for item in payload["documentSymbols"] or ())
            )
        if "symbolMatches" in payload:
            return SymbolInformationResponse(
                tuple(_symbol_information(item) for item in payload["symbolMatches"] or ())
            )
        if "locationsList" in payload:
            return BatchLocationsResponse(
                tuple(
                    tuple(_location(item) for item in group or ())
                    for group in payload["locationsList"] or ()
                )
            )
        if "locations" in payload:
            return LocationResponse(
                tuple(_location(item) for item in payload["locations"] or ())
            )
    except MalformedResponseError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(f"Could not decode response: {exc}") from exc
    raise MalformedResponseError(f"Unknown response fields: {sorted(payload)}")


def decode_kind(value: Any) -> SymbolKind | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return SymbolKind(value)
        except ValueError:
            return None
    if isinstance(value, str):
        key = "".join(
            "_" + char if char.isupper() and idx else char for idx, char in enumerate(value)
        ).upper()
        return SymbolKind.__members__.get(key)
    return None


def _location(data: dict[str, Any]) -> Location:
    return Location.from_dict(data)


def _document_symbol(data: dict[str, Any]) -> DocumentSymbol:
    full = Range.from_dict(data["range"])
    selection = data.get("selectionRange")
    return DocumentSymbol(
        name=str(data["name"]),
        kind=decode_kind(data.get("kind")),
        range=full,
        selection_range=Range.from_dict(selection) if selection else full,
        detail=data.get("detail") or "",
        children=tuple(_document_symbol(child) for child in data.get("children") or ()),
    )


def _symbol_information(data: dict[str, Any]) -> SymbolInformation:
    return SymbolInformation(
        name=str(data["name"]),
        kind=decode_kind(data.get("kind")),
        location=_location(data["location"]),
        container_name=data.get("containerName") or "",
    )
