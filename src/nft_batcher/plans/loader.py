"""
Batch input loaders.

Reads operation requests from CSV and JSON files. Loading never validates
values; a malformed cell is passed through so that only its own row fails
when the batch is built.
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from nft_batcher.core.catalog import DEFAULT_CATALOG, ArgType, CatalogEntry, OperationCatalog
from nft_batcher.core.request import OperationRequest

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]

OPERATION_COLUMN = "operation"


class InputError(ValueError):
    """The input file cannot be read as a batch at all."""


def _convert(arg_type: ArgType, value: str) -> Any:
    """Convert a cell to the catalog type, leaving unparsable text as-is."""
    text = value.strip()
    if arg_type == ArgType.UINT:
        try:
            return int(text)
        except ValueError:
            return text
    if arg_type == ArgType.BOOL:
        lowered = text.lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        return text
    return text


def _arguments(
    entry: Optional[CatalogEntry],
    values: Mapping[str, Any],
    defaults: Mapping[str, Any],
) -> Dict[str, Any]:
    """Order arguments by the catalog and fill in defaults."""
    if entry is None:
        return {name: value for name, value in values.items() if value is not None}

    arguments = {}
    for spec in entry.args:
        if spec.name in values and values[spec.name] is not None:
            arguments[spec.name] = values[spec.name]
        elif spec.name in defaults:
            arguments[spec.name] = defaults[spec.name]
    return arguments


def load_csv(
    path: PathLike,
    kind: Optional[str] = None,
    defaults: Optional[Mapping[str, Any]] = None,
    catalog: Optional[OperationCatalog] = None,
) -> List[OperationRequest]:
    """
    Load requests from a CSV file with a header row.

    With ``kind`` every row is that operation and the columns are its
    argument names (e.g. ``nft_contract,token_id,price`` for
    create-listing). Without it, each row names its kind in an
    ``operation`` column. Columns that are not arguments of the row's
    operation are ignored; empty cells count as missing.

    Args:
        path: CSV file path
        kind: Fixed operation kind for every row
        defaults: Values for arguments missing from a row
        catalog: Operation catalog (uses the default if not provided)

    Returns:
        One request per data row, in file order

    Raises:
        InputError: If the file has no header or no operation column
    """
    path = Path(path)
    catalog = catalog or DEFAULT_CATALOG
    defaults = defaults or {}

    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise InputError(f"{path}: missing header row")

        fieldnames = [name.strip() for name in reader.fieldnames]
        reader.fieldnames = fieldnames
        if kind is None and OPERATION_COLUMN not in fieldnames:
            raise InputError(f"{path}: no '{OPERATION_COLUMN}' column and no operation given")

        requests = []
        for row in reader:
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue

            row_kind = kind or (row.get(OPERATION_COLUMN) or "").strip()
            entry = catalog.get(row_kind)

            values: Dict[str, Any] = {}
            for name, value in row.items():
                if name == OPERATION_COLUMN or name is None or value is None or not value.strip():
                    continue
                spec = entry.get_arg(name) if entry else None
                if entry is not None and spec is None:
                    continue
                values[name] = _convert(spec.arg_type, value) if spec else value.strip()

            requests.append(OperationRequest(
                kind=row_kind,
                args=_arguments(entry, values, defaults),
                source=f"{path.name}:{reader.line_num}",
            ))

    logger.info("csv_loaded", path=str(path), kind=kind, requests=len(requests))
    return requests


def load_json(
    path: PathLike,
    defaults: Optional[Mapping[str, Any]] = None,
    catalog: Optional[OperationCatalog] = None,
) -> List[OperationRequest]:
    """
    Load requests from a JSON file.

    The document is a list (or ``{"operations": [...]}``) of
    ``{"operation": kind, "args": {...}}`` objects.

    Raises:
        InputError: If the document does not have that shape
    """
    path = Path(path)
    catalog = catalog or DEFAULT_CATALOG
    defaults = defaults or {}

    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputError(f"{path}: invalid JSON: {e}") from e

    if isinstance(document, dict):
        document = document.get("operations")
    if not isinstance(document, list):
        raise InputError(f"{path}: expected a list of operations")

    requests = []
    for i, item in enumerate(document):
        if not isinstance(item, dict):
            raise InputError(f"{path}: operation {i} is not an object")

        kind = str(item.get(OPERATION_COLUMN, ""))
        args = item.get("args") or {}
        if not isinstance(args, dict):
            raise InputError(f"{path}: operation {i} has non-object args")

        requests.append(OperationRequest(
            kind=kind,
            args=_arguments(catalog.get(kind), args, defaults),
            source=f"{path.name}[{i}]",
        ))

    logger.info("json_loaded", path=str(path), requests=len(requests))
    return requests


def load_requests(
    path: PathLike,
    kind: Optional[str] = None,
    defaults: Optional[Mapping[str, Any]] = None,
    catalog: Optional[OperationCatalog] = None,
) -> List[OperationRequest]:
    """Load a CSV or JSON batch file, chosen by extension."""
    path = Path(path)
    if not path.exists():
        raise InputError(f"{path}: file not found")

    if path.suffix.lower() == ".json":
        if kind is not None:
            raise InputError("a fixed operation kind only applies to CSV input")
        return load_json(path, defaults=defaults, catalog=catalog)
    return load_csv(path, kind=kind, defaults=defaults, catalog=catalog)
