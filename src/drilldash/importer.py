"""Load rows for import-mode data sources from local files.

Supported formats are chosen by extension: ``.json`` (a list of objects,
or an object with a ``data`` list), ``.csv`` (header row required) and
``.yaml``/``.yml`` (same shapes as JSON).
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from drilldash.exceptions import ImportFileError
from drilldash.query.models import Row

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".csv", ".yaml", ".yml")


def _rows_from_document(doc: Any, path: Path) -> list[Row]:
    if isinstance(doc, dict) and "data" in doc:
        doc = doc["data"]
    if not isinstance(doc, list):
        raise ImportFileError(str(path), "expected a list of rows or an object with a 'data' list")
    for i, row in enumerate(doc):
        if not isinstance(row, dict):
            raise ImportFileError(str(path), f"row {i} is not an object")
    return doc


def load_rows(path: str | Path) -> list[Row]:
    """Read the rows stored in ``path``.

    CSV cells stay strings; aggregation coerces them to numbers as needed.

    Raises:
        ImportFileError: If the file is missing, unsupported or malformed.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ImportFileError(
            str(path), f"unsupported file type '{suffix or '(none)'}'; use one of {SUPPORTED_SUFFIXES}"
        )

    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ImportFileError(str(path), e.strerror or str(e)) from e

    if suffix == ".csv":
        reader = csv.DictReader(text.splitlines())
        if not reader.fieldnames:
            raise ImportFileError(str(path), "missing header row")
        rows: list[Row] = [dict(r) for r in reader]
    elif suffix == ".json":
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise ImportFileError(str(path), f"invalid JSON: {e.msg} (line {e.lineno})") from e
        rows = _rows_from_document(doc, path)
    else:
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ImportFileError(str(path), f"invalid YAML: {e}") from e
        rows = _rows_from_document(doc, path)

    logger.debug("Loaded %d rows from %s", len(rows), path)
    return rows
