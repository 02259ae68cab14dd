"""Canonical document persistence.

This module reads the packed intermediate document, converts it, and writes
the canonical document with stable formatting. The intermediate file is
always removed, whether conversion succeeds or fails.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Mapping

from builder.converter import convert_bruno_to_opencollection, count_requests
from core.constants import CANONICAL_JSON_INDENT
from core.errors import ConversionError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

ConvertFn = Callable[[object], Mapping[str, Any]]


def write_canonical_document(
    intermediate_path: Path,
    canonical_path: Path,
    convert: ConvertFn = convert_bruno_to_opencollection,
) -> Path:
    """Convert one intermediate document into a canonical document.

    Args:
        intermediate_path: Packed document produced by the packer.
        canonical_path: Destination of the canonical document.
        convert: Pure conversion routine.

    Returns:
        The written canonical document path.

    Raises:
        ConversionError: If the intermediate document is unreadable,
            malformed, or rejected by the conversion routine.
    """
    try:
        document = read_intermediate_document(intermediate_path)
        canonical_document = _run_conversion(convert, document, intermediate_path)
        write_json_atomic(canonical_path, canonical_document)
    finally:
        remove_intermediate_document(intermediate_path)
    _LOGGER.info(
        "canonical_document_written",
        canonical_path=str(canonical_path),
        request_count=count_requests(canonical_document),
    )
    return canonical_path


def read_intermediate_document(intermediate_path: Path) -> object:
    """Read and parse the packed intermediate JSON document.

    Raises:
        ConversionError: If the file is missing or is not valid JSON.
    """
    try:
        text = intermediate_path.read_text(encoding="utf-8")
    except OSError as error:
        raise ConversionError(
            f"Failed to read packed collection at {intermediate_path}: {error}."
        ) from error
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        raise ConversionError(
            f"Failed to parse packed collection at {intermediate_path}: {error.msg} "
            f"(line {error.lineno}, column {error.colno})."
        ) from error


def render_canonical_json(document: Mapping[str, Any]) -> str:
    """Render a document with sorted keys and fixed indentation."""
    rendered = json.dumps(
        document,
        indent=CANONICAL_JSON_INDENT,
        sort_keys=True,
        ensure_ascii=False,
    )
    return rendered + "\n"


def write_json_atomic(destination: Path, document: Mapping[str, Any]) -> None:
    """Write rendered JSON to a temporary sibling and rename it into place."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    temporary_path = destination.with_name(f".{destination.name}.tmp")
    try:
        temporary_path.write_text(render_canonical_json(document), encoding="utf-8")
        os.replace(temporary_path, destination)
    finally:
        temporary_path.unlink(missing_ok=True)


def remove_intermediate_document(intermediate_path: Path) -> None:
    """Delete the intermediate document, logging instead of raising on failure."""
    try:
        intermediate_path.unlink(missing_ok=True)
    except OSError as error:
        _LOGGER.warning(
            "intermediate_cleanup_failed",
            intermediate_path=str(intermediate_path),
            error=str(error),
        )


def _run_conversion(
    convert: ConvertFn,
    document: object,
    intermediate_path: Path,
) -> Mapping[str, Any]:
    """Invoke the conversion routine, reporting any rejection as ConversionError."""
    try:
        return convert(document)
    except ConversionError:
        raise
    except Exception as error:
        raise ConversionError(
            f"Conversion routine rejected {intermediate_path}: {error}."
        ) from error
