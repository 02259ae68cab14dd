"""Latest-version alias publishing.

The catalog viewer reads ``<output>/<collection>/latest/opencollection.json``.
This module copies one successfully built version of each collection to that
stable path.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Iterable

from core.constants import CANONICAL_FILE_NAME, LATEST_VERSION_ALIAS
from core.logging_config import get_logger
from core.types import Registry, VersionOutcome

_LOGGER = get_logger(__name__)


def publish_latest_aliases(
    registry: Registry,
    output_root: Path,
    outcomes: Iterable[VersionOutcome],
) -> tuple[tuple[str, str], ...]:
    """Publish a ``latest`` canonical document for each registry collection.

    A version literally named ``latest`` that built successfully already is the
    alias. Otherwise the first successful version in registry order is copied.

    Args:
        registry: Registry used for the run.
        output_root: Root holding canonical documents.
        outcomes: Build outcomes of the run.

    Returns:
        (collection, source version) pairs now served as latest.
    """
    succeeded = {
        (outcome.collection_name, outcome.version_name)
        for outcome in outcomes
        if outcome.succeeded
    }
    published: list[tuple[str, str]] = []
    for collection in registry.collections:
        candidates = [
            version.name
            for version in collection.versions
            if (collection.name, version.name) in succeeded
        ]
        if not candidates:
            _warn_alias_unavailable(output_root, collection.name)
            continue
        if LATEST_VERSION_ALIAS in candidates:
            published.append((collection.name, LATEST_VERSION_ALIAS))
            continue
        source_version = candidates[0]
        _copy_canonical_document(output_root, collection.name, source_version)
        published.append((collection.name, source_version))
    return tuple(published)


def _warn_alias_unavailable(output_root: Path, collection_name: str) -> None:
    """Log a missing alias, flagging a previous run's alias that is now stale."""
    alias_path = output_root / collection_name / LATEST_VERSION_ALIAS / CANONICAL_FILE_NAME
    if alias_path.is_file():
        _LOGGER.warning(
            "latest_alias_stale",
            collection=collection_name,
            alias_path=str(alias_path),
        )
        return
    _LOGGER.warning("latest_alias_unavailable", collection=collection_name)


def _copy_canonical_document(output_root: Path, collection_name: str, version_name: str) -> None:
    source_path = output_root / collection_name / version_name / CANONICAL_FILE_NAME
    alias_dir = output_root / collection_name / LATEST_VERSION_ALIAS
    alias_dir.mkdir(parents=True, exist_ok=True)
    alias_path = alias_dir / CANONICAL_FILE_NAME
    temporary_path = alias_dir / f".{CANONICAL_FILE_NAME}.tmp"
    shutil.copyfile(source_path, temporary_path)
    os.replace(temporary_path, alias_path)
    _LOGGER.info(
        "latest_alias_published",
        collection=collection_name,
        source_version=version_name,
        alias_path=str(alias_path),
    )
