"""Source materialization for the fetch stage.

This module rebuilds the collections root from the registry on every run.
Each version is fetched into a temporary sibling directory and renamed into
place only when the fetch succeeds, so the tree never holds partial copies.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from core.constants import PARTIAL_DIR_SUFFIX
from core.errors import FetchError
from core.logging_config import get_logger
from core.types import CollectionEntry, FetchReport, Registry, VersionEntry
from fetch.source_fetcher import SourceFetcher

_LOGGER = get_logger(__name__)


def materialize_sources(
    registry: Registry,
    collections_root: Path,
    fetcher: SourceFetcher,
) -> FetchReport:
    """Delete and rebuild the collections root from the registry.

    Args:
        registry: Loaded registry.
        collections_root: Root directory owned by the fetch stage.
        fetcher: Strategy used to copy each source location.

    Returns:
        Materialized, skipped, and failed (collection, version) pairs.
    """
    _reset_collections_root(collections_root)
    materialized: list[tuple[str, str]] = []
    skipped: list[tuple[str, str]] = []
    failed: list[tuple[str, str]] = []
    for collection in registry.collections:
        if not collection.versions:
            _LOGGER.warning("collection_has_no_versions", collection=collection.name)
            continue
        _LOGGER.info(
            "collection_fetch_started",
            collection=collection.name,
            version_count=len(collection.versions),
        )
        for version in collection.versions:
            pair = (collection.name, version.name)
            if not version.source_location:
                _LOGGER.warning(
                    "version_has_no_url",
                    collection=collection.name,
                    version=version.name,
                )
                skipped.append(pair)
                continue
            if _materialize_version(collections_root, collection, version, fetcher):
                materialized.append(pair)
            else:
                failed.append(pair)
    report = FetchReport(
        materialized=tuple(materialized),
        skipped=tuple(skipped),
        failed=tuple(failed),
    )
    _LOGGER.info(
        "fetch_completed",
        collections_root=str(collections_root),
        materialized_count=len(report.materialized),
        skipped_count=len(report.skipped),
        failed_count=len(report.failed),
    )
    return report


def _reset_collections_root(collections_root: Path) -> None:
    if collections_root.exists():
        _LOGGER.info("collections_root_removed", collections_root=str(collections_root))
        shutil.rmtree(collections_root)
    collections_root.mkdir(parents=True)


def _materialize_version(
    collections_root: Path,
    collection: CollectionEntry,
    version: VersionEntry,
    fetcher: SourceFetcher,
) -> bool:
    """Fetch one version into place, returning whether it succeeded."""
    source_location = str(version.source_location)
    collection_dir = collections_root / collection.name
    collection_dir.mkdir(exist_ok=True)
    version_dir = collection_dir / version.name
    partial_dir = collection_dir / f".{version.name}{PARTIAL_DIR_SUFFIX}"
    _LOGGER.info(
        "version_fetch_started",
        collection=collection.name,
        version=version.name,
        source_location=source_location,
    )
    try:
        fetcher.fetch(source_location, partial_dir)
        if not partial_dir.is_dir():
            raise FetchError(
                f"Fetch of {source_location} completed without creating {partial_dir}."
            )
        partial_dir.rename(version_dir)
    except Exception as error:
        shutil.rmtree(partial_dir, ignore_errors=True)
        _LOGGER.error(
            "version_fetch_failed",
            collection=collection.name,
            version=version.name,
            source_location=source_location,
            error=str(error),
        )
        return False
    _LOGGER.info("version_fetched", collection=collection.name, version=version.name)
    return True
