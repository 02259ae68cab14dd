"""Stale output removal.

This module deletes output directories for collections and versions that
are no longer declared in the registry. Hidden directories such as ``.git``
and the ``latest`` alias of a live collection are always kept.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from core.constants import LATEST_VERSION_ALIAS
from core.logging_config import get_logger
from core.types import Registry

_LOGGER = get_logger(__name__)


def prune_stale_outputs(registry: Registry, output_root: Path) -> tuple[str, ...]:
    """Remove output directories that do not match the live registry.

    Args:
        registry: Registry used for the run.
        output_root: Root holding canonical documents.

    Returns:
        Removed directories, relative to the output root, in sorted order.
    """
    if not output_root.is_dir():
        return ()
    live_versions = {
        collection.name: {version.name for version in collection.versions}
        | {LATEST_VERSION_ALIAS}
        for collection in registry.collections
    }
    removed: list[str] = []
    for collection_dir in _visible_subdirectories(output_root):
        if collection_dir.name not in live_versions:
            _remove_directory(output_root, collection_dir, removed)
            continue
        for version_dir in _visible_subdirectories(collection_dir):
            if version_dir.name not in live_versions[collection_dir.name]:
                _remove_directory(output_root, version_dir, removed)
    return tuple(removed)


def _visible_subdirectories(directory: Path) -> list[Path]:
    return sorted(
        entry for entry in directory.iterdir() if entry.is_dir() and not entry.name.startswith(".")
    )


def _remove_directory(output_root: Path, directory: Path, removed: list[str]) -> None:
    relative_path = directory.relative_to(output_root).as_posix()
    shutil.rmtree(directory)
    removed.append(relative_path)
    _LOGGER.info("stale_output_removed", path=relative_path)
