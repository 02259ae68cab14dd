"""Typed registry manifest parsing.

This module loads and validates the YAML registry that declares which
collections and versions the pipeline materializes. Only the fields the
pipeline reads are type-checked; catalog metadata such as ``full_name`` and
``description`` is accepted and ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.errors import ManifestNotFoundError, ManifestParseError
from core.types import CollectionEntry, Registry, VersionEntry


def load_registry(manifest_path: str | Path) -> Registry:
    """Load and validate a YAML registry manifest from disk.

    Args:
        manifest_path: File path to the registry manifest.

    Returns:
        Fully validated registry. A manifest without collections yields an
        empty registry.

    Raises:
        ManifestNotFoundError: If the manifest path does not resolve.
        ManifestParseError: If YAML or schema checks fail.
    """
    manifest_file = Path(manifest_path).expanduser().resolve()
    payload = _load_yaml_payload(manifest_file)
    if payload is None:
        return Registry()
    root_mapping = _expect_mapping(payload, "registry root")
    raw_collections = root_mapping.get("collections")
    if raw_collections is None:
        return Registry()
    collection_rows = _expect_sequence(raw_collections, "registry collections")
    collections = tuple(
        _parse_collection(row, index) for index, row in enumerate(collection_rows)
    )
    _ensure_unique([collection.name for collection in collections], "collection", "registry")
    return Registry(collections=collections)


def _load_yaml_payload(manifest_file: Path) -> object:
    if not manifest_file.is_file():
        raise ManifestNotFoundError(
            f"Registry manifest does not exist at {manifest_file}. "
            "Provide a valid registry.yml path."
        )
    try:
        text = manifest_file.read_text(encoding="utf-8")
    except OSError as error:
        raise ManifestNotFoundError(
            f"Failed to read registry manifest at {manifest_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    return _parse_yaml_text(text, str(manifest_file))


def _parse_yaml_text(text: str, source_name: str) -> object:
    try:
        return cast(object, yaml.safe_load(text))
    except yaml.YAMLError as error:
        raise ManifestParseError(
            f"Failed to parse YAML registry at {source_name}: {error}. "
            "Fix YAML syntax and retry."
        ) from error


def _parse_collection(value: object, index: int) -> CollectionEntry:
    context = f"registry collection #{index + 1}"
    collection_mapping = _expect_mapping(value, context)
    name = _required_segment(collection_mapping, "name", context)
    raw_versions = collection_mapping.get("versions")
    if raw_versions is None:
        return CollectionEntry(name=name)
    version_rows = _expect_sequence(raw_versions, f"versions of collection '{name}'")
    versions = tuple(
        _parse_version(row, name, version_index)
        for version_index, row in enumerate(version_rows)
    )
    _ensure_unique([version.name for version in versions], "version", f"collection '{name}'")
    return CollectionEntry(name=name, versions=versions)


def _parse_version(value: object, collection_name: str, index: int) -> VersionEntry:
    context = f"version #{index + 1} of collection '{collection_name}'"
    version_mapping = _expect_mapping(value, context)
    name = _required_segment(version_mapping, "name", context)
    source_location = _optional_string(version_mapping, "url", context)
    return VersionEntry(name=name, source_location=source_location)


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise ManifestParseError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise ManifestParseError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise ManifestParseError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _required_segment(mapping: Mapping[str, object], field_name: str, context: str) -> str:
    raw_value = mapping.get(field_name)
    if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
        raw_value = str(raw_value)
    if not isinstance(raw_value, str) or not raw_value.strip():
        raise ManifestParseError(
            f"Invalid {context}: field '{field_name}' must be a non-empty string."
        )
    segment = raw_value.strip()
    if segment in (".", "..") or "/" in segment or "\\" in segment:
        raise ManifestParseError(
            f"Invalid {context}: '{segment}' cannot be used as a directory name. "
            "Remove path separators and dot segments."
        )
    return segment


def _optional_string(mapping: Mapping[str, object], field_name: str, context: str) -> str | None:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return None
    if isinstance(raw_value, str):
        normalized_value = raw_value.strip()
        return normalized_value if normalized_value else None
    raise ManifestParseError(
        f"Invalid {context}: field '{field_name}' must be a string when provided."
    )


def _ensure_unique(names: list[str], kind: str, context: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ManifestParseError(
                f"Duplicate {kind} name '{name}' in {context}. "
                f"{kind.capitalize()} names must be unique."
            )
        seen.add(name)
