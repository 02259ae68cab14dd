"""Public SDK surface for Collection Hub.

This module provides a stable import path for library users.
It re-exports the primary client, pipeline stages, and typed models.
"""

from __future__ import annotations

from builder.converter import convert_bruno_to_opencollection
from builder.coordinator import BatchCoordinator, build_collections
from builder.packer import Packer, SubprocessPacker
from core.config import HubConfig
from core.registry import load_registry
from core.types import (
    BatchResult,
    CollectionEntry,
    FetchReport,
    PipelineReport,
    Registry,
    VersionEntry,
    VersionOutcome,
)
from fetch.materializer import materialize_sources
from fetch.source_fetcher import SourceFetcher
from sdk.hub_client import HubClient

__all__ = [
    "BatchCoordinator",
    "BatchResult",
    "CollectionEntry",
    "FetchReport",
    "HubClient",
    "HubConfig",
    "Packer",
    "PipelineReport",
    "Registry",
    "SourceFetcher",
    "SubprocessPacker",
    "VersionEntry",
    "VersionOutcome",
    "build_collections",
    "convert_bruno_to_opencollection",
    "load_registry",
    "materialize_sources",
]
