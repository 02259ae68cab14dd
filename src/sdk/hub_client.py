"""Python SDK for registry, fetch, and build operations.

This module exposes high-level APIs that wire configuration, fetch
strategies, and the packer into the two pipeline stages.
"""

from __future__ import annotations

from builder.coordinator import build_collections
from builder.latest_alias import publish_latest_aliases
from builder.output_sweep import prune_stale_outputs
from builder.packer import Packer, SubprocessPacker
from core.config import HubConfig
from core.logging_config import get_logger
from core.registry import load_registry
from core.types import FetchReport, PipelineReport, Registry
from fetch.materializer import materialize_sources
from fetch.source_fetcher import SourceFetcher, build_default_fetcher

_LOGGER = get_logger(__name__)


class HubClient:
    """Primary SDK entry point for pipeline workflows."""

    def __init__(
        self,
        config: HubConfig | None = None,
        fetcher: SourceFetcher | None = None,
        packer: Packer | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            fetcher: Optional fetch strategy; git/S3 by default.
            packer: Optional packer; the pinned subprocess packer by default.
        """
        self._config = config or HubConfig.from_env()
        self._fetcher = fetcher or build_default_fetcher(self._config)
        self._packer = packer or SubprocessPacker(command=self._config.packer_command)

    @property
    def config(self) -> HubConfig:
        return self._config

    def load_registry(self) -> Registry:
        """Load the configured registry manifest.

        Raises:
            ManifestNotFoundError: If the manifest is missing.
            ManifestParseError: If the manifest is invalid.
        """
        return load_registry(self._config.registry_file)

    def fetch(self, registry: Registry | None = None) -> FetchReport:
        """Rebuild the collections root from the registry.

        Args:
            registry: Optional preloaded registry.

        Returns:
            Stage-one fetch report.
        """
        active_registry = registry if registry is not None else self.load_registry()
        return materialize_sources(
            active_registry,
            self._config.collections_root,
            self._fetcher,
        )

    def build(self, registry: Registry | None = None) -> PipelineReport:
        """Build canonical documents from the current collections root.

        Args:
            registry: Optional preloaded registry.

        Returns:
            Pipeline report without a fetch section.

        Raises:
            CollectionsRootNotFoundError: If fetch has not run yet.
        """
        active_registry = registry if registry is not None else self.load_registry()
        if active_registry.is_empty:
            return self._empty_report()
        return self._build(active_registry, fetch_report=None)

    def run(self) -> PipelineReport:
        """Run fetch, build, alias publishing, and the stale output sweep.

        Returns:
            Full pipeline report. An empty registry is a no-op run.
        """
        registry = self.load_registry()
        if registry.is_empty:
            return self._empty_report()
        fetch_report = self.fetch(registry)
        return self._build(registry, fetch_report=fetch_report)

    def _build(self, registry: Registry, fetch_report: FetchReport | None) -> PipelineReport:
        batch = build_collections(
            self._config.collections_root,
            self._config.output_root,
            self._packer,
            expected_pairs=registry.fetchable_pairs(),
        )
        aliases = publish_latest_aliases(registry, self._config.output_root, batch.outcomes)
        pruned: tuple[str, ...] = ()
        if self._config.prune_stale_output:
            pruned = prune_stale_outputs(registry, self._config.output_root)
        return PipelineReport(
            registry_empty=registry.is_empty,
            output_root=batch.output_root,
            result=batch.result,
            fetch=fetch_report,
            outcomes=batch.outcomes,
            aliases=aliases,
            pruned=pruned,
        )

    def _empty_report(self) -> PipelineReport:
        _LOGGER.warning("registry_empty", registry_file=str(self._config.registry_file))
        return PipelineReport(registry_empty=True, output_root=str(self._config.output_root))
