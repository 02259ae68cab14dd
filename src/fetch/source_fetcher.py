"""Source fetch strategies for registry versions.

This module copies one remote source location into a local directory.
Git remotes are cloned with the git executable; ``s3://`` prefixes are
downloaded with boto3.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any, Protocol

from core.config import HubConfig
from core.errors import FetchError, HubDependencyError
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri


class SourceFetcher(Protocol):
    """Fetch contract used by the source materializer."""

    def fetch(self, source_location: str, destination: Path) -> None:
        """Fetch ``source_location`` into a not-yet-existing ``destination``."""
        ...


class GitSourceFetcher:
    """Clone git repositories with the git command line."""

    def __init__(self, git_executable: str = "git") -> None:
        self._git_executable = git_executable

    def fetch(self, source_location: str, destination: Path) -> None:
        """Clone a repository into ``destination``.

        Args:
            source_location: Any location git accepts (URL or local path).
            destination: Target directory, must not exist yet.

        Raises:
            FetchError: If git is unavailable or the clone fails.
        """
        command = [self._git_executable, "clone", "--quiet", source_location, str(destination)]
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as error:
            raise FetchError(
                f"Failed to run '{self._git_executable}' for {source_location}: {error}. "
                "Install git and make sure it is on PATH."
            ) from error
        if completed.returncode != 0:
            diagnostics = (completed.stderr or completed.stdout or "").strip()
            raise FetchError(
                f"git clone of {source_location} exited with status {completed.returncode}: "
                f"{diagnostics or 'no diagnostic output'}"
            )


class S3SourceFetcher:
    """Download every object under an S3 prefix into a local directory."""

    def __init__(self, config: HubConfig) -> None:
        self._config = config
        self._client: Any = None

    def fetch(self, source_location: str, destination: Path) -> None:
        """Download objects under an ``s3://bucket/prefix`` location.

        Args:
            source_location: S3 prefix URI.
            destination: Target directory, must not exist yet.

        Raises:
            FetchError: If listing or downloading fails, or the prefix is empty.
        """
        location = parse_s3_uri(source_location)
        s3_client = self._get_client()
        try:
            object_keys = _list_s3_keys(s3_client, location)
        except Exception as error:
            raise FetchError(
                f"Failed to list objects under {source_location}: {error}. "
                "Check AWS credentials and the source prefix."
            ) from error
        if not object_keys:
            raise FetchError(
                f"No objects found under {source_location}. "
                "Upload the collection files or fix the registry url."
            )
        destination.mkdir(parents=True)
        for key in object_keys:
            local_path = _local_path_for_key(destination, location.prefix, key)
            local_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                s3_client.download_file(location.bucket, key, str(local_path))
            except Exception as error:
                raise FetchError(
                    f"Failed to download s3://{location.bucket}/{key}: {error}. "
                    "Check AWS credentials and retry fetch."
                ) from error

    def _get_client(self) -> Any:
        if self._client is None:
            try:
                self._client = create_s3_client(self._config)
            except HubDependencyError:
                raise
            except Exception as error:
                raise FetchError(
                    f"Failed to create S3 client: {error}. "
                    "Check HUB_S3_PROFILE and HUB_S3_REGION."
                ) from error
        return self._client


class CompositeSourceFetcher:
    """Dispatch fetches to S3 or git based on the location scheme."""

    def __init__(self, git_fetcher: SourceFetcher, s3_fetcher: SourceFetcher) -> None:
        self._git_fetcher = git_fetcher
        self._s3_fetcher = s3_fetcher

    def fetch(self, source_location: str, destination: Path) -> None:
        if is_s3_uri(source_location):
            self._s3_fetcher.fetch(source_location, destination)
            return
        self._git_fetcher.fetch(source_location, destination)


def build_default_fetcher(config: HubConfig) -> SourceFetcher:
    """Build the fetcher used by CLI and SDK runs."""
    return CompositeSourceFetcher(GitSourceFetcher(), S3SourceFetcher(config))


def create_s3_client(config: HubConfig) -> Any:
    """Create boto3 S3 client for source downloads.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        HubDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise HubDependencyError(
            "S3 sources require boto3, but it is not installed. "
            "Install boto3 to fetch s3:// registry urls."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _list_s3_keys(s3_client: Any, location: S3Location) -> list[str]:
    """List object keys under an S3 prefix, skipping folder markers."""
    paginator = s3_client.get_paginator("list_objects_v2")
    pages = paginator.paginate(Bucket=location.bucket, Prefix=location.prefix)
    keys: list[str] = []
    for page in pages:
        for obj in page.get("Contents", []):
            key = obj["Key"]
            if not key.endswith("/"):
                keys.append(key)
    return sorted(keys)


def _local_path_for_key(destination: Path, prefix: str, key: str) -> Path:
    """Map an object key to a path inside ``destination``.

    Raises:
        FetchError: If the key would escape the destination directory.
    """
    relative_key = key[len(prefix):].lstrip("/") or Path(key).name
    local_path = (destination / relative_key).resolve()
    if not local_path.is_relative_to(destination.resolve()):
        raise FetchError(
            f"Refusing to download object key '{key}' outside {destination}."
        )
    return local_path
