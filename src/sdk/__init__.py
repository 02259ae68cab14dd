"""Python SDK for the collection pipeline.

This package exposes the client used by the CLI and by library callers.
"""
