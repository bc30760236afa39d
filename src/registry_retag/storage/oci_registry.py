"""
OCI Registry protocol definition.

Defines the manifest operations the retag pipeline needs. All operations are
explicitly scoped to a host and repository, which reflects how the OCI
Distribution API addresses manifests.
"""
from __future__ import annotations

import threading
from typing import Optional, Protocol, runtime_checkable

from ..models import FetchedManifest


@runtime_checkable
class OciRegistry(Protocol):
    """Manifest fetch and publish against an OCI Distribution API."""

    def get_manifest(self, host: str, repository: str, tag: str,
                     cancel: Optional[threading.Event] = None) -> FetchedManifest:
        """
        GET manifest content.

        Args:
            host: Registry host (e.g., "localhost:5000", "ghcr.io")
            repository: Repository path (e.g., "library/busybox")
            tag: Tag to read
            cancel: Optional cancellation event

        Returns:
            Raw manifest bytes with their declared media type

        Raises:
            OciNotFound: If the tag doesn't exist
            OciInvalidMediaType: If the manifest has no mediaType
            OciHTTPStatusError: For any other unexpected status
            OciTransportError: For network or decode failures
        """
        ...

    def put_manifest(self, host: str, repository: str, tag: str, payload: bytes,
                     media_type: str, cancel: Optional[threading.Event] = None) -> None:
        """
        PUT manifest bytes under ``tag`` with an explicit media type.

        Raises:
            OciHTTPStatusError: If the registry doesn't answer 201 Created
            OciTransportError: For network failures
        """
        ...


__all__ = ["OciRegistry"]
