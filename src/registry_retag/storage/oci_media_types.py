"""
OCI media types and constants.

Single source of truth for the manifest media types the retag client speaks.
"""
from __future__ import annotations

# Single-platform image manifests
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"

# Manifest types we ask the registry for, in order of preference
ACCEPTED_MANIFEST_TYPES = [
    OCI_IMAGE_MANIFEST,
    DOCKER_MANIFEST_V2,
]

ACCEPT_HEADER = ", ".join(ACCEPTED_MANIFEST_TYPES)

# Registry response header carrying the canonical manifest digest
DOCKER_CONTENT_DIGEST = "Docker-Content-Digest"


def is_recognized_manifest_type(media_type: str) -> bool:
    """Return True if ``media_type`` is one of the accepted manifest types."""
    return media_type in ACCEPTED_MANIFEST_TYPES


__all__ = [
    "OCI_IMAGE_MANIFEST",
    "DOCKER_MANIFEST_V2",
    "ACCEPTED_MANIFEST_TYPES",
    "ACCEPT_HEADER",
    "DOCKER_CONTENT_DIGEST",
    "is_recognized_manifest_type",
]
