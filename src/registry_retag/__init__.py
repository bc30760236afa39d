"""
registry-retag: re-tag container images in an OCI/Docker registry.

Fetches the manifest under one tag and re-publishes the same bytes under
another tag, without moving any layer blobs.
"""
from .models import Credentials, Descriptor, FetchedManifest, Manifest
from .storage.oci_errors import (
    OciAuthError,
    OciCancelled,
    OciError,
    OciHTTPStatusError,
    OciInvalidMediaType,
    OciManifestDecodeError,
    OciNotFound,
    OciTransportError,
)
from .storage.registry_http import RegistryHTTP
from .tagger import ImageTagger, RetryPolicy, tag_image

__all__ = [
    "Credentials",
    "Descriptor",
    "FetchedManifest",
    "Manifest",
    "OciAuthError",
    "OciCancelled",
    "OciError",
    "OciHTTPStatusError",
    "OciInvalidMediaType",
    "OciManifestDecodeError",
    "OciNotFound",
    "OciTransportError",
    "RegistryHTTP",
    "ImageTagger",
    "RetryPolicy",
    "tag_image",
]
