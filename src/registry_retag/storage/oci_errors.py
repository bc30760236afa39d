"""
OCI registry error classes.

Provides a clear taxonomy of errors that can occur while retagging an image.
These errors are mapped from HTTP status codes and httpx exceptions so callers
see one consistent error interface no matter which request failed.
"""
from __future__ import annotations

from typing import Optional


class OciError(Exception):
    """
    Base class for all OCI registry errors.

    The retry envelope in ``registry_retag.tagger`` retries any subclass of
    this type and surfaces the last one to the caller.
    """
    pass


class OciNotFound(OciError):
    """
    Manifest not found in registry.

    Raised when:
    - HTTP 404 Not Found on a manifest GET (the source tag does not exist)
    """

    status_code = 404


class OciInvalidMediaType(OciError):
    """
    Manifest does not declare a media type.

    Raised when:
    - The fetched manifest body parses but its ``mediaType`` field is empty
      or missing, which marks an invalid or unsupported manifest shape
    """
    pass


class OciHTTPStatusError(OciError):
    """
    Registry answered with an unexpected HTTP status.

    Raised when:
    - manifest GET returns anything other than 200 or 404
    - manifest PUT returns anything other than 201
    - token exchange returns anything other than 200
    """

    def __init__(self, status_code: int, reason: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        super().__init__(message or f"{status_code} {reason}".strip())


class OciTransportError(OciError):
    """
    Network or serialization failure.

    Raised when:
    - httpx cannot complete the request (connect error, timeout, ...)
    - a response body cannot be decoded
    """
    pass


class OciManifestDecodeError(OciTransportError):
    """Manifest body is not valid JSON or does not have the manifest shape."""
    pass


class OciAuthError(OciError):
    """
    Bearer token exchange did not produce a token.

    Raised when:
    - the token endpoint answers 200 but the ``token`` field is empty or missing
    """
    pass


class OciCancelled(OciError):
    """The caller's cancellation event was set before the request was sent."""
    pass


__all__ = [
    "OciError",
    "OciNotFound",
    "OciInvalidMediaType",
    "OciHTTPStatusError",
    "OciTransportError",
    "OciManifestDecodeError",
    "OciAuthError",
    "OciCancelled",
]
