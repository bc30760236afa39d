"""
Registry HTTP Client for OCI Distribution API.

Provides the two manifest calls a retag needs (GET under the source tag, PUT
under the destination tag) with Basic auth on every request, plus an opt-in
bearer token exchange for registries that require it.
"""
from __future__ import annotations

import hashlib
import logging
import threading
from typing import Generator, Optional

import httpx
from pydantic import ValidationError

from ..models import Credentials, FetchedManifest, Manifest
from ..settings import Settings
from .oci_errors import (
    OciAuthError,
    OciCancelled,
    OciHTTPStatusError,
    OciInvalidMediaType,
    OciManifestDecodeError,
    OciNotFound,
    OciTransportError,
)
from .oci_media_types import ACCEPT_HEADER, DOCKER_CONTENT_DIGEST, is_recognized_manifest_type

logger = logging.getLogger(__name__)

USER_AGENT = "registry-retag/0.1.0"


class BearerAuth(httpx.Auth):
    """Attach a pre-fetched bearer token to the request."""

    def __init__(self, token: str):
        self._token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token}"
        yield request


class RegistryHTTP:
    """
    HTTP client for OCI Distribution API manifest operations.

    The underlying ``httpx.Client`` is owned by this object. Pass ``client``
    to inject a preconfigured one (for example an ``httpx.MockTransport``
    backed client in tests); an injected client is not closed by ``close()``.
    """

    def __init__(self, credentials: Optional[Credentials] = None,
                 client: Optional[httpx.Client] = None, insecure: bool = False,
                 timeout_s: float = 30.0, token_realm: Optional[str] = None,
                 token_service: Optional[str] = None):
        """
        Initialize registry HTTP client.

        Args:
            credentials: Username/password sent with every request (None for anonymous)
            client: Optional preconfigured httpx client
            insecure: Use HTTP for bare hosts and skip TLS verification
            timeout_s: Read/write timeout for requests
            token_realm: Bearer token endpoint; enables token auth when set
            token_service: ``service`` parameter for the token endpoint
        """
        self.credentials = credentials
        self.insecure = insecure
        self.token_realm = token_realm
        self.token_service = token_service

        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_s, connect=5.0),
            follow_redirects=True,
            verify=not insecure,
            headers={"User-Agent": USER_AGENT},
        )

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> RegistryHTTP:
        """Build a client from validated settings."""
        return cls(
            credentials=settings.credentials,
            client=client,
            insecure=settings.registry_insecure,
            timeout_s=settings.http_timeout_s,
            token_realm=settings.token_realm,
            token_service=settings.token_service,
        )

    def base_url(self, host: str) -> str:
        """Return scheme + host, keeping an explicit scheme if given."""
        if not host:
            raise ValueError("host must not be empty")
        if host.startswith(("http://", "https://")):
            return host.rstrip("/")
        scheme = "http" if self.insecure else "https"
        return f"{scheme}://{host.rstrip('/')}"

    def manifest_url(self, host: str, repository: str, tag: str) -> str:
        return f"{self.base_url(host)}/v2/{repository}/manifests/{tag}"

    def get_manifest(self, host: str, repository: str, tag: str,
                     cancel: Optional[threading.Event] = None) -> FetchedManifest:
        """
        Fetch the manifest stored under ``tag``.

        Args:
            host: Registry host
            repository: Repository path
            tag: Tag to read
            cancel: Optional cancellation event

        Returns:
            FetchedManifest carrying the body byte-for-byte

        Raises:
            OciNotFound: If the registry answers 404
            OciHTTPStatusError: If the registry answers anything but 200
            OciManifestDecodeError: If the body is not a manifest
            OciInvalidMediaType: If the manifest has an empty mediaType
            OciTransportError: If the request cannot be completed
        """
        _check_reference(repository, tag)
        url = self.manifest_url(host, repository, tag)
        logger.debug(f"Fetching manifest {url}")

        response = self._request("GET", url, repository, cancel, headers={"Accept": ACCEPT_HEADER})

        if response.status_code == 404:
            raise OciNotFound(f"Manifest not found: {repository}:{tag}")
        if response.status_code != 200:
            raise OciHTTPStatusError(
                response.status_code, response.reason_phrase,
                f"Registry error fetching {repository}:{tag}: "
                f"{response.status_code} {response.reason_phrase}",
            )

        payload = response.content
        try:
            manifest = Manifest.model_validate_json(payload)
        except ValidationError as e:
            raise OciManifestDecodeError(f"Invalid manifest for {repository}:{tag}: {e}") from e

        if not manifest.media_type:
            raise OciInvalidMediaType(f"Manifest for {repository}:{tag} has no mediaType")
        if not is_recognized_manifest_type(manifest.media_type):
            logger.warning(f"Manifest for {repository}:{tag} has unrecognized media type {manifest.media_type}")

        logger.debug(f"Fetched manifest {repository}:{tag} ({manifest.media_type}, {len(payload)} bytes)")
        return FetchedManifest(payload=payload, media_type=manifest.media_type, manifest=manifest)

    def put_manifest(self, host: str, repository: str, tag: str, payload: bytes,
                     media_type: str, cancel: Optional[threading.Event] = None) -> None:
        """
        Publish ``payload`` under ``tag`` with ``media_type`` as Content-Type.

        Raises:
            OciHTTPStatusError: If the registry answers anything but 201
            OciTransportError: If the request cannot be completed
        """
        _check_reference(repository, tag)
        if not media_type:
            raise ValueError("media_type must not be empty")
        url = self.manifest_url(host, repository, tag)
        logger.debug(f"Publishing manifest {url} ({media_type})")

        response = self._request("PUT", url, repository, cancel,
                                 headers={"Content-Type": media_type}, content=payload)

        if response.status_code != 201:
            raise OciHTTPStatusError(
                response.status_code, response.reason_phrase,
                f"Registry error publishing {repository}:{tag}: "
                f"{response.status_code} {response.reason_phrase}",
            )

        server_digest = response.headers.get(DOCKER_CONTENT_DIGEST)
        local_digest = f"sha256:{hashlib.sha256(payload).hexdigest()}"
        if server_digest and server_digest != local_digest:
            logger.warning(f"Registry digest {server_digest} differs from local digest {local_digest} "
                           f"for {repository}:{tag}")
        logger.debug(f"Published manifest {repository}:{tag}")

    def login(self, realm: str, repository: str, service: Optional[str] = None,
              cancel: Optional[threading.Event] = None) -> str:
        """
        Exchange credentials for a bearer token scoped to ``repository``.

        Args:
            realm: Token endpoint URL
            repository: Repository the token should grant pull and push on
            service: Optional ``service`` query parameter
            cancel: Optional cancellation event

        Returns:
            Bearer token

        Raises:
            OciHTTPStatusError: If the endpoint answers anything but 200
            OciTransportError: If the request fails or the body isn't JSON
            OciAuthError: If no token is returned
        """
        _raise_if_cancelled(cancel, realm)
        params = {"scope": f"repository:{repository}:pull,push"}
        if service:
            params["service"] = service

        auth = httpx.BasicAuth(*self.credentials.as_tuple()) if self.credentials else None
        try:
            response = self.client.get(realm, params=params, auth=auth)
        except httpx.RequestError as e:
            raise OciTransportError(f"Network error requesting token from {realm}: {e}") from e

        if response.status_code != 200:
            raise OciHTTPStatusError(
                response.status_code, response.reason_phrase,
                f"Token exchange failed: {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise OciTransportError(f"Invalid JSON from token endpoint {realm}: {e}") from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise OciAuthError(f"Token endpoint {realm} returned an empty token")
        return token

    def _request(self, method: str, url: str, repository: str,
                 cancel: Optional[threading.Event], **kwargs) -> httpx.Response:
        """Send one authenticated request, mapping transport failures."""
        _raise_if_cancelled(cancel, url)
        auth = self._auth_for(repository, cancel)
        try:
            return self.client.request(method, url, auth=auth, **kwargs)
        except httpx.RequestError as e:
            raise OciTransportError(f"Network error during {method} {url}: {e}") from e

    def _auth_for(self, repository: str, cancel: Optional[threading.Event]) -> Optional[httpx.Auth]:
        if self.token_realm:
            return BearerAuth(self.login(self.token_realm, repository, self.token_service, cancel))
        if self.credentials:
            return httpx.BasicAuth(*self.credentials.as_tuple())
        return None

    def close(self):
        """Close HTTP client if this object created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _check_reference(repository: str, tag: str) -> None:
    if not repository:
        raise ValueError("repository must not be empty")
    if not tag:
        raise ValueError("tag must not be empty")


def _raise_if_cancelled(cancel: Optional[threading.Event], target: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OciCancelled(f"Cancelled before request to {target}")


__all__ = ["RegistryHTTP", "BearerAuth"]
