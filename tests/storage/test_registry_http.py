"""
Tests for the RegistryHTTP manifest client.

Exercises the real httpx code path against the in-memory FakeRegistry
through httpx.MockTransport.
"""
from __future__ import annotations

import base64
import logging
import threading

import httpx
import pytest

from registry_retag.models import Credentials
from registry_retag.settings import Settings
from registry_retag.storage.oci_errors import (
    OciAuthError,
    OciCancelled,
    OciHTTPStatusError,
    OciInvalidMediaType,
    OciManifestDecodeError,
    OciNotFound,
    OciTransportError,
)
from registry_retag.storage.oci_media_types import ACCEPT_HEADER, DOCKER_MANIFEST_V2, OCI_IMAGE_MANIFEST
from registry_retag.storage.oci_registry import OciRegistry
from registry_retag.storage.registry_http import RegistryHTTP

from tests.conftest import HOST, PASSWORD, REPO, USERNAME
from tests.helpers.oci_helpers import create_image_manifest
from tests.storage.fakes.fake_registry import FakeRegistry


class TestGetManifest:
    """Manifest fetch behaviour."""

    def test_returns_exact_bytes_and_media_type(self, seeded_registry, registry_http, manifest_bytes):
        """Test that the payload comes back byte-for-byte."""
        fetched = registry_http.get_manifest(HOST, REPO, "v1")

        assert fetched.payload == manifest_bytes
        assert fetched.media_type == OCI_IMAGE_MANIFEST
        assert fetched.digest == seeded_registry.tag_digest(REPO, "v1")
        assert len(fetched.manifest.layers) == 2
        assert fetched.manifest.schema_version == 2

    def test_docker_v2_media_type_preserved(self, fake_registry, registry_http):
        """Test that a Docker v2 manifest keeps its media type."""
        payload = create_image_manifest(media_type=DOCKER_MANIFEST_V2)
        fake_registry.seed(REPO, "docker", payload, DOCKER_MANIFEST_V2)

        fetched = registry_http.get_manifest(HOST, REPO, "docker")

        assert fetched.media_type == DOCKER_MANIFEST_V2
        assert fetched.payload == payload

    def test_sends_accept_and_basic_auth(self, seeded_registry, registry_http):
        """Test request headers and URL."""
        registry_http.get_manifest(HOST, REPO, "v1")

        request = seeded_registry.gets[0]
        expected = base64.b64encode(f"{USERNAME}:{PASSWORD}".encode()).decode()
        assert str(request.url) == f"http://{HOST}/v2/{REPO}/manifests/v1"
        assert request.headers["Accept"] == ACCEPT_HEADER
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_missing_tag_raises_not_found(self, seeded_registry, registry_http):
        with pytest.raises(OciNotFound, match="library/busybox:missing"):
            registry_http.get_manifest(HOST, REPO, "missing")

    def test_unexpected_status_raises_http_status_error(self, seeded_registry, registry_http):
        seeded_registry.fail_next(500)

        with pytest.raises(OciHTTPStatusError) as exc_info:
            registry_http.get_manifest(HOST, REPO, "v1")

        assert exc_info.value.status_code == 500
        assert exc_info.value.reason == "Internal Server Error"

    def test_wrong_credentials_raise_401(self, seeded_registry):
        """Test that rejected credentials surface as a status error, not not-found."""
        registry = RegistryHTTP(credentials=Credentials(username="nobody", password="x"),
                                client=seeded_registry.client(), insecure=True)

        with pytest.raises(OciHTTPStatusError) as exc_info:
            registry.get_manifest(HOST, REPO, "v1")

        assert exc_info.value.status_code == 401

    def test_non_json_body_raises_decode_error(self, fake_registry, registry_http):
        fake_registry.seed(REPO, "broken", b"<html>not a manifest</html>", OCI_IMAGE_MANIFEST)

        with pytest.raises(OciManifestDecodeError):
            registry_http.get_manifest(HOST, REPO, "broken")

    def test_sparse_layer_descriptor_is_accepted(self, fake_registry, registry_http):
        """Test that a layer lacking digest and size does not block the fetch."""
        payload = f'{{"schemaVersion": 2, "mediaType": "{OCI_IMAGE_MANIFEST}", "layers": [{{}}]}}'.encode()
        fake_registry.seed(REPO, "sparse", payload, OCI_IMAGE_MANIFEST)

        fetched = registry_http.get_manifest(HOST, REPO, "sparse")

        assert fetched.payload == payload
        assert fetched.manifest.layers[0].digest == ""

    def test_decode_error_is_transport_error(self):
        assert issubclass(OciManifestDecodeError, OciTransportError)

    def test_missing_media_type_raises_invalid_media_type(self, fake_registry, registry_http):
        fake_registry.seed(REPO, "bare", create_image_manifest(media_type=None), OCI_IMAGE_MANIFEST)

        with pytest.raises(OciInvalidMediaType):
            registry_http.get_manifest(HOST, REPO, "bare")

    def test_empty_media_type_raises_invalid_media_type(self, fake_registry, registry_http):
        fake_registry.seed(REPO, "empty", create_image_manifest(media_type=""), OCI_IMAGE_MANIFEST)

        with pytest.raises(OciInvalidMediaType):
            registry_http.get_manifest(HOST, REPO, "empty")

    def test_unrecognized_media_type_is_accepted_with_warning(self, fake_registry, registry_http, caplog):
        media_type = "application/vnd.example.manifest+json"
        fake_registry.seed(REPO, "odd", create_image_manifest(media_type=media_type), media_type)

        with caplog.at_level(logging.WARNING, logger="registry_retag.storage.registry_http"):
            fetched = registry_http.get_manifest(HOST, REPO, "odd")

        assert fetched.media_type == media_type
        assert "unrecognized media type" in caplog.text

    def test_connect_error_raises_transport_error(self, seeded_registry, registry_http):
        seeded_registry.fail_next(httpx.ConnectError)

        with pytest.raises(OciTransportError, match="Network error"):
            registry_http.get_manifest(HOST, REPO, "v1")

    def test_empty_names_rejected_without_request(self, seeded_registry, registry_http):
        with pytest.raises(ValueError, match="repository"):
            registry_http.get_manifest(HOST, "", "v1")
        with pytest.raises(ValueError, match="tag"):
            registry_http.get_manifest(HOST, REPO, "")

        assert seeded_registry.requests == []

    def test_cancelled_event_prevents_request(self, seeded_registry, registry_http):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OciCancelled):
            registry_http.get_manifest(HOST, REPO, "v1", cancel=cancel)

        assert seeded_registry.requests == []


class TestPutManifest:
    """Manifest publish behaviour."""

    def test_put_then_get_round_trip(self, seeded_registry, registry_http, manifest_bytes):
        """Test that published bytes are served back unchanged."""
        registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        assert registry_http.get_manifest(HOST, REPO, "v2").payload == manifest_bytes

    def test_sends_content_type_and_body(self, seeded_registry, registry_http, manifest_bytes):
        registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        request = seeded_registry.puts[0]
        assert request.headers["Content-Type"] == OCI_IMAGE_MANIFEST
        assert request.content == manifest_bytes
        assert "Authorization" in request.headers

    def test_digest_mismatch_logs_warning(self, seeded_registry, registry_http, manifest_bytes, caplog):
        """Test that a differing Docker-Content-Digest is reported but not fatal."""
        seeded_registry.put_digest = "sha256:" + "0" * 64

        with caplog.at_level(logging.WARNING, logger="registry_retag.storage.registry_http"):
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        assert "differs from local digest" in caplog.text
        assert seeded_registry.stored(REPO, "v2") == manifest_bytes

    def test_matching_digest_logs_nothing(self, seeded_registry, registry_http, manifest_bytes, caplog):
        with caplog.at_level(logging.WARNING, logger="registry_retag.storage.registry_http"):
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        assert "differs from local digest" not in caplog.text

    def test_forbidden_raises_http_status_error(self, seeded_registry, registry_http, manifest_bytes):
        seeded_registry.put_status = 403

        with pytest.raises(OciHTTPStatusError) as exc_info:
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        assert exc_info.value.status_code == 403
        assert "403 Forbidden" in str(exc_info.value)

    def test_200_is_not_created(self, seeded_registry, registry_http, manifest_bytes):
        """Test that only 201 Created counts as success."""
        seeded_registry.put_status = 200

        with pytest.raises(OciHTTPStatusError) as exc_info:
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)

        assert exc_info.value.status_code == 200

    def test_empty_media_type_rejected(self, registry_http, manifest_bytes):
        with pytest.raises(ValueError, match="media_type"):
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, "")

    def test_read_timeout_raises_transport_error(self, seeded_registry, registry_http, manifest_bytes):
        seeded_registry.fail_next(httpx.ReadTimeout)

        with pytest.raises(OciTransportError):
            registry_http.put_manifest(HOST, REPO, "v2", manifest_bytes, OCI_IMAGE_MANIFEST)


class TestTokenAuth:
    """Bearer token exchange."""

    realm = f"http://{HOST}/token"

    def test_login_returns_token(self, fake_registry, registry_http):
        assert registry_http.login(self.realm, REPO, service="registry") == "fake-token"

        request = fake_registry.requests[0]
        assert request.url.params["scope"] == f"repository:{REPO}:pull,push"
        assert request.url.params["service"] == "registry"
        assert request.headers["Authorization"].startswith("Basic ")

    def test_empty_token_raises_auth_error(self, credentials):
        registry = FakeRegistry(username=USERNAME, password=PASSWORD, token="")
        client = RegistryHTTP(credentials=credentials, client=registry.client(), insecure=True)

        with pytest.raises(OciAuthError, match="empty token"):
            client.login(self.realm, REPO)

    def test_rejected_credentials_raise_http_status_error(self, fake_registry):
        client = RegistryHTTP(credentials=Credentials(username=USERNAME, password="wrong"),
                              client=fake_registry.client(), insecure=True)

        with pytest.raises(OciHTTPStatusError) as exc_info:
            client.login(self.realm, REPO)

        assert exc_info.value.status_code == 401

    def test_token_realm_switches_manifest_requests_to_bearer(self, seeded_registry, credentials):
        client = RegistryHTTP(credentials=credentials, client=seeded_registry.client(),
                              insecure=True, token_realm=self.realm)

        client.get_manifest(HOST, REPO, "v1")

        token_request, manifest_request = seeded_registry.requests
        assert token_request.url.path == "/token"
        assert manifest_request.headers["Authorization"] == "Bearer fake-token"


class TestConstruction:
    """URL building and settings wiring."""

    def test_base_url_schemes(self):
        assert RegistryHTTP(insecure=True).base_url("localhost:5000") == "http://localhost:5000"
        assert RegistryHTTP().base_url("ghcr.io") == "https://ghcr.io"
        assert RegistryHTTP().base_url("http://localhost:5000/") == "http://localhost:5000"

    def test_base_url_rejects_empty_host(self):
        with pytest.raises(ValueError, match="host"):
            RegistryHTTP().base_url("")

    def test_from_settings(self):
        settings = Settings(registry_insecure=True, registry_user="u", registry_pass="p",
                            token_realm="https://auth.example.com/token", token_service="reg")
        registry = RegistryHTTP.from_settings(settings)

        assert registry.insecure is True
        assert registry.credentials.as_tuple() == ("u", "p")
        assert registry.token_realm == "https://auth.example.com/token"
        assert registry.token_service == "reg"
        registry.close()

    def test_injected_client_not_closed(self, fake_registry):
        client = fake_registry.client()
        with RegistryHTTP(client=client):
            pass
        assert not client.is_closed

    def test_satisfies_protocol(self):
        assert isinstance(RegistryHTTP(), OciRegistry)
