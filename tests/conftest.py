"""Root pytest configuration for registry-retag tests."""
import pytest

from registry_retag.models import Credentials
from registry_retag.storage.registry_http import RegistryHTTP
from registry_retag.tagger import ImageTagger, RetryPolicy

from tests.helpers.oci_helpers import create_image_manifest
from tests.storage.fakes.fake_registry import FakeRegistry

HOST = "localhost:5000"
REPO = "library/busybox"
USERNAME = "retagger"
PASSWORD = "s3cret"


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep RETAG_* variables from the host environment out of tests."""
    for name in (
        "RETAG_REGISTRY_INSECURE", "RETAG_REGISTRY_USERNAME", "RETAG_REGISTRY_PASSWORD",
        "RETAG_HTTP_TIMEOUT", "RETAG_RETRY_ATTEMPTS", "RETAG_RETRY_DELAY",
        "RETAG_RETRY_BACKOFF", "RETAG_RETRY_MAX_DELAY", "RETAG_RETRY_DEADLINE",
        "RETAG_TOKEN_REALM", "RETAG_TOKEN_SERVICE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credentials():
    return Credentials(username=USERNAME, password=PASSWORD)


@pytest.fixture
def fake_registry():
    """In-memory registry enforcing Basic auth."""
    return FakeRegistry(username=USERNAME, password=PASSWORD)


@pytest.fixture
def manifest_bytes():
    return create_image_manifest()


@pytest.fixture
def seeded_registry(fake_registry, manifest_bytes):
    """Fake registry holding library/busybox:v1."""
    fake_registry.seed(REPO, "v1", manifest_bytes, "application/vnd.oci.image.manifest.v1+json")
    return fake_registry


@pytest.fixture
def registry_http(fake_registry, credentials):
    """RegistryHTTP wired to the fake registry."""
    with RegistryHTTP(credentials=credentials, client=fake_registry.client(), insecure=True) as registry:
        yield registry


@pytest.fixture
def sleeps():
    """Records the delays requested between attempts."""
    return []


@pytest.fixture
def tagger(registry_http, sleeps):
    """ImageTagger with the default policy and a recording sleep."""
    return ImageTagger(registry_http, RetryPolicy(), sleep=sleeps.append)
