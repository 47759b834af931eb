"""Root pytest configuration for sloci-image tests."""
from datetime import datetime, timezone

import pytest

from sloci_image.models import ImageOptions, ImageReference
from sloci_image.settings import Settings

from .fakes.fake_blob_store import FakeBlobStore


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: end-to-end tests that write a full image layout"
    )


# Keep the host environment out of the tests
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Clear environment variables that change build behavior."""
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("SOURCE_DATE_EPOCH", raising=False)


@pytest.fixture
def settings():
    """Standard test settings with a fixed build time."""
    return Settings(debug=False, source_date_epoch=1700000000)


@pytest.fixture
def created():
    return datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


@pytest.fixture
def options(created):
    """Minimal image options for an amd64 Linux image."""
    return ImageOptions(architecture="x86_64", os="linux", created=created)


@pytest.fixture
def ref():
    return ImageReference(name="myimage", tag="1.0")


@pytest.fixture
def blob_store():
    """In-memory blob store."""
    return FakeBlobStore()


@pytest.fixture
def rootfs(tmp_path):
    """A small rootfs directory tree."""
    root = tmp_path / "rootfs"
    (root / "bin").mkdir(parents=True)
    (root / "etc").mkdir()
    (root / "bin" / "hello").write_text("#!/bin/sh\necho hello\n")
    (root / "bin" / "hello").chmod(0o755)
    (root / "etc" / "hostname").write_text("container\n")
    return root
