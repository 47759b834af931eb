"""
Test image reference parsing and option validation.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from sloci_image.models import Descriptor, ImageOptions, ImageReference, Platform, expand_label_key


class TestImageReference:
    """Test NAME[:TAG] parsing."""

    def test_name_and_tag(self):
        ref = ImageReference.parse("myimage:1.0")
        assert ref.name == "myimage"
        assert ref.tag == "1.0"

    def test_tag_defaults_to_latest(self):
        assert ImageReference.parse("myimage").tag == "latest"

    def test_registry_port_is_not_a_tag(self):
        ref = ImageReference.parse("localhost:5000/app")
        assert ref.name == "localhost:5000/app"
        assert ref.tag == "latest"

    def test_registry_port_with_tag(self):
        ref = ImageReference.parse("localhost:5000/app:v2")
        assert ref.name == "localhost:5000/app"
        assert ref.tag == "v2"

    def test_str(self):
        assert str(ImageReference.parse("base")) == "base:latest"

    @pytest.mark.parametrize("value", ["", ":1.0", "my image:1.0", "name:", "name:-bad"])
    def test_invalid_references(self, value):
        with pytest.raises(ValidationError):
            ImageReference.parse(value)


class TestImageOptions:
    """Test validation of image options."""

    def test_defaults(self):
        options = ImageOptions(architecture="amd64")
        assert options.os == "linux"
        assert options.author is None
        assert options.env == []
        assert options.labels == {}
        assert options.created.tzinfo is not None
        assert options.created.microsecond == 0

    def test_empty_strings_mean_unset(self):
        options = ImageOptions(architecture="amd64", variant="", author="", user="", working_dir="")
        assert options.variant is None
        assert options.author is None
        assert options.user is None
        assert options.working_dir is None

    def test_architecture_required(self):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="")

    def test_naive_created_rejected(self):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="amd64", created=datetime(2024, 1, 1))

    def test_created_converted_to_utc(self):
        tz = timezone(timedelta(hours=2))
        options = ImageOptions(architecture="amd64", created=datetime(2024, 1, 1, 12, tzinfo=tz))
        assert options.created == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_env_requires_key_value(self):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="amd64", env=["NOVALUE"])

    def test_env_duplicate_key_last_wins_in_first_position(self):
        options = ImageOptions(architecture="amd64", env=["A=1", "B=2", "A=3"])
        assert options.env == ["A=3", "B=2"]

    def test_env_value_may_contain_equals(self):
        options = ImageOptions(architecture="amd64", env=["OPTS=-Dx=y"])
        assert options.env == ["OPTS=-Dx=y"]

    @pytest.mark.parametrize("port", ["80", "80/tcp", "53/udp", "9/sctp", "65535"])
    def test_valid_ports(self, port):
        assert ImageOptions(architecture="amd64", ports=[port]).ports == [port]

    @pytest.mark.parametrize("port", ["0", "65536", "80/icmp", "http", "80/", "-1"])
    def test_invalid_ports(self, port):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="amd64", ports=[port])

    def test_ports_and_volumes_deduplicated(self):
        options = ImageOptions(
            architecture="amd64",
            ports=["80/tcp", "443/tcp", "80/tcp"],
            volumes=["/data", "/logs", "/data"],
        )
        assert options.ports == ["80/tcp", "443/tcp"]
        assert options.volumes == ["/data", "/logs"]

    def test_empty_volume_rejected(self):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="amd64", volumes=[""])

    def test_labels_from_entries(self):
        options = ImageOptions(architecture="amd64", labels=[".title=base", "team=core", "team=infra"])
        assert options.labels == {
            "org.opencontainers.image.title": "base",
            "team": "infra",
        }

    def test_labels_from_mapping(self):
        options = ImageOptions(architecture="amd64", labels={".version": "1"})
        assert options.labels == {"org.opencontainers.image.version": "1"}

    def test_label_requires_key_value(self):
        with pytest.raises(ValidationError):
            ImageOptions(architecture="amd64", labels=["novalue"])

    def test_options_are_frozen(self):
        options = ImageOptions(architecture="amd64")
        with pytest.raises(ValidationError):
            options.author = "someone"


class TestLabelKeys:
    """Test leading-dot label expansion."""

    def test_leading_dot_expanded(self):
        assert expand_label_key(".source") == "org.opencontainers.image.source"

    def test_other_keys_unchanged(self):
        assert expand_label_key("com.example.team") == "com.example.team"


class TestDescriptor:
    """Test descriptor serialization."""

    def test_document_uses_oci_field_names(self):
        descriptor = Descriptor(media_type="application/octet-stream", size=3, digest="sha256:abc")
        assert descriptor.to_document() == {
            "mediaType": "application/octet-stream",
            "size": 3,
            "digest": "sha256:abc",
        }

    def test_platform_variant_omitted_when_unset(self):
        descriptor = Descriptor(
            media_type="application/octet-stream",
            size=3,
            digest="sha256:abc",
            platform=Platform(architecture="amd64", os="linux"),
        )
        assert descriptor.to_document()["platform"] == {"architecture": "amd64", "os": "linux"}

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            Descriptor(media_type="x", size=-1, digest="sha256:abc")
