"""
End-to-end tests for image assembly.

Each test writes a real OCI Image Layout under tmp_path and checks it the
way a consumer would: starting from index.json and following digests.
"""
from __future__ import annotations

import gzip
import hashlib
import io
import json
import logging
import tarfile

import pytest

from sloci_image.assembler import ImageAssembler
from sloci_image.errors import InputError, PreconditionError
from sloci_image.models import ImageOptions

pytestmark = pytest.mark.integration


def _blob(layout, digest: str) -> bytes:
    algorithm, hex_part = digest.split(":")
    return (layout / "blobs" / algorithm / hex_part).read_bytes()


def _load(layout):
    index = json.loads((layout / "index.json").read_text())
    manifest_desc = index["manifests"][0]
    manifest = json.loads(_blob(layout, manifest_desc["digest"]))
    config = json.loads(_blob(layout, manifest["config"]["digest"]))
    layer = _blob(layout, manifest["layers"][0]["digest"])
    return index, manifest, config, layer


class TestAssembleFromDirectory:
    """Test building an image from a rootfs directory."""

    def test_layout_structure(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        ImageAssembler().assemble(rootfs, layout, options, ref)

        assert json.loads((layout / "oci-layout").read_text()) == {"imageLayoutVersion": "1.0.0"}
        blobs = list((layout / "blobs" / "sha256").iterdir())
        assert len(blobs) == 3
        assert not any(p.name.startswith(".tmp.") for p in blobs)

    def test_every_blob_matches_its_digest(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        ImageAssembler().assemble(rootfs, layout, options, ref)

        for blob in (layout / "blobs" / "sha256").iterdir():
            assert hashlib.sha256(blob.read_bytes()).hexdigest() == blob.name

    def test_descriptors_match_blobs(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        image = ImageAssembler().assemble(rootfs, layout, options, ref)
        index, manifest, config, layer = _load(layout)

        manifest_desc = index["manifests"][0]
        assert manifest_desc["digest"] == str(image.manifest_digest)
        assert manifest_desc["size"] == len(_blob(layout, manifest_desc["digest"]))
        assert manifest_desc["annotations"] == {"org.opencontainers.image.ref.name": "1.0"}
        assert manifest_desc["platform"] == {"architecture": "amd64", "os": "linux"}

        layer_desc = manifest["layers"][0]
        assert layer_desc["mediaType"] == "application/vnd.oci.image.layer.v1.tar+gzip"
        assert layer_desc["size"] == len(layer)
        assert layer_desc["digest"] == "sha256:" + hashlib.sha256(layer).hexdigest()
        assert manifest["config"]["size"] == len(_blob(layout, manifest["config"]["digest"]))

    def test_diff_id_is_uncompressed_layer_digest(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        image = ImageAssembler().assemble(rootfs, layout, options, ref)
        _, _, config, layer = _load(layout)

        expected = "sha256:" + hashlib.sha256(gzip.decompress(layer)).hexdigest()
        assert config["rootfs"] == {"type": "layers", "diff_ids": [expected]}
        assert str(image.diff_id) == expected

    def test_layer_reproduces_rootfs(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        ImageAssembler().assemble(rootfs, layout, options, ref)
        _, _, _, layer = _load(layout)

        with tarfile.open(fileobj=io.BytesIO(layer), mode="r:gz") as tar:
            assert tar.extractfile("bin/hello").read() == (rootfs / "bin" / "hello").read_bytes()
            assert tar.extractfile("etc/hostname").read() == b"container\n"

    def test_rootfs_directory_preserved(self, rootfs, tmp_path, options, ref):
        ImageAssembler().assemble(rootfs, tmp_path / "myimage", options, ref)
        assert (rootfs / "bin" / "hello").exists()

    def test_config_values(self, rootfs, tmp_path, ref, created):
        options = ImageOptions(
            architecture="x86_64",
            author="A",
            created=created,
            entrypoint=["/bin/sh"],
            env=["PATH=/bin"],
        )
        layout = tmp_path / "myimage"
        ImageAssembler().assemble(rootfs, layout, options, ref)
        _, _, config, _ = _load(layout)

        assert config["author"] == "A"
        assert config["architecture"] == "amd64"
        assert config["os"] == "linux"
        assert config["created"] == "2023-11-14T22:13:20Z"
        assert config["config"]["Entrypoint"] == ["/bin/sh"]
        assert config["config"]["Env"] == ["PATH=/bin"]
        assert config["config"]["Cmd"] == []
        assert config["config"]["ExposedPorts"] == {}

    def test_documents_are_canonical_json(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        ImageAssembler().assemble(rootfs, layout, options, ref)

        raw = (layout / "index.json").read_bytes()
        assert raw == json.dumps(json.loads(raw), sort_keys=True, separators=(",", ":")).encode()

    def test_clamped_builds_are_identical(self, rootfs, tmp_path, options, ref):
        first = ImageAssembler(clamp_mtime=0).assemble(rootfs, tmp_path / "one", options, ref)
        second = ImageAssembler(clamp_mtime=0).assemble(rootfs, tmp_path / "two", options, ref)
        assert first.manifest_digest == second.manifest_digest


class TestAssembleFromArchive:
    """Test building an image from a .tar.gz rootfs."""

    def test_archive_becomes_layer(self, tmp_path, options, ref):
        archive = tmp_path / "rootfs.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            info = tarfile.TarInfo("etc/hostname")
            info.size = 4
            tar.addfile(info, io.BytesIO(b"box\n"))
        original = archive.read_bytes()

        layout = tmp_path / "myimage"
        image = ImageAssembler().assemble(archive, layout, options, ref)
        _, manifest, config, layer = _load(layout)

        assert not archive.exists()
        assert layer == original
        assert manifest["layers"][0]["digest"] == "sha256:" + hashlib.sha256(original).hexdigest()
        assert config["rootfs"]["diff_ids"] == [
            "sha256:" + hashlib.sha256(gzip.decompress(original)).hexdigest()
        ]
        assert image.layer_size == len(original)

    def test_relative_symlink_to_archive(self, tmp_path, options, ref):
        downloads = tmp_path / "downloads"
        downloads.mkdir()
        target = downloads / "alpine.tar.gz"
        with tarfile.open(target, "w:gz") as tar:
            info = tarfile.TarInfo("etc/hostname")
            info.size = 4
            tar.addfile(info, io.BytesIO(b"box\n"))
        original = target.read_bytes()
        link = tmp_path / "rootfs.tar.gz"
        link.symlink_to("downloads/alpine.tar.gz")

        layout = tmp_path / "myimage"
        image = ImageAssembler().assemble(link, layout, options, ref)

        blob = layout / "blobs" / "sha256" / image.layer_digest.hex
        assert not blob.is_symlink()
        assert blob.read_bytes() == original
        assert image.layer_size == len(original)
        assert not link.exists() and not link.is_symlink()
        assert not target.exists()

    def test_invalid_archive_writes_nothing(self, tmp_path, options, ref):
        archive = tmp_path / "rootfs.tar.gz"
        archive.write_text("not an archive")
        layout = tmp_path / "myimage"

        with pytest.raises(InputError):
            ImageAssembler().assemble(archive, layout, options, ref)

        assert not layout.exists()
        assert archive.exists()


class TestPreconditions:
    """Test failures before anything is written."""

    def test_existing_output_rejected(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        layout.mkdir()
        (layout / "keep.txt").write_text("untouched")

        with pytest.raises(PreconditionError) as exc_info:
            ImageAssembler().assemble(rootfs, layout, options, ref)

        assert exc_info.value.path == str(layout)
        assert [p.name for p in layout.iterdir()] == ["keep.txt"]

    def test_existing_file_at_output_rejected(self, rootfs, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        layout.write_text("a file")
        with pytest.raises(PreconditionError):
            ImageAssembler().assemble(rootfs, layout, options, ref)
        assert layout.read_text() == "a file"

    def test_output_inside_rootfs_rejected(self, rootfs, options, ref):
        layout = rootfs / "img"
        with pytest.raises(InputError, match="inside the rootfs"):
            ImageAssembler().assemble(rootfs, layout, options, ref)
        assert not layout.exists()

    def test_missing_rootfs(self, tmp_path, options, ref):
        layout = tmp_path / "myimage"
        with pytest.raises(InputError):
            ImageAssembler().assemble(tmp_path / "nope", layout, options, ref)
        assert not layout.exists()


class TestTracing:
    """Test document tracing at debug level."""

    def test_documents_logged_when_enabled(self, rootfs, tmp_path, options, ref, caplog):
        caplog.set_level(logging.DEBUG, logger="sloci_image.assembler")
        ImageAssembler(trace_documents=True).assemble(rootfs, tmp_path / "myimage", options, ref)

        messages = [r.getMessage() for r in caplog.records]
        for name in ("config", "manifest", "index", "oci-layout"):
            assert any(m.startswith(f"{name}:\n") for m in messages)

    def test_documents_not_logged_by_default(self, rootfs, tmp_path, options, ref, caplog):
        caplog.set_level(logging.DEBUG, logger="sloci_image.assembler")
        ImageAssembler().assemble(rootfs, tmp_path / "myimage", options, ref)

        assert not any(r.getMessage().startswith("config:\n") for r in caplog.records)
