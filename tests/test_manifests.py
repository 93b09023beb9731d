"""Tests for manifest parsing and platform resolution."""

import json

import pytest

from sbin.modules.errors import NoMatchingPlatform, RegistryError, UnsupportedManifestType
from sbin.modules.finders import (
    ImageManifest,
    Platform,
    parse_image_manifest,
    parse_manifest_list,
    resolve_manifest,
    resolve_manifest_payload,
    select_platform,
)
from sbin.modules.keepers.downloaders import (
    DOCKER_MANIFEST_LIST,
    DOCKER_MANIFEST_V2,
    OCI_INDEX,
    OCI_MANIFEST,
)

LINUX_AMD64 = Platform("linux", "amd64")

SINGLE = {
    "schemaVersion": 2,
    "config": {"digest": "sha256:cfg"},
    "layers": [{"digest": "sha256:l1"}, {"digest": "sha256:l2"}],
}

INDEX = {
    "schemaVersion": 2,
    "manifests": [
        {"digest": "sha256:arm", "mediaType": OCI_MANIFEST,
         "platform": {"os": "linux", "architecture": "arm64"}},
        {"digest": "sha256:amd", "mediaType": OCI_MANIFEST,
         "platform": {"os": "linux", "architecture": "amd64"}},
        {"digest": "sha256:att", "mediaType": OCI_MANIFEST,
         "platform": {"os": "unknown", "architecture": "unknown"}},
    ],
}


def _bytes(data) -> bytes:
    return json.dumps(data).encode("utf-8")


class RecordingFetcher:
    """Second-hop fetcher that serves one manifest and records requested digests."""

    def __init__(self, body=_bytes(SINGLE), content_type=OCI_MANIFEST):
        self.body = body
        self.content_type = content_type
        self.requested = []

    def __call__(self, digest):
        self.requested.append(digest)
        return self.body, self.content_type


class TestPlatform:
    def test_parse(self):
        assert Platform.parse("linux/arm64") == Platform("linux", "arm64")
        assert str(Platform.parse(" linux/amd64 ")) == "linux/amd64"

    @pytest.mark.parametrize("bad", ["linux", "linux/", "/amd64", "linux/arm/v7"])
    def test_parse_rejects(self, bad):
        with pytest.raises(ValueError):
            Platform.parse(bad)


class TestParsing:
    def test_single_manifest_keeps_layer_order(self):
        manifest = parse_image_manifest(_bytes(SINGLE))
        assert manifest == ImageManifest(config_digest="sha256:cfg", layers=["sha256:l1", "sha256:l2"])

    def test_manifest_list(self):
        descriptors = parse_manifest_list(_bytes(INDEX))
        assert [d.digest for d in descriptors] == ["sha256:arm", "sha256:amd", "sha256:att"]
        assert descriptors[1].platform == LINUX_AMD64
        assert descriptors[1].media_type == OCI_MANIFEST

    @pytest.mark.parametrize("body", [b"not json", b"[]", _bytes({"layers": []}), _bytes({"config": {"digest": "x"}})])
    def test_malformed_manifest(self, body):
        with pytest.raises(RegistryError):
            parse_image_manifest(body)

    def test_select_platform(self):
        selected = select_platform(parse_manifest_list(_bytes(INDEX)), LINUX_AMD64)
        assert selected.digest == "sha256:amd"

    def test_select_platform_no_match(self):
        with pytest.raises(NoMatchingPlatform) as exc:
            select_platform(parse_manifest_list(_bytes(INDEX)), Platform("windows", "amd64"))
        assert "linux/arm64" in exc.value.available


class TestResolveManifestPayload:
    @pytest.mark.parametrize("content_type", [OCI_INDEX, DOCKER_MANIFEST_LIST])
    def test_index_selects_platform_then_fetches(self, content_type):
        fetcher = RecordingFetcher()

        manifest = resolve_manifest_payload(_bytes(INDEX), content_type, LINUX_AMD64, fetcher, verbose=False)

        assert fetcher.requested == ["sha256:amd"]
        assert manifest.layers == ["sha256:l1", "sha256:l2"]

    def test_other_platform(self):
        fetcher = RecordingFetcher()
        resolve_manifest_payload(_bytes(INDEX), OCI_INDEX, Platform("linux", "arm64"), fetcher, verbose=False)
        assert fetcher.requested == ["sha256:arm"]

    def test_no_matching_platform_fetches_nothing(self):
        fetcher = RecordingFetcher()
        with pytest.raises(NoMatchingPlatform):
            resolve_manifest_payload(_bytes(INDEX), OCI_INDEX, Platform("linux", "s390x"), fetcher, verbose=False)
        assert fetcher.requested == []

    @pytest.mark.parametrize("content_type", [DOCKER_MANIFEST_V2, OCI_MANIFEST, DOCKER_MANIFEST_V2 + "; charset=utf-8"])
    def test_single_manifest_used_as_is(self, content_type):
        fetcher = RecordingFetcher()

        manifest = resolve_manifest_payload(_bytes(SINGLE), content_type, LINUX_AMD64, fetcher, verbose=False)

        assert fetcher.requested == []
        assert manifest.config_digest == "sha256:cfg"

    @pytest.mark.parametrize("content_type", ["application/json", "", "application/vnd.docker.distribution.manifest.v1+prettyjws"])
    def test_unsupported_type(self, content_type):
        with pytest.raises(UnsupportedManifestType) as exc:
            resolve_manifest_payload(_bytes(SINGLE), content_type, LINUX_AMD64, RecordingFetcher(), verbose=False)
        assert exc.value.content_type == content_type

    def test_second_hop_returning_index_is_rejected(self):
        fetcher = RecordingFetcher(body=_bytes(INDEX), content_type=OCI_INDEX)
        with pytest.raises(UnsupportedManifestType):
            resolve_manifest_payload(_bytes(INDEX), OCI_INDEX, LINUX_AMD64, fetcher, verbose=False)


class TestResolveManifest:
    def test_against_fake_registry(self, fake_session):
        from sbin.modules.auth import RegistryAuth
        from sbin.modules.formatters import image_ref_for_program
        from tests.helpers import registry_routes

        layers = [b"first", b"second"]
        fake_session.routes.update(registry_routes("lvillis/bat", layers))
        auth = RegistryAuth(image_ref_for_program("bat"), session=fake_session)

        manifest = resolve_manifest(auth, image_ref_for_program("bat"), LINUX_AMD64, verbose=False)

        assert len(manifest.layers) == 2
        assert fake_session.count("/manifests/") == 2

    def test_error_carries_repository(self, fake_session):
        from sbin.modules.auth import RegistryAuth
        from sbin.modules.formatters import image_ref_for_program
        from tests.helpers import registry_routes

        fake_session.routes.update(registry_routes("lvillis/bat", [b"x"]))
        auth = RegistryAuth(image_ref_for_program("bat"), session=fake_session)

        with pytest.raises(NoMatchingPlatform) as exc:
            resolve_manifest(auth, image_ref_for_program("bat"), Platform("linux", "ppc64le"), verbose=False)
        assert exc.value.repository == "lvillis/bat"
        assert fake_session.count("/blobs/") == 0
