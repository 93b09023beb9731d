"""Test helpers: fake registry session, layer archives and fake binaries."""

import gzip
import hashlib
import io
import json
import os
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests

from sbin import config
from sbin.modules.keepers.downloaders import DOCKER_MANIFEST_LIST, DOCKER_MANIFEST_V2

REGISTRY = f"https://{config.REGISTRY_HOST}/v2"


def make_response(status: int = 200, body: bytes = b"", content_type: Optional[str] = None) -> requests.Response:
    """Build a real requests.Response with an already-read body."""
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp._content_consumed = True
    resp.encoding = "utf-8"
    if content_type:
        resp.headers["Content-Type"] = content_type
    return resp


def json_response(data, content_type: str = "application/json", status: int = 200) -> requests.Response:
    return make_response(status, json.dumps(data).encode("utf-8"), content_type)


@dataclass
class Call:
    url: str
    params: Optional[dict] = None
    headers: Optional[dict] = None
    stream: bool = False


@dataclass
class FakeSession:
    """Stands in for requests.Session; routes GETs by exact URL."""
    routes: dict = field(default_factory=dict)
    calls: list = field(default_factory=list)
    closed: bool = False

    def get(self, url, params=None, headers=None, stream=False, timeout=None):
        self.calls.append(Call(url, params, dict(headers or {}), stream))
        handler = self.routes.get(url)
        if handler is None:
            return make_response(404, b'{"errors": [{"code": "NOT_FOUND"}]}', "application/json")
        if isinstance(handler, Exception):
            raise handler
        return handler() if callable(handler) else handler

    def close(self):
        self.closed = True

    def urls(self) -> list[str]:
        return [c.url for c in self.calls]

    def count(self, fragment: str) -> int:
        return sum(1 for c in self.calls if fragment in c.url)


def digest_of(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


# =============================================================================
# Layer archives
# =============================================================================

def file_entry(name: str, data: bytes, mode: int = 0o644) -> tuple:
    return ("file", name, data, mode)


def dir_entry(name: str, mode: int = 0o755) -> tuple:
    return ("dir", name, None, mode)


def symlink_entry(name: str, target: str) -> tuple:
    return ("symlink", name, target, 0o777)


def hardlink_entry(name: str, target: str) -> tuple:
    return ("hardlink", name, target, 0o644)


def make_layer(entries: list[tuple]) -> bytes:
    """Gzip-compressed tar built from (kind, name, payload, mode) tuples, in order."""
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w", format=tarfile.PAX_FORMAT) as tar:
        for kind, name, payload, mode in entries:
            info = tarfile.TarInfo(name)
            info.mode = mode
            info.mtime = 1700000000
            if kind == "file":
                info.size = len(payload)
                tar.addfile(info, io.BytesIO(payload))
            elif kind == "dir":
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            elif kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = payload
                tar.addfile(info)
            elif kind == "hardlink":
                info.type = tarfile.LNKTYPE
                info.linkname = payload
                tar.addfile(info)
    return gzip.compress(raw.getvalue(), mtime=0)


def write_layer(path: Path, entries: list[tuple]) -> Path:
    path.write_bytes(make_layer(entries))
    return path


def version_script(banner: str, exit_code: int = 0) -> bytes:
    return f'#!/bin/sh\necho "{banner}"\nexit {exit_code}\n'.encode("utf-8")


def write_script(path: Path, body: bytes) -> Path:
    path.write_bytes(body)
    os.chmod(path, 0o755)
    return path


# =============================================================================
# Fake registry
# =============================================================================

def registry_routes(
    repository: str,
    layers: list[bytes],
    tag: str = "latest",
    as_list: bool = True,
    platforms: tuple = (("linux", "amd64"), ("linux", "arm64")),
    token: str = "test-token",
) -> dict:
    """
    Routes serving `repository:tag` as a manifest list (or a single manifest)
    whose concrete manifest references `layers` in order.
    """
    base = f"{REGISTRY}/{repository}"
    config_blob = b'{"architecture": "amd64", "os": "linux"}'
    manifest = {
        "schemaVersion": 2,
        "mediaType": DOCKER_MANIFEST_V2,
        "config": {"digest": digest_of(config_blob), "size": len(config_blob)},
        "layers": [{"digest": digest_of(layer), "size": len(layer)} for layer in layers],
    }
    manifest_bytes = json.dumps(manifest).encode("utf-8")
    manifest_digest = digest_of(manifest_bytes)

    routes = {
        config.AUTH_URL: lambda: json_response({"token": token, "access_token": token}),
    }
    if as_list:
        index = {
            "schemaVersion": 2,
            "mediaType": DOCKER_MANIFEST_LIST,
            "manifests": [
                {
                    "digest": manifest_digest if (os_, arch) == ("linux", "amd64") else digest_of(f"{os_}/{arch}".encode()),
                    "mediaType": DOCKER_MANIFEST_V2,
                    "platform": {"os": os_, "architecture": arch},
                }
                for os_, arch in platforms
            ],
        }
        routes[f"{base}/manifests/{tag}"] = lambda: json_response(index, DOCKER_MANIFEST_LIST)
        routes[f"{base}/manifests/{manifest_digest}"] = lambda: make_response(200, manifest_bytes, DOCKER_MANIFEST_V2)
    else:
        routes[f"{base}/manifests/{tag}"] = lambda: make_response(200, manifest_bytes, DOCKER_MANIFEST_V2)

    for layer in layers:
        routes[f"{base}/blobs/{digest_of(layer)}"] = (lambda data=layer: make_response(200, data, "application/octet-stream"))
    return routes
