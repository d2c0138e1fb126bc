"""Object manifests: segment listings of large objects and local comparison."""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from stackhelpers.swift.types import ObjectStore, ObjectStoreError

__all__ = [
    "Manifest",
    "GetManifestOptions",
    "extract_multipart_manifest",
    "get_manifest",
    "is_identical",
]

_TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S")


@dataclass
class Manifest:
    """One segment of an object: its size, type, MD5 hash and name."""

    bytes: int = 0
    content_type: str = ""
    hash: str = ""
    name: str = ""
    last_modified: datetime | None = None


@dataclass
class GetManifestOptions:
    """What is known about an object whose manifest is wanted."""

    container_name: str = ""
    content_length: int = 0
    etag: str = ""
    object_manifest: str = ""
    object_name: str = ""
    manifest: str = ""
    static_large_object: bool = False


def _parse_last_modified(value: str | None) -> datetime | None:
    if not value:
        return None
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"invalid last_modified timestamp: {value!r}")


def extract_multipart_manifest(body: bytes | str) -> list[Manifest]:
    """Parse the body returned when downloading with ``multipart-manifest=get``.

    Raises ValueError if the body is not a valid manifest.
    """
    entries = json.loads(body)
    if not isinstance(entries, list):
        raise ValueError("multipart manifest must be a JSON array")
    return [
        Manifest(
            bytes=int(entry.get("bytes", 0)),
            content_type=entry.get("content_type", ""),
            hash=entry.get("hash", ""),
            name=entry.get("name", ""),
            last_modified=_parse_last_modified(entry.get("last_modified")),
        )
        for entry in entries
    ]


def _dynamic_manifest(client: ObjectStore, object_manifest: str) -> list[Manifest]:
    container, sep, prefix = object_manifest.partition("/")
    if not sep:
        raise ValueError(f"unable to parse object manifest {object_manifest}")

    try:
        names = list(client.list_objects(container, prefix, ""))
    except ObjectStoreError as err:
        raise ObjectStoreError(
            f"unable to list {container}: {err}", status_code=err.status_code
        ) from err

    manifest = []
    for name in names:
        try:
            info = client.get_object(container, name)
        except ObjectStoreError as err:
            raise ObjectStoreError(
                f"unable to get object {container}:{name}: {err}",
                status_code=err.status_code,
            ) from err
        manifest.append(
            Manifest(
                bytes=info.content_length,
                content_type=info.content_type,
                hash=info.etag,
                last_modified=info.last_modified,
                name=name,
            )
        )
    return manifest


def get_manifest(client: ObjectStore, opts: GetManifestOptions) -> list[Manifest]:
    """Return the segments making up an object.

    Dynamic large objects are listed from their segment container, static
    large objects are read from their stored manifest, and any other object
    is described by a single entry of its own size and ETag.
    """
    if opts.object_manifest:
        return _dynamic_manifest(client, opts.object_manifest)

    if opts.static_large_object:
        if opts.manifest:
            return []
        _headers, body = client.download_object(
            opts.container_name, opts.object_name, "get", ""
        )
        with body:
            content = body.read()
        return [
            Manifest(
                bytes=segment.bytes,
                content_type=segment.content_type,
                hash=segment.hash,
                last_modified=segment.last_modified,
                name=segment.name,
            )
            for segment in extract_multipart_manifest(content)
        ]

    return [Manifest(hash=opts.etag, bytes=opts.content_length)]


def is_identical(manifest: list[Manifest], path: str | os.PathLike[str]) -> bool:
    """Tell whether the local file at ``path`` matches the segments exactly.

    An empty path is never identical. Raises OSError if the file cannot be read.
    """
    if not path:
        return False

    with open(path, "rb") as f:
        for segment in manifest:
            chunk = f.read(segment.bytes)
            if hashlib.md5(chunk).hexdigest() != segment.hash:
                return False
        return f.read(1) == b""