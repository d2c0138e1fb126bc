"""Upload the segments of large objects and their static manifests."""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import BinaryIO

from stackhelpers.swift.types import ObjectStore, ObjectStoreError

__all__ = [
    "SegmentOptions",
    "SegmentResult",
    "upload_slo_manifest",
    "upload_segment",
    "upload_streaming_segment",
]

_SEGMENT_CONTENT_TYPE = "application/swiftclient-segment"


@dataclass
class SegmentOptions:
    """Where a segment comes from and where it is stored."""

    checksum: bool = False
    container_name: str = ""
    content: BinaryIO | None = None
    path: str | os.PathLike[str] = ""
    object_name: str = ""
    segment_container: str = ""
    segment_name: str = ""
    segment_size: int = 0
    segment_start: int = 0
    segment_index: int = 0


@dataclass
class SegmentResult:
    """Outcome of uploading one segment."""

    complete: bool = False
    etag: str = ""
    index: int = 0
    location: str = ""
    size: int = 0
    success: bool = False


def upload_slo_manifest(
    client: ObjectStore,
    container_name: str,
    object_name: str,
    results: Iterable[SegmentResult],
    metadata: Mapping[str, str] | None,
) -> None:
    """Store a static large object manifest listing the uploaded segments."""
    manifest = [
        {"path": result.location, "etag": result.etag, "size_bytes": result.size}
        for result in results
    ]
    body = json.dumps(manifest, separators=(",", ":")).encode("utf-8")
    client.create_object(
        container_name,
        object_name,
        body,
        content_type="application/json",
        metadata=dict(metadata or {}),
        multipart_manifest="put",
        no_etag=True,
    )


def upload_segment(client: ObjectStore, opts: SegmentOptions) -> SegmentResult:
    """Upload the part of a local file that ``opts`` describes as one segment.

    With ``checksum`` set, the ETag returned by the store must match the local
    MD5 digest, or ObjectStoreError is raised.
    """
    with open(opts.path, "rb") as f:
        f.seek(opts.segment_start)
        data = f.read(opts.segment_size)

    etag = hashlib.md5(data).hexdigest() if opts.checksum else ""

    headers = client.create_object(
        opts.segment_container,
        opts.segment_name,
        data,
        content_length=len(data),
        content_type=_SEGMENT_CONTENT_TYPE,
        etag=etag,
        no_etag=not opts.checksum,
    )

    if opts.checksum and headers.etag != etag:
        raise ObjectStoreError(
            f"Segment {opts.segment_index}: upload verification failed: "
            f"md5 mismatch, local {etag} != remote {headers.etag}"
        )

    return SegmentResult(
        etag=headers.etag,
        index=opts.segment_index,
        location=f"/{opts.segment_container}/{opts.segment_name}",
        size=opts.segment_size,
        success=True,
    )


def _read_up_to(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def upload_streaming_segment(client: ObjectStore, opts: SegmentOptions) -> SegmentResult:
    """Read up to ``segment_size`` bytes from ``opts.content`` and store them.

    A first segment shorter than the segment size is the whole object, so it
    is stored directly under the object's own name. An exhausted stream gives
    a complete result of size zero without storing anything.
    """
    if opts.content is None:
        raise ValueError("a streaming segment needs content to read from")

    data = _read_up_to(opts.content, opts.segment_size)
    checksum = hashlib.md5(data).hexdigest()
    size = len(data)

    if size == 0:
        return SegmentResult(complete=True, success=True, size=0)

    if opts.segment_index == 0 and size < opts.segment_size:
        container, name = opts.container_name, opts.object_name
    else:
        container, name = opts.segment_container, opts.segment_name

    client.create_object(
        container,
        name,
        data,
        content_length=size,
        etag=checksum,
    )

    return SegmentResult(
        complete=size < opts.segment_size,
        etag=checksum,
        index=opts.segment_index,
        location=f"/{container}/{name}",
        size=size,
        success=True,
    )