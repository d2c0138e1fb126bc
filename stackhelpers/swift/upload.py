"""Upload objects to an object storage account.

Small objects are stored directly. Large local files are split into segments
tied together by a dynamic or static large object manifest, and streams can be
uploaded as a static large object of fixed-size segments.
"""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import BinaryIO
from urllib.parse import quote_plus

from stackhelpers.swift.manifest import (
    GetManifestOptions,
    Manifest,
    get_manifest,
    is_identical,
)
from stackhelpers.swift.segments import (
    SegmentOptions,
    SegmentResult,
    upload_segment,
    upload_slo_manifest,
    upload_streaming_segment,
)
from stackhelpers.swift.types import ObjectHeaders, ObjectStore, ObjectStoreError, UploadResult
from stackhelpers.swift.utils import (
    DISK_BUFFER,
    EMPTY_ETAG,
    KNOWN_DIR_MARKERS,
    container_partition,
    get_content_type,
)

__all__ = ["UploadOptions", "upload"]


@dataclass
class UploadOptions:
    """Options controlling how an object is uploaded."""

    # Skip the upload when mtime and size of source and object match.
    changed: bool = False
    # Compare the local MD5 digest with the ETag the store returns.
    checksum: bool = False
    # A stream to upload; mutually exclusive with ``path``.
    content: BinaryIO | None = None
    # Create a directory marker.
    dir_marker: bool = False
    # Keep the segments of a replaced large object.
    leave_segments: bool = False
    metadata: dict[str, str] = field(default_factory=dict)
    # A local file or directory to upload.
    path: str = ""
    # Container for segments; defaults to "<container>_segments".
    segment_container: str = ""
    segment_size: int = 0
    # Skip the upload when the object's MD5 digests match the local file.
    skip_identical: bool = False
    storage_policy: str = ""
    # Use a static large object manifest rather than a dynamic one.
    use_slo: bool = False


def _format_mtime(nanoseconds: int) -> str:
    return f"{nanoseconds / 1_000_000_000:.6f}"


def _md5_of_stream(stream: BinaryIO) -> str:
    digest = hashlib.md5()
    while chunk := stream.read(DISK_BUFFER):
        digest.update(chunk)
    return digest.hexdigest()


def _is_seekable(stream: BinaryIO) -> bool:
    seekable = getattr(stream, "seekable", None)
    return bool(seekable and seekable())


def _wrap(message: str, err: BaseException) -> ObjectStoreError:
    return ObjectStoreError(
        f"{message}: {err}", status_code=getattr(err, "status_code", None)
    )


def upload(
    client: ObjectStore,
    container_name: str,
    object_name: str,
    opts: UploadOptions | None = None,
) -> UploadResult:
    """Upload a single object from a local path, a stream, or as an empty object.

    A ``container/pseudo/folder`` container name stores the object under the
    pseudo-folder. Raises ValueError when both ``path`` and ``content`` are
    given, OSError when the local file cannot be read and ObjectStoreError when
    the store fails.
    """
    opts = opts or UploadOptions()

    if opts.path and opts.content is not None:
        raise ValueError("only one of Path and Content can be used")

    container_name, pseudo_folder = container_partition(container_name)
    if pseudo_folder:
        object_name = f"{pseudo_folder}/{object_name}"

    for prefix in ("./", ".\\"):
        if object_name.startswith(prefix):
            object_name = object_name[len(prefix):]
            break
    object_name = object_name.removeprefix("/")

    metadata = dict(opts.metadata or {})

    # Creating the container may fail if it exists or is not ours; go on anyway.
    try:
        client.create_container(container_name)
    except ObjectStoreError:
        pass

    try:
        original: ObjectHeaders | None = client.get_object(container_name, object_name)
    except ObjectStoreError as err:
        if not err.not_found:
            raise _wrap(
                f"error retrieving original object {container_name}/{object_name}", err
            ) from err
        original = None

    source_stat: os.stat_result | None = None
    if opts.path:
        source_stat = os.stat(opts.path)
        metadata["Mtime"] = _format_mtime(source_stat.st_mtime_ns)
    else:
        metadata["Mtime"] = _format_mtime(time.time_ns())

    segment_container = opts.segment_container
    if opts.segment_size != 0:
        if not segment_container:
            segment_container = f"{container_name}_segments"
        try:
            client.create_container(segment_container)
        except ObjectStoreError as err:
            raise _wrap(f"error creating segment container {segment_container}", err) from err

    job = _UploadJob(
        client=client,
        container=container_name,
        object=object_name,
        opts=opts,
        metadata=metadata,
        segment_container=segment_container,
        original=original,
        source_stat=source_stat,
        content=opts.content,
    )

    if opts.content is not None:
        return job.upload_object()

    if opts.path:
        if source_stat is not None and os.path.isdir(opts.path):
            # A directory always becomes a directory marker.
            return job.create_dir_marker()
        return job.upload_object()

    if opts.dir_marker:
        return job.create_dir_marker()

    job.content = BytesIO(b"")
    return job.upload_object()


@dataclass
class _UploadJob:
    client: ObjectStore
    container: str
    object: str
    opts: UploadOptions
    metadata: dict[str, str]
    segment_container: str
    original: ObjectHeaders | None
    source_stat: os.stat_result | None
    content: BinaryIO | None

    @property
    def _mtime(self) -> str:
        return self.metadata["Mtime"]

    def create_dir_marker(self) -> UploadResult:
        result = UploadResult(
            action="create_dir_marker", container=self.container, object=self.object
        )

        if self.original is not None and self.opts.changed:
            orig = self.original
            mt_match = orig.metadata.get("Mtime") == self._mtime
            ct_match = get_content_type(orig.content_type) in KNOWN_DIR_MARKERS
            if ct_match and mt_match and orig.content_length == 0 and orig.etag == EMPTY_ETAG:
                result.success = True
                return result

        self.client.create_object(
            self.container,
            self.object,
            b"",
            content_length=0,
            content_type="application/directory",
            metadata=self.metadata,
        )
        result.success = True
        return result

    def upload_object(self) -> UploadResult:
        opts = self.opts
        result = UploadResult(
            action="upload_action", container=self.container, object=self.object
        )

        manifest_data: list[Manifest] = []
        old_object_manifest = ""
        old_slo_paths: list[str] = []
        new_slo_paths: list[str] = []

        if self.original is not None:
            orig = self.original
            is_slo = orig.static_large_object

            if opts.changed or opts.skip_identical or not opts.leave_segments:
                if opts.skip_identical or (is_slo and not opts.leave_segments):
                    manifest_opts = GetManifestOptions(
                        container_name=self.container,
                        content_length=orig.content_length,
                        etag=orig.etag,
                        object_manifest=orig.object_manifest,
                        object_name=self.object,
                        static_large_object=orig.static_large_object,
                    )
                    try:
                        manifest_data = get_manifest(self.client, manifest_opts)
                    except (ObjectStoreError, ValueError) as err:
                        raise _wrap(
                            f"unable to get manifest for {self.container}/{self.object}", err
                        ) from err

                if opts.skip_identical:
                    try:
                        identical = is_identical(manifest_data, opts.path)
                    except OSError as err:
                        raise _wrap(
                            f"error comparing object {self.container}/{self.object} "
                            f"and path {opts.path}",
                            err,
                        ) from err
                    if identical:
                        result.status = "skip-identical"
                        result.success = True
                        return result

            if opts.path and opts.changed and self.source_stat is not None:
                mt_match = (
                    "Mtime" in orig.metadata and orig.metadata["Mtime"] == self._mtime
                )
                size_match = orig.content_length == self.source_stat.st_size
                if mt_match and size_match:
                    result.status = "skip-changed"
                    result.success = True
                    return result

            if not opts.leave_segments:
                old_object_manifest = orig.object_manifest
                if is_slo:
                    old_slo_paths = [m.name.removesuffix("/").removeprefix("/") for m in manifest_data]

        file_size = self.source_stat.st_size if self.source_stat is not None else 0

        if opts.path and opts.segment_size > 0 and file_size > opts.segment_size:
            result.large_object = True
            segments = self._upload_file_segments(file_size)

            if opts.use_slo:
                upload_slo_manifest(
                    self.client, self.container, self.object, segments, self.metadata
                )
                new_slo_paths = [
                    s.location.removesuffix("/").removeprefix("/") for s in segments
                ]
            else:
                new_object_manifest = (
                    f"{quote_plus(self.segment_container, safe='')}/"
                    f"{quote_plus(self.object, safe='')}/"
                    f"{self._mtime}/{file_size}/{opts.segment_size}/"
                )
                if old_object_manifest and (
                    old_object_manifest.removesuffix("/")
                    == new_object_manifest.removesuffix("/")
                ):
                    old_object_manifest = ""

                self.client.create_object(
                    self.container,
                    self.object,
                    b"",
                    content_length=0,
                    metadata=self.metadata,
                    object_manifest=new_object_manifest,
                )
        elif opts.use_slo and opts.segment_size > 0 and not opts.path:
            segments = self._upload_stream_segments()
            if segments:
                if segments[0].location != f"/{self.container}/{self.object}":
                    try:
                        upload_slo_manifest(
                            self.client, self.container, self.object, segments, self.metadata
                        )
                    except ObjectStoreError as err:
                        raise _wrap(
                            f"error uploading SLO manifest for {self.container}/{self.object}",
                            err,
                        ) from err
                    new_slo_paths = [s.location for s in segments]
                else:
                    result.large_object = False
        else:
            result.large_object = False
            self._upload_whole(file_size)

        if old_object_manifest or old_slo_paths:
            self._delete_old_segments(old_object_manifest, old_slo_paths, new_slo_paths)

        result.status = "uploaded"
        result.success = True
        return result

    def _upload_file_segments(self, file_size: int) -> list[SegmentResult]:
        opts = self.opts
        results: list[SegmentResult] = []
        start = 0
        index = 0
        size = opts.segment_size
        while start < file_size:
            if start + size > file_size:
                size = file_size - start

            if opts.use_slo:
                name = (
                    f"{self.object}/slo/{self._mtime}/{file_size}/"
                    f"{opts.segment_size}/{index:08d}"
                )
            else:
                name = (
                    f"{self.object}/{self._mtime}/{file_size}/"
                    f"{opts.segment_size}/{index:08d}"
                )

            results.append(
                upload_segment(
                    self.client,
                    SegmentOptions(
                        checksum=opts.checksum,
                        path=opts.path,
                        object_name=self.object,
                        segment_container=self.segment_container,
                        segment_index=index,
                        segment_name=name,
                        segment_size=size,
                        segment_start=start,
                    ),
                )
            )
            index += 1
            start += size
        return results

    def _upload_stream_segments(self) -> list[SegmentResult]:
        opts = self.opts
        results: list[SegmentResult] = []
        index = 0
        while True:
            name = f"{self.object}/slo/{self._mtime}/{opts.segment_size}/{index:08d}"
            segment_opts = SegmentOptions(
                content=self.content,
                container_name=self.container,
                object_name=self.object,
                segment_container=self.segment_container,
                segment_index=index,
                segment_name=name,
                segment_size=opts.segment_size,
            )
            try:
                segment = upload_streaming_segment(self.client, segment_opts)
            except ObjectStoreError as err:
                raise _wrap(
                    f"error uploading segment {index} of {self.container}/{self.object}", err
                ) from err

            if not segment.success:
                raise ObjectStoreError(
                    f"Problem uploading segment {index} of {self.container}/{self.object}"
                )
            if segment.size != 0:
                results.append(segment)
            if segment.complete:
                return results
            index += 1

    def _upload_whole(self, file_size: int) -> None:
        checksum = self.opts.checksum
        etag = ""

        if self.opts.path:
            with open(self.opts.path, "rb") as f:
                if checksum:
                    etag = _md5_of_stream(f)
                    f.seek(0)
                headers = self._create_whole(f, file_size, etag)
        else:
            stream = self.content if self.content is not None else BytesIO(b"")
            body: BinaryIO | bytes
            if checksum or _is_seekable(stream):
                data = stream.read()
                body = data
                length = len(data)
                if checksum:
                    etag = hashlib.md5(data).hexdigest()
            else:
                body = stream
                length = 0
            headers = self._create_whole(body, length, etag)

        if checksum and headers.etag != etag:
            raise ObjectStoreError(
                f"upload verification failed: md5 mismatch, local {etag} != remote {headers.etag}"
            )

    def _create_whole(self, body: BinaryIO | bytes, length: int, etag: str) -> ObjectHeaders:
        return self.client.create_object(
            self.container,
            self.object,
            body,
            content_length=length,
            metadata=self.metadata,
            etag=etag,
            no_etag=not self.opts.checksum,
        )

    def _delete_old_segments(
        self,
        old_object_manifest: str,
        old_slo_paths: list[str],
        new_slo_paths: list[str],
    ) -> None:
        to_delete: dict[str, list[str]] = {}

        if old_object_manifest:
            container, sep, prefix = old_object_manifest.partition("/")
            if not sep:
                raise ValueError(f"unable to parse object manifest {old_object_manifest}")
            prefix = prefix.rstrip("/") + "/"
            to_delete[container] = list(self.client.list_objects(container, prefix, ""))

        for segment_path in old_slo_paths:
            # Only segments not reused by the new manifest are removed.
            if segment_path in new_slo_paths:
                continue
            container, sep, name = segment_path.partition("/")
            if not sep:
                raise ValueError(f"unable to parse segment path {segment_path}")
            to_delete.setdefault(container, []).append(name)

        for container, names in to_delete.items():
            for name in names:
                self.client.delete_object(container, name)