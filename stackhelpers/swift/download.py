"""Download objects from an object storage account to local files."""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
from collections.abc import Iterable
from dataclasses import dataclass

from stackhelpers.swift.manifest import GetManifestOptions, get_manifest, is_identical
from stackhelpers.swift.types import DownloadResult, ObjectStore, ObjectStoreError
from stackhelpers.swift.utils import (
    DISK_BUFFER,
    KNOWN_DIR_MARKERS,
    file_md5_sum,
    get_content_type,
)

__all__ = ["DownloadOptions", "download"]

log = logging.getLogger(__name__)

_ACTION = "download_object"


@dataclass
class DownloadOptions:
    """Options controlling how objects are downloaded."""

    delimiter: str = ""
    ignore_mtime: bool = False
    no_download: bool = False
    out_directory: str = ""
    out_file: str = ""
    prefix: str = ""
    remove_prefix: bool = False
    skip_identical: bool = False
    yes_all: bool = False


def _wrap(message: str, err: BaseException) -> ObjectStoreError:
    return ObjectStoreError(
        f"{message}: {err}", status_code=getattr(err, "status_code", None)
    )


def _join(*parts: str) -> str:
    joined = "/".join(p for p in parts if p)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def download(
    client: ObjectStore,
    container_name: str,
    object_names: Iterable[str] | None,
    opts: DownloadOptions | None = None,
) -> list[DownloadResult]:
    """Download objects from a container, a whole container, or every container.

    With no container name and ``yes_all`` set, every container is downloaded;
    with no object names, every object in the container is. Raises ValueError
    for a container name holding ``/`` and ObjectStoreError on failure.
    """
    opts = opts or DownloadOptions()
    names = list(object_names or [])

    if "/" in container_name:
        raise ValueError(f"container name {container_name} contains a /")

    if container_name == "" and opts.yes_all:
        results: list[DownloadResult] = []
        try:
            containers = list(client.list_containers(opts.prefix, opts.delimiter))
        except ObjectStoreError as err:
            raise _wrap("error listing containers", err) from err
        for container in containers:
            try:
                results.extend(_download_container(client, container, opts))
            except (ObjectStoreError, OSError, ValueError) as err:
                raise _wrap(f"error downloading container {container}", err) from err
        return results

    if not names:
        try:
            return _download_container(client, container_name, opts)
        except (ObjectStoreError, OSError, ValueError) as err:
            raise _wrap(f"error downloading container {container_name}", err) from err

    results = []
    for name in names:
        try:
            results.append(_download_object(client, container_name, name, opts))
        except (ObjectStoreError, OSError, ValueError) as err:
            raise _wrap(f"error downloading object {container_name}/{name}", err) from err
    return results


def _download_container(
    client: ObjectStore, container_name: str, opts: DownloadOptions
) -> list[DownloadResult]:
    try:
        names = list(client.list_objects(container_name, opts.prefix, opts.delimiter))
    except ObjectStoreError as err:
        raise _wrap(f"error listing container {container_name}", err) from err

    results = []
    for name in names:
        try:
            results.append(_download_object(client, container_name, name, opts))
        except (ObjectStoreError, OSError, ValueError) as err:
            raise _wrap(f"error downloading object {container_name}/{name}", err) from err
    return results


def _download_object(
    client: ObjectStore, container_name: str, object_name: str, opts: DownloadOptions
) -> DownloadResult:
    pseudo_dir = False

    try:
        original = client.get_object(container_name, object_name)
    except ObjectStoreError as err:
        raise _wrap(f"error retrieving object {container_name}/{object_name}", err) from err
    original_metadata = original.metadata

    object_path = object_name
    if opts.yes_all:
        object_path = _join(container_name, object_name)

    # Skipping identical files is impossible when writing to stdout.
    skip_identical = opts.skip_identical and opts.out_file != "-"

    if opts.prefix and opts.remove_prefix:
        object_path = object_path[len(opts.prefix):]

    if opts.out_directory:
        object_path = _join(opts.out_directory, object_name)

    filename = opts.out_file if opts.out_file and opts.out_file != "-" else object_path

    multipart_manifest = ""
    if_none_match = ""
    if skip_identical:
        multipart_manifest = "get"
        try:
            if_none_match = file_md5_sum(filename)
        except FileNotFoundError:
            if_none_match = ""
        except OSError as err:
            raise _wrap(f"error getting md5sum of file {filename}", err) from err

    try:
        headers, body = client.download_object(
            container_name, object_name, multipart_manifest, if_none_match
        )
    except ObjectStoreError as err:
        if not skip_identical:
            raise _wrap(f"error getting object {container_name}/{object_name}", err) from err
        raise _wrap(f"error extracting headers from {object_name}", err) from err

    if skip_identical:
        has_manifest = False
        manifest = ""
        if headers.object_manifest:
            has_manifest = True
        if headers.static_large_object:
            has_manifest = True
            manifest = "[]"

        if has_manifest:
            manifest_opts = GetManifestOptions(
                container_name=container_name,
                content_length=headers.content_length,
                etag=headers.etag,
                object_name=object_name,
                object_manifest=headers.object_manifest,
                manifest=manifest,
                static_large_object=headers.static_large_object,
            )
            try:
                manifest_data = get_manifest(client, manifest_opts)
            except (ObjectStoreError, ValueError) as err:
                raise _wrap(
                    f"unable to get manifest for {container_name}/{object_name}", err
                ) from err

            if manifest_data:
                try:
                    identical = is_identical(manifest_data, filename)
                except OSError as err:
                    raise _wrap(
                        f"error comparing object {container_name}/{object_name} "
                        f"and path {filename}",
                        err,
                    ) from err

                if identical:
                    body.close()
                    return DownloadResult(
                        action=_ACTION,
                        container=container_name,
                        object=object_name,
                        path=object_path,
                        pseudo_dir=pseudo_dir,
                        success=True,
                    )

                # A large object that differs: fetch its full content.
                body.close()
                try:
                    _, body = client.download_object(
                        container_name, object_name, "", if_none_match
                    )
                except ObjectStoreError as err:
                    raise _wrap(
                        f"error downloading object {container_name}/{object_name}", err
                    ) from err

    if opts.out_file == "-" and not opts.no_download:
        return DownloadResult(
            action=_ACTION,
            container=container_name,
            content=body,
            object=object_name,
            path=object_path,
            pseudo_dir=pseudo_dir,
            success=True,
        )

    with body:
        ct_match = get_content_type(headers.content_type) in KNOWN_DIR_MARKERS
        if ct_match:
            pseudo_dir = True

        if ct_match and opts.out_file != "-" and not opts.no_download:
            try:
                os.makedirs(object_path, exist_ok=True)
            except OSError as err:
                raise _wrap(f"error creating directory {object_path}", err) from err
        else:
            if not (opts.no_download or opts.out_file == ""):
                directory = os.path.dirname(object_path) or "."
                if not os.path.exists(directory):
                    try:
                        os.makedirs(directory, exist_ok=True)
                    except OSError as err:
                        raise _wrap(f"error creating directory {directory}", err) from err

            target = ""
            if not opts.no_download:
                if opts.out_file:
                    target = opts.out_file
                elif object_path.endswith("/"):
                    pseudo_dir = True
                else:
                    target = object_path

            if target:
                try:
                    with open(target, "wb") as f:
                        shutil.copyfileobj(body, f, DISK_BUFFER)
                except OSError as err:
                    raise _wrap(f"error writing file {target}", err) from err

            if target and not opts.ignore_mtime and "Mtime" in original_metadata:
                try:
                    epoch = int(original_metadata["Mtime"])
                except ValueError:
                    epoch = None
                if epoch is not None:
                    try:
                        os.utime(target, (epoch, epoch))
                    except (OSError, OverflowError) as err:
                        raise _wrap(f"error updating mtime for {target}", err) from err

    return DownloadResult(
        action=_ACTION,
        success=True,
        container=container_name,
        object=object_name,
        path=object_path,
        pseudo_dir=pseudo_dir,
    )