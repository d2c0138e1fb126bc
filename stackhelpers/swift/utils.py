"""Small helpers shared by object storage uploads and downloads."""

from __future__ import annotations

import hashlib
import os

__all__ = [
    "EMPTY_ETAG",
    "DISK_BUFFER",
    "KNOWN_DIR_MARKERS",
    "container_partition",
    "file_md5_sum",
    "get_content_type",
]

EMPTY_ETAG = "d41d8cd98f00b204e9800998ecf8427e"
DISK_BUFFER = 65536
KNOWN_DIR_MARKERS = ("application/directory", "text/directory")


def container_partition(container_name: str) -> tuple[str, str]:
    """Split ``container/pseudo/folder`` into container and pseudo-folder."""
    container, sep, pseudo_folder = container_name.partition("/")
    if not sep:
        return container_name, ""
    return container, pseudo_folder.removesuffix("/")


def file_md5_sum(filename: str | os.PathLike[str]) -> str:
    """Return the hex MD5 digest of a file's contents.

    Raises OSError (such as FileNotFoundError) if the file cannot be read.
    """
    digest = hashlib.md5()
    with open(filename, "rb") as f:
        while chunk := f.read(DISK_BUFFER):
            digest.update(chunk)
    return digest.hexdigest()


def get_content_type(ct: str) -> str:
    """Strip parameters such as ``; charset=...`` from a content type."""
    return ct.split(";", 1)[0]